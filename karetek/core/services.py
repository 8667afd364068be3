from dataclasses import dataclass, field
from typing import Dict, Optional

from loguru import logger

from karetek.config import Settings
from karetek.core.chat import ChatTurnHandler, TranslationHandler
from karetek.core.context_assembler import ContextAssembler
from karetek.core.database import Database
from karetek.core.llm_client import LLMClient, LLMClientFactory
from karetek.core.oauth import OAuthProvider, build_oauth_providers
from karetek.core.repository import Repository
from karetek.core.speech import SpeechSynthesisAdapter
from karetek.core.storage import StorageClient, StorageClientFactory
from karetek.core.tts_client import TTSClient, TTSClientFactory

@dataclass
class Services:
    """Collaborator handles built once at startup and shared by every request"""

    repository: Repository
    llm: LLMClient
    tts: TTSClient
    storage: StorageClient
    oauth: Dict[str, OAuthProvider] = field(default_factory=dict)
    database: Optional[Database] = None

    assembler: ContextAssembler = field(init=False)
    chat: ChatTurnHandler = field(init=False)
    translator: TranslationHandler = field(init=False)
    speech: SpeechSynthesisAdapter = field(init=False)

    def __post_init__(self):
        self.assembler = ContextAssembler(self.repository)
        self.chat = ChatTurnHandler(self.assembler, self.llm, self.repository)
        self.translator = TranslationHandler(self.llm)
        self.speech = SpeechSynthesisAdapter(self.tts, self.storage)

    def close(self) -> None:
        if self.database is not None:
            self.database.dispose()

def build_services(settings: Settings) -> Services:
    database = Database(settings.database_url)
    database.create_all()

    services = Services(
        repository=Repository(database),
        llm=LLMClientFactory.create_client(settings),
        tts=TTSClientFactory.create_client(settings),
        storage=StorageClientFactory.create_client(settings),
        oauth=build_oauth_providers(settings),
        database=database,
    )
    logger.info(
        f"Services ready: llm={services.llm.provider}, tts={services.tts.provider}, "
        f"storage={type(services.storage).__name__}"
    )
    return services
