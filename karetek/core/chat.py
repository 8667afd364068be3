from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from loguru import logger

from karetek.core.context_assembler import ContextAssembler
from karetek.core.identity import ANONYMOUS, Anonymous, Authenticated, Identity
from karetek.core.llm_client import LLMClient
from karetek.models.schemas import SUPPORTED_LANGUAGES
from karetek.utils.prometheus_metrics import metrics

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1000

TRANSLATION_TEMPERATURE = 0.3
TRANSLATION_MAX_TOKENS = 2000

LANGUAGE_NAMES = {
    "en": "English",
    "ur": "Urdu",
    "ar": "Arabic",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "zh": "Chinese",
}

TRANSLATION_PROMPT = (
    "You are a professional medical translator. Translate the following text to {language} "
    "while maintaining medical accuracy. Return ONLY the translated text, nothing else. "
    "Do not include role labels or formatting."
)

Turn = Dict[str, str]

class InvalidChatRequest(ValueError):
    """The request was rejected before any collaborator was called"""

@dataclass
class ChatResult:
    message: str
    saved: bool

class ChatTurnHandler:
    """One request/response exchange with the medical assistant."""

    def __init__(self, assembler: ContextAssembler, llm: LLMClient, repository):
        self.assembler = assembler
        self.llm = llm
        self.repository = repository

    async def handle(
        self,
        turns: Optional[List[Turn]],
        language: str = "en",
        session_id: Optional[str] = None,
        identity: Identity = ANONYMOUS,
    ) -> ChatResult:
        if not turns:
            raise InvalidChatRequest("Messages array is required")

        system_prompt = await run_in_threadpool(self.assembler.build_system_prompt, language, identity)
        reply = await self.llm.complete(
            [{"role": "system", "content": system_prompt}, *turns],
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )

        saved = False
        match identity:
            case Authenticated(user_id=user_id) if session_id:
                saved = True
                await run_in_threadpool(self._save_consultation, user_id, session_id, language, [*turns, reply])
            case Authenticated() | Anonymous():
                pass

        return ChatResult(message=reply["content"], saved=saved)

    def _save_consultation(self, user_id: str, session_id: str, language: str, messages: List[Turn]) -> None:
        try:
            written = self.repository.upsert_consultation(user_id, session_id, language, messages)
            metrics.record_consultation_save(success=written)
        except Exception as e:
            logger.error(f"Save consultation error for session {session_id}: {e}")
            metrics.record_consultation_save(success=False)

class TranslationHandler:
    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def translate(self, turns: Optional[List[Turn]], target_language: Optional[str]) -> str:
        if not turns:
            raise InvalidChatRequest("Messages array is required")
        if target_language not in SUPPORTED_LANGUAGES:
            raise InvalidChatRequest(
                f"Valid target language ({', '.join(SUPPORTED_LANGUAGES)}) is required"
            )

        if len(turns) == 1:
            text = turns[0]["content"]
        else:
            text = "\n\n".join(turn["content"] for turn in turns)

        reply = await self.llm.complete(
            [
                {"role": "system", "content": TRANSLATION_PROMPT.format(language=LANGUAGE_NAMES[target_language])},
                {"role": "user", "content": text},
            ],
            temperature=TRANSLATION_TEMPERATURE,
            max_tokens=TRANSLATION_MAX_TOKENS,
        )
        return reply["content"]
