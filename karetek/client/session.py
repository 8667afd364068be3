"""Client-side consultation state.

A consultation is a list of chat turns tagged with a session id. The
server keeps one stored row per session id for signed-in users, so the
same id must be reused for every turn of a conversation.
"""
import asyncio
import random
import string
import time
from typing import Dict, List, Optional, Tuple

import aiohttp
from loguru import logger

from karetek.client.api_client import APIError, KaretekAPIClient

BASE36 = string.digits + string.ascii_lowercase

WELCOME_MESSAGES = {
    "en": "Hello! I'm your Karetek health assistant. How are you feeling today? Tell me about any symptoms or health concerns.",
    "ur": "السلام علیکم! میں آپ کا Karetek صحت معاون ہوں۔ آج آپ کیسا محسوس کر رہے ہیں؟ مجھے اپنی علامات یا صحت کے خدشات کے بارے میں بتائیں۔",
}

def new_session_id() -> str:
    suffix = "".join(random.choice(BASE36) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"

class ConsultationSession:
    def __init__(self, client: KaretekAPIClient, language: str = "en"):
        self.client = client
        self.language = language
        self.session_id: Optional[str] = None
        self.turns: List[Dict[str, str]] = []
        self._audio_cache: Dict[Tuple[str, str], str] = {}

    @property
    def welcome(self) -> str:
        return WELCOME_MESSAGES.get(self.language, WELCOME_MESSAGES["en"])

    def start_new(self) -> str:
        self.session_id = new_session_id()
        self.turns = []
        logger.debug(f"Started consultation {self.session_id}")
        return self.session_id

    async def load(self, session_id: str) -> bool:
        """Resume a stored consultation; starts a fresh one when it cannot be found"""
        if not self.client.is_authenticated:
            logger.info("Not signed in, starting new session")
            self.start_new()
            return False

        try:
            consultations = await self.client.consultations()
        except (APIError, aiohttp.ClientError) as e:
            logger.error(f"Failed to load session {session_id}: {e}")
            self.start_new()
            return False

        for consultation in consultations:
            if consultation.get("session_id") == session_id and consultation.get("messages"):
                self.session_id = session_id
                self.language = consultation.get("language") or "en"
                self.turns = [
                    {"role": turn["role"], "content": turn["content"]}
                    for turn in consultation["messages"]
                ]
                return True

        logger.info(f"Session {session_id} not found, starting new session")
        self.start_new()
        return False

    async def send(self, text: str) -> Dict[str, object]:
        """Send one user turn; the history is only extended once the reply arrives"""
        if self.session_id is None:
            self.start_new()

        turns = [*self.turns, {"role": "user", "content": text}]
        response = await self.client.chat(turns, self.language, self.session_id)
        self.turns = [*turns, {"role": "assistant", "content": response["message"]}]
        return response

    async def _translate_turn(self, turn: Dict[str, str], language: str) -> Dict[str, str]:
        try:
            translated = await self.client.translate([turn], language)
            return {"role": turn["role"], "content": translated}
        except (APIError, aiohttp.ClientError) as e:
            logger.error(f"Failed to translate message: {e}")
            return turn

    async def switch_language(self, language: str) -> None:
        """Translate every stored turn; a turn that fails keeps its original text"""
        self.language = language
        self.turns = list(await asyncio.gather(
            *(self._translate_turn(turn, language) for turn in self.turns)
        ))

    async def speak(self, text: str, language: Optional[str] = None) -> Optional[str]:
        """Audio URL for ``text``, reusing earlier results for the same text and language"""
        language = language or self.language
        key = (text, language)
        if key in self._audio_cache:
            return self._audio_cache[key]

        response = await self.client.speak(text, language)
        audio_url = response.get("audioUrl")
        if response.get("success") and audio_url:
            self._audio_cache[key] = audio_url
            return audio_url

        logger.info(response.get("message") or "Speech unavailable, showing text only")
        return None
