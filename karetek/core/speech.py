import time
from typing import Callable

from loguru import logger

from karetek.core.storage import StorageClient
from karetek.core.tts_client import TTSClient

RACHEL = "21m00Tcm4TlvDq8ikWAM"
BELLA = "EXAVITQu4vr4xnSDxMaL"

VOICE_IDS = {
    "en": RACHEL,
    "ur": RACHEL,
    "ar": BELLA,
    "fr": BELLA,
    "es": BELLA,
    "de": BELLA,
    "zh": BELLA,
}

AUDIO_CONTENT_TYPE = "audio/mpeg"

def voice_for(language: str) -> str:
    return VOICE_IDS.get(language, VOICE_IDS["en"])

class SpeechSynthesisAdapter:
    """Turns reply text into a hosted audio URL."""

    def __init__(self, tts: TTSClient, storage: StorageClient, clock: Callable[[], float] = time.time):
        self.tts = tts
        self.storage = storage
        self.clock = clock

    def object_path(self, language: str) -> str:
        code = language if language in VOICE_IDS else "en"
        return f"audio/{int(self.clock() * 1000)}-{code}.mp3"

    async def speak(self, text: str, language: str) -> str:
        audio = await self.tts.synthesize(text, voice_for(language))

        path = self.object_path(language)
        await self.storage.upload(path, audio, AUDIO_CONTENT_TYPE)

        url = self.storage.public_url(path)
        logger.info(f"Speech stored at {url} ({len(audio)} bytes, {language})")
        return url
