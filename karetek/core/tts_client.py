import time
from abc import ABC, abstractmethod
from typing import List, Tuple

import aiohttp
from loguru import logger

from karetek.config import Settings
from karetek.utils.prometheus_metrics import metrics

class TTSError(Exception):
    """The speech collaborator failed"""

class TTSClient(ABC):
    provider = "unknown"

    @abstractmethod
    async def synthesize(self, text: str, voice_id: str) -> bytes:
        """Return MP3 audio bytes for ``text`` spoken by ``voice_id``"""

class ElevenLabsClient(TTSClient):
    provider = "elevenlabs"
    model_id = "eleven_turbo_v2_5"

    def __init__(self, api_key: str, base_url: str = "https://api.elevenlabs.io"):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        url = f"{self.base_url}/v1/text-to-speech/{voice_id}/stream"
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key
        }
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.71,
                "similarity_boost": 0.5,
                "style": 0,
                "use_speaker_boost": True
            },
            "optimize_streaming_latency": 4,
            "output_format": "mp3_44100_128"
        }

        start_time = time.time()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, headers=headers, json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"ElevenLabs API error {response.status}: {error_text}")
                        raise TTSError(f"ElevenLabs API error: {error_text}")
                    audio = await response.read()

            metrics.record_tts_request(self.provider, time.time() - start_time, success=True)
            return audio

        except TTSError:
            metrics.record_tts_request(self.provider, time.time() - start_time, success=False)
            raise
        except aiohttp.ClientError as e:
            metrics.record_tts_request(self.provider, time.time() - start_time, success=False)
            logger.error(f"ElevenLabs client error: {e}")
            raise TTSError(str(e)) from e

class MockTTSClient(TTSClient):
    provider = "mock"

    # Single silent MPEG-1 Layer III frame header
    SILENT_FRAME = b"\xff\xfb\x90\x64" + b"\x00" * 413

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        self.calls.append((text, voice_id))
        metrics.record_tts_request(self.provider, 0.0, success=True)
        return self.SILENT_FRAME

class TTSClientFactory:
    @staticmethod
    def create_client(settings: Settings) -> TTSClient:
        provider = settings.tts_provider.lower()

        if provider == "elevenlabs" and settings.elevenlabs_api_key:
            logger.info("Using ElevenLabs TTS client")
            return ElevenLabsClient(settings.elevenlabs_api_key, base_url=settings.elevenlabs_base_url)
        elif provider == "elevenlabs":
            logger.warning("ELEVENLABS_API_KEY not configured, falling back to mock")
            return MockTTSClient()

        logger.info("Using mock TTS client")
        return MockTTSClient()
