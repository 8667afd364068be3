import re

import pytest
from unittest.mock import AsyncMock, Mock

from karetek.core.speech import SpeechSynthesisAdapter, VOICE_IDS, voice_for
from karetek.core.storage import LocalStorageClient, StorageError
from karetek.core.tts_client import MockTTSClient, TTSError

RACHEL = "21m00Tcm4TlvDq8ikWAM"
BELLA = "EXAVITQu4vr4xnSDxMaL"

class TestVoiceTable:

    @pytest.mark.parametrize("language,voice", [
        ("en", RACHEL), ("ur", RACHEL),
        ("ar", BELLA), ("fr", BELLA), ("es", BELLA), ("de", BELLA), ("zh", BELLA),
        ("xx", RACHEL),
    ])
    def test_voice_for(self, language, voice):
        assert voice_for(language) == voice

    def test_every_language_has_a_voice(self):
        assert set(VOICE_IDS) == {"en", "ur", "ar", "fr", "es", "de", "zh"}

class TestSpeechSynthesisAdapter:

    @pytest.mark.asyncio
    async def test_speak_uploads_and_returns_url(self, tmp_path):
        tts = MockTTSClient()
        storage = LocalStorageClient(str(tmp_path), "http://cdn.test")
        adapter = SpeechSynthesisAdapter(tts, storage, clock=lambda: 1717000000.5)

        url = await adapter.speak("Bonjour", "fr")

        assert url == "http://cdn.test/media/audio/1717000000500-fr.mp3"
        assert tts.calls == [("Bonjour", BELLA)]
        assert (tmp_path / "audio" / "1717000000500-fr.mp3").read_bytes() == MockTTSClient.SILENT_FRAME

    @pytest.mark.asyncio
    async def test_unknown_language_uses_english_key(self, tmp_path):
        adapter = SpeechSynthesisAdapter(MockTTSClient(), LocalStorageClient(str(tmp_path), "http://cdn.test"))

        url = await adapter.speak("Hello", "xx")

        assert re.search(r"/audio/\d+-en\.mp3$", url)

    @pytest.mark.asyncio
    async def test_tts_error_propagates(self):
        tts = Mock(synthesize=AsyncMock(side_effect=TTSError("quota exceeded")))
        storage = Mock(upload=AsyncMock())
        adapter = SpeechSynthesisAdapter(tts, storage)

        with pytest.raises(TTSError):
            await adapter.speak("Hello", "en")
        storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_object_is_not_overwritten(self, tmp_path):
        storage = LocalStorageClient(str(tmp_path), "http://cdn.test")
        adapter = SpeechSynthesisAdapter(MockTTSClient(), storage, clock=lambda: 1.0)

        await adapter.speak("Hello", "en")
        with pytest.raises(StorageError):
            await adapter.speak("Hello again", "en")

class TestSpeakEndpoint:

    def test_speak(self, client, tts):
        response = client.post("/api/avatar/speak", json={"text": "Please rest today.", "language": "en"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["language"] == "en"
        assert re.match(r"http://testserver/media/audio/\d+-en\.mp3$", data["audioUrl"])
        assert tts.calls == [("Please rest today.", RACHEL)]

    def test_audio_is_served(self, client):
        audio_url = client.post("/api/avatar/speak", json={"text": "Hello", "language": "en"}).json()["audioUrl"]

        response = client.get(audio_url.replace("http://testserver", ""))

        assert response.status_code == 200
        assert response.content == MockTTSClient.SILENT_FRAME

    def test_language_detected_when_omitted(self, client, tts):
        response = client.post("/api/avatar/speak", json={"text": "مرحبا"})

        assert response.json()["language"] == "ar"
        assert tts.calls == [("مرحبا", BELLA)]

    def test_roman_urdu_is_text_only(self, client, tts):
        response = client.post("/api/avatar/speak", json={"text": "Aap kaise hain?", "language": "ur"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["textOnly"] is True
        assert data["message"]
        assert tts.calls == []

    def test_text_required(self, client, tts):
        assert client.post("/api/avatar/speak", json={}).status_code == 400
        assert client.post("/api/avatar/speak", json={"text": "   "}).status_code == 400
        assert tts.calls == []

    def test_upstream_failure(self, client, services):
        services.speech.tts = Mock(synthesize=AsyncMock(side_effect=TTSError("quota exceeded")))

        response = client.post("/api/avatar/speak", json={"text": "Hello", "language": "en"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to generate speech"}
