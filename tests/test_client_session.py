import re

import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch

from karetek.client.api_client import APIError, KaretekAPIClient
from karetek.client.session import ConsultationSession, new_session_id

def _client(token="token"):
    client = Mock(spec=KaretekAPIClient)
    client.token = token
    client.is_authenticated = bool(token)
    return client

class TestSessionId:

    def test_format(self):
        assert re.fullmatch(r"session_\d{13}_[0-9a-z]{9}", new_session_id())

    def test_unique(self):
        assert new_session_id() != new_session_id()

class TestConsultationSession:

    @pytest.mark.asyncio
    async def test_send_reuses_session_id(self):
        client = _client()
        client.chat = AsyncMock(return_value={"message": "How long?", "saved": True})
        session = ConsultationSession(client)

        await session.send("I have a cough")
        first_id = session.session_id
        await session.send("Two days")

        assert session.session_id == first_id
        assert [turn["role"] for turn in session.turns] == ["user", "assistant", "user", "assistant"]
        args, _ = client.chat.call_args
        assert args[2] == first_id

    @pytest.mark.asyncio
    async def test_failed_send_leaves_history_unchanged(self):
        client = _client()
        client.chat = AsyncMock(side_effect=[APIError(500, "Failed to process chat request"), {"message": "How long?"}])
        session = ConsultationSession(client)

        with pytest.raises(APIError):
            await session.send("I have a cough")
        assert session.turns == []

        await session.send("I have a cough")

        args, _ = client.chat.call_args
        assert args[0] == [{"role": "user", "content": "I have a cough"}]
        assert [turn["role"] for turn in session.turns] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_load_existing(self):
        client = _client()
        client.consultations = AsyncMock(return_value=[
            {"session_id": "session_other", "language": "en", "messages": [{"role": "user", "content": "x"}]},
            {"session_id": "session_1", "language": "ur", "messages": [
                {"role": "user", "content": "سر درد"},
                {"role": "assistant", "content": "کب سے؟"},
            ]},
        ])
        session = ConsultationSession(client)

        assert await session.load("session_1") is True
        assert session.session_id == "session_1"
        assert session.language == "ur"
        assert len(session.turns) == 2

    @pytest.mark.asyncio
    async def test_load_missing_starts_new(self):
        client = _client()
        client.consultations = AsyncMock(return_value=[])
        session = ConsultationSession(client)

        assert await session.load("session_gone") is False
        assert session.session_id != "session_gone"
        assert session.session_id.startswith("session_")
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_load_anonymous_starts_new(self):
        client = _client(token=None)
        client.consultations = AsyncMock()
        session = ConsultationSession(client)

        assert await session.load("session_1") is False
        client.consultations.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_error_starts_new(self):
        client = _client()
        client.consultations = AsyncMock(side_effect=APIError(500, "boom"))
        session = ConsultationSession(client)

        assert await session.load("session_1") is False
        assert session.session_id is not None

    @pytest.mark.asyncio
    async def test_switch_language_keeps_failed_turns(self):
        """Test that one failed translation leaves only that turn untranslated"""
        client = _client()

        async def translate(messages, language):
            if messages[0]["content"] == "untranslatable":
                raise APIError(500, "Failed to translate messages")
            return messages[0]["content"].upper()

        client.translate = AsyncMock(side_effect=translate)
        session = ConsultationSession(client)
        session.turns = [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "untranslatable"},
        ]

        await session.switch_language("ur")

        assert session.language == "ur"
        assert session.turns == [
            {"role": "user", "content": "HELLO"},
            {"role": "assistant", "content": "untranslatable"},
        ]

    @pytest.mark.asyncio
    async def test_speak_is_cached(self):
        client = _client()
        client.speak = AsyncMock(return_value={"success": True, "audioUrl": "http://cdn/a.mp3", "language": "en"})
        session = ConsultationSession(client)

        assert await session.speak("Hello") == "http://cdn/a.mp3"
        assert await session.speak("Hello") == "http://cdn/a.mp3"
        assert await session.speak("Hello", "fr") == "http://cdn/a.mp3"

        assert client.speak.await_count == 2

    @pytest.mark.asyncio
    async def test_speak_text_only(self):
        client = _client()
        client.speak = AsyncMock(return_value={"success": False, "textOnly": True, "message": "Text only"})
        session = ConsultationSession(client, language="ur")

        assert await session.speak("Aap kaise hain") is None

class TestKaretekAPIClient:

    @pytest.mark.asyncio
    async def test_login_stores_token(self):
        client = KaretekAPIClient("http://api.test")
        response = MagicMock(status=200)
        response.json = AsyncMock(return_value={"token": "jwt", "user": {"id": "u1"}})

        with patch("aiohttp.ClientSession") as mock_session:
            session = MagicMock()
            mock_session.return_value.__aenter__.return_value = session
            session.request.return_value.__aenter__.return_value = response

            user = await client.login("a@example.com", "secret-pass")

        assert user == {"id": "u1"}
        assert client.token == "jwt"
        args, _ = session.request.call_args
        assert args == ("POST", "http://api.test/api/auth/login")

    @pytest.mark.asyncio
    async def test_error_response(self):
        client = KaretekAPIClient("http://api.test", token="jwt")
        response = MagicMock(status=403, reason="Forbidden")
        response.json = AsyncMock(return_value={"error": True, "message": "Invalid or expired token"})

        with patch("aiohttp.ClientSession") as mock_session:
            session = MagicMock()
            mock_session.return_value.__aenter__.return_value = session
            session.request.return_value.__aenter__.return_value = response

            with pytest.raises(APIError) as exc_info:
                await client.me()

        assert exc_info.value.status == 403
        assert exc_info.value.message == "Invalid or expired token"
