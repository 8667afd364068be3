from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

class APIError(Exception):
    """Non-success response from the Karetek API"""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message

class KaretekAPIClient:
    """Async client for the Karetek HTTP API"""

    def __init__(self, base_url: str = "http://localhost:5000", token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        async with aiohttp.ClientSession() as session:
            async with session.request(method, f"{self.base_url}{path}", headers=headers, **kwargs) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = {}

                if response.status >= 400:
                    message = data.get("message") or data.get("error") or response.reason
                    logger.warning(f"{method} {path} failed with {response.status}: {message}")
                    raise APIError(response.status, str(message))
                return data

    # Auth
    async def register(self, email: str, password: str, first_name: str, last_name: str, **profile) -> Dict[str, Any]:
        data = await self._request("POST", "/api/auth/register", json={
            "email": email,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
            **profile,
        })
        self.token = data["token"]
        return data["user"]

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    def logout(self) -> None:
        self.token = None

    async def me(self) -> Dict[str, Any]:
        data = await self._request("GET", "/api/auth/me")
        return data["user"]

    # Chat
    async def chat(self, messages: List[Dict[str, str]], language: str = "en", session_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._request("POST", "/api/chat", json={
            "messages": messages,
            "language": language,
            "sessionId": session_id,
        })

    async def translate(self, messages: List[Dict[str, str]], target_language: str) -> str:
        data = await self._request("POST", "/api/chat/translate", json={
            "messages": messages,
            "targetLanguage": target_language,
        })
        return data["translatedText"]

    async def consultations(self, limit: int = 20) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/consultations", params={"limit": limit})
        return data.get("consultations") or []

    # Avatar
    async def speak(self, text: str, language: Optional[str] = None) -> Dict[str, Any]:
        payload = {"text": text}
        if language:
            payload["language"] = language
        return await self._request("POST", "/api/avatar/speak", json=payload)
