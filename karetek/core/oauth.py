"""Authorization-code sign-in with Google and Facebook.

Each provider builds the consent redirect and exchanges the returned code
for a normalised :class:`OAuthProfile`. Only providers with credentials in
the settings are registered.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlencode

import aiohttp
from loguru import logger

from karetek.config import Settings

class OAuthError(Exception):
    """The provider rejected the code or returned an unusable profile"""

@dataclass
class OAuthProfile:
    provider: str
    oauth_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    picture: Optional[str] = None

class OAuthProvider(ABC):
    name = "unknown"

    def __init__(self, client_id: str, client_secret: str, callback_url: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url

    @abstractmethod
    def authorization_url(self) -> str:
        pass

    @abstractmethod
    async def fetch_profile(self, code: str) -> OAuthProfile:
        pass

    @staticmethod
    async def _json(response: aiohttp.ClientResponse, what: str) -> dict:
        if response.status != 200:
            error_text = await response.text()
            raise OAuthError(f"{what} failed with {response.status}: {error_text}")
        return await response.json()

class GoogleOAuthProvider(OAuthProvider):
    name = "google"

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    def authorization_url(self) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": "profile email",
        })
        return f"{self.AUTHORIZE_URL}?{query}"

    async def fetch_profile(self, code: str) -> OAuthProfile:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.TOKEN_URL, data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.callback_url,
                    "grant_type": "authorization_code",
                }) as response:
                    token = await self._json(response, "Google token exchange")

                headers = {"Authorization": f"Bearer {token['access_token']}"}
                async with session.get(self.USERINFO_URL, headers=headers) as response:
                    info = await self._json(response, "Google userinfo")

        except (aiohttp.ClientError, KeyError) as e:
            raise OAuthError(f"Google sign-in failed: {e}") from e

        if not info.get("email"):
            raise OAuthError("No email provided by Google")

        return OAuthProfile(
            provider=self.name,
            oauth_id=str(info.get("sub")),
            email=info["email"],
            first_name=info.get("given_name"),
            last_name=info.get("family_name"),
            picture=info.get("picture"),
        )

class FacebookOAuthProvider(OAuthProvider):
    name = "facebook"

    GRAPH_URL = "https://graph.facebook.com/v18.0"
    AUTHORIZE_URL = "https://www.facebook.com/v18.0/dialog/oauth"

    def authorization_url(self) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": "email",
        })
        return f"{self.AUTHORIZE_URL}?{query}"

    async def fetch_profile(self, code: str) -> OAuthProfile:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{self.GRAPH_URL}/oauth/access_token", params={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.callback_url,
                    "code": code,
                }) as response:
                    token = await self._json(response, "Facebook token exchange")

                async with session.get(f"{self.GRAPH_URL}/me", params={
                    "fields": "id,email,first_name,last_name,picture.type(large)",
                    "access_token": token["access_token"],
                }) as response:
                    info = await self._json(response, "Facebook profile")

        except (aiohttp.ClientError, KeyError) as e:
            raise OAuthError(f"Facebook sign-in failed: {e}") from e

        if not info.get("email"):
            raise OAuthError("No email provided by Facebook")

        return OAuthProfile(
            provider=self.name,
            oauth_id=str(info.get("id")),
            email=info["email"],
            first_name=info.get("first_name"),
            last_name=info.get("last_name"),
            picture=(info.get("picture") or {}).get("data", {}).get("url"),
        )

def build_oauth_providers(settings: Settings) -> Dict[str, OAuthProvider]:
    providers: Dict[str, OAuthProvider] = {}

    if settings.google_client_id and settings.google_client_secret:
        providers["google"] = GoogleOAuthProvider(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_callback_url,
        )
    if settings.facebook_app_id and settings.facebook_app_secret:
        providers["facebook"] = FacebookOAuthProvider(
            settings.facebook_app_id,
            settings.facebook_app_secret,
            settings.facebook_callback_url,
        )

    logger.info(f"OAuth providers enabled: {sorted(providers) or 'none'}")
    return providers
