from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from loguru import logger

from karetek.api.deps import get_services
from karetek.config import settings
from karetek.core.oauth import OAuthProvider
from karetek.core.services import Services
from karetek.utils.io_helpers import AuthHelper

router = APIRouter()

def _provider(services: Services, name: str) -> OAuthProvider:
    provider = services.oauth.get(name)
    if provider is None:
        raise HTTPException(status_code=404, detail=f"{name.capitalize()} sign-in is not configured")
    return provider

def _failure_redirect(name: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_url}/login?error={name}_auth_failed", status_code=302)

@router.get("/{name}")
async def oauth_start(name: str, services: Services = Depends(get_services)):
    """Redirect the browser to the provider's consent page"""
    provider = _provider(services, name)
    return RedirectResponse(provider.authorization_url(), status_code=302)

@router.get("/{name}/callback")
async def oauth_callback(
    name: str,
    code: Optional[str] = None,
    error: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Exchange the code, find or create the user and hand a token to the frontend"""
    provider = _provider(services, name)

    if error or not code:
        logger.warning(f"{name} sign-in cancelled or denied: {error}")
        return _failure_redirect(name)

    try:
        profile = await provider.fetch_profile(code)
        user = await run_in_threadpool(
            services.repository.find_or_create_oauth_user,
            profile.provider,
            profile.oauth_id,
            profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            picture=profile.picture,
        )
        token = AuthHelper.create_access_token(user["id"], user["email"])

    except Exception as e:
        logger.error(f"{name} callback error: {e}")
        return _failure_redirect(name)

    query = urlencode({"token": token, "provider": name})
    return RedirectResponse(f"{settings.frontend_url}/auth/callback?{query}", status_code=302)
