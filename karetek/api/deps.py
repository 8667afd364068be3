from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from karetek.core.identity import ANONYMOUS, Authenticated, Identity
from karetek.core.services import Services
from karetek.utils.io_helpers import AuthHelper

security = HTTPBearer(auto_error=False)

def get_services(request: Request) -> Services:
    return request.app.state.services

async def get_identity(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Identity:
    """Optional authentication - anonymous when the token is absent or invalid"""
    if not credentials:
        return ANONYMOUS

    payload = AuthHelper.verify_token(credentials.credentials)
    if not payload:
        return ANONYMOUS
    return Authenticated(user_id=payload["id"], email=payload.get("email"))

async def require_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Authenticated:
    """Verify JWT token and return the caller"""
    if not credentials:
        raise HTTPException(status_code=401, detail="Access token required")

    payload = AuthHelper.verify_token(credentials.credentials)
    if not payload:
        logger.warning("Rejected request with invalid token")
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    return Authenticated(user_id=payload["id"], email=payload.get("email"))
