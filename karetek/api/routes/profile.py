from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from karetek.api.deps import get_services, require_user
from karetek.core.identity import Authenticated
from karetek.core.services import Services
from karetek.models.schemas import PROFILE_FIELD_MAP, PROFILE_LIST_FIELDS, ProfileUpdate
from karetek.utils.io_helpers import public_user

router = APIRouter()

@router.get("/profile")
async def get_profile(
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        user = await run_in_threadpool(services.repository.get_user, identity.user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Profile not found")
        return {"profile": public_user(user)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get profile for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")

@router.put("/profile")
async def update_profile(
    updates: ProfileUpdate,
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Update the provided profile fields; list fields replace the stored entries"""

    try:
        provided = updates.model_dump(exclude_unset=True)

        fields = {
            PROFILE_FIELD_MAP[name]: value
            for name, value in provided.items()
            if name in PROFILE_FIELD_MAP
        }
        lists = {
            PROFILE_LIST_FIELDS[name]: value or []
            for name, value in provided.items()
            if name in PROFILE_LIST_FIELDS
        }

        user = await run_in_threadpool(services.repository.update_profile, identity.user_id, fields, lists)
        if not user:
            raise HTTPException(status_code=404, detail="Profile not found")

        logger.info(f"Updated profile for {identity.user_id}: {sorted(provided)}")
        return {"message": "Profile updated successfully", "profile": public_user(user)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update profile for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")
