from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from loguru import logger
from pydantic import ValidationError

from karetek.api.deps import get_services, require_user
from karetek.core.identity import Authenticated
from karetek.core.services import Services
from karetek.models.schemas import ENTRY_FIELD_MAP, ENTRY_SCHEMAS, RecordKind
from karetek.utils.io_helpers import ValidationHelper

router = APIRouter()

def _parse_entry(kind: str, payload: dict, partial: bool = False) -> dict:
    """Validate ``payload`` against the kind's schema and map it to column names"""
    schema = ENTRY_SCHEMAS.get(kind)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"Unknown health record type: {kind}")

    try:
        entry = schema.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {kind} entry: {e.errors()[0]['msg']}")

    data = entry.model_dump(exclude_unset=partial)
    if not partial:
        validation_errors = ValidationHelper.validate_record_entry(data)
        if validation_errors:
            raise HTTPException(status_code=400, detail=validation_errors["name"])
    elif "name" in data and not (data["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name is required")

    return {ENTRY_FIELD_MAP[name]: value for name, value in data.items()}

@router.get("/health-records")
async def list_health_records(
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Medications, allergies and conditions for the caller"""

    try:
        records = {}
        for kind in RecordKind:
            records[kind.value] = await run_in_threadpool(services.repository.list_entries, identity.user_id, kind.value)
        return records

    except Exception as e:
        logger.error(f"Failed to list health records for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch health records")

@router.post("/health-records/{kind}", status_code=201)
async def add_health_record(
    kind: str,
    payload: dict = Body(...),
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        fields = _parse_entry(kind, payload)
        entry = await run_in_threadpool(services.repository.add_entry, identity.user_id, kind, fields)
        logger.info(f"Added {kind} entry {entry['id']} for {identity.user_id}")
        return {"entry": entry}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to add {kind} entry for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add health record")

@router.put("/health-records/{kind}/{entry_id}")
async def update_health_record(
    kind: str,
    entry_id: str,
    payload: dict = Body(...),
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        fields = _parse_entry(kind, payload, partial=True)
        entry = await run_in_threadpool(services.repository.update_entry, identity.user_id, kind, entry_id, fields)
        if not entry:
            raise HTTPException(status_code=404, detail="Health record not found")
        return {"entry": entry}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update {kind} entry {entry_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update health record")

@router.delete("/health-records/{kind}/{entry_id}")
async def delete_health_record(
    kind: str,
    entry_id: str,
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        if kind not in ENTRY_SCHEMAS:
            raise HTTPException(status_code=404, detail=f"Unknown health record type: {kind}")

        deleted = await run_in_threadpool(services.repository.delete_entry, identity.user_id, kind, entry_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Health record not found")

        logger.info(f"Deleted {kind} entry {entry_id} for {identity.user_id}")
        return {"message": "Health record deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete {kind} entry {entry_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete health record")
