from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from karetek.api.deps import get_services, require_user
from karetek.core.identity import Authenticated
from karetek.core.services import Services
from karetek.models.schemas import HealthMetricCreate, HealthMetricUpdate
from karetek.utils.io_helpers import ValidationHelper

router = APIRouter()

def _metric_columns(data: dict) -> dict:
    columns = {}
    if data.get("value") is not None:
        columns["value"] = str(data["value"])
    if data.get("recordedAt") is not None:
        columns["recorded_at"] = data["recordedAt"]
    if data.get("unit"):
        columns["unit"] = data["unit"]
    if "notes" in data:
        columns["notes"] = data["notes"]
    return columns

@router.get("/health-metrics")
async def list_health_metrics(
    type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    """List the caller's health metrics, newest first"""

    try:
        metrics = await run_in_threadpool(services.repository.list_metrics, identity.user_id, metric_type=type, limit=limit)
        return {"metrics": metrics}

    except Exception as e:
        logger.error(f"Failed to list health metrics for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch health metrics")

@router.post("/health-metrics", status_code=201)
async def create_health_metric(
    metric: HealthMetricCreate,
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        data = metric.model_dump()
        validation_errors = ValidationHelper.validate_metric(data)
        if validation_errors:
            raise HTTPException(status_code=400, detail=validation_errors["required"])

        created = await run_in_threadpool(
            services.repository.create_metric,
            identity.user_id,
            metric_type=metric.metricType,
            **_metric_columns(data)
        )
        logger.info(f"Recorded {metric.metricType} metric for {identity.user_id}")

        return {"message": "Health metric added successfully", "metric": created}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create health metric for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add health metric")

@router.put("/health-metrics/{metric_id}")
async def update_health_metric(
    metric_id: str,
    updates: HealthMetricUpdate,
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        updated = await run_in_threadpool(
            services.repository.update_metric,
            identity.user_id,
            metric_id,
            _metric_columns(updates.model_dump(exclude_unset=True))
        )
        if not updated:
            raise HTTPException(status_code=404, detail="Health metric not found")

        return {"message": "Health metric updated successfully", "metric": updated}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update health metric {metric_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update health metric")

@router.delete("/health-metrics/{metric_id}")
async def delete_health_metric(
    metric_id: str,
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    try:
        deleted = await run_in_threadpool(services.repository.delete_metric, identity.user_id, metric_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Health metric not found")

        logger.info(f"Deleted health metric {metric_id} for {identity.user_id}")
        return {"message": "Health metric deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete health metric {metric_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete health metric")
