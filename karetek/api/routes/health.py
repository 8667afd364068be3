from datetime import datetime, timezone

from fastapi import APIRouter, Response

from karetek.config import settings
from karetek.utils.prometheus_metrics import get_metrics, get_metrics_content_type

router = APIRouter()

@router.get("/health")
async def health_check():
    """Liveness check"""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint"""
    if not settings.prometheus_enabled:
        return {"message": "Metrics disabled"}

    metrics_data = get_metrics()
    return Response(
        content=metrics_data,
        media_type=get_metrics_content_type()
    )
