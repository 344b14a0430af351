"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..engine import TankTelemetryEngine
from ..scheduler import SchedulerState
from .deps import get_engine

router = APIRouter(tags=["health"])


@router.get("/health")
def health(engine: TankTelemetryEngine = Depends(get_engine)):
    """Liveness probe.

    `degraded` cuando el feed en vivo quedó detenido por timestamps
    repetidos; el proceso sigue sirviendo historial y playback.
    """
    scheduler = engine.scheduler
    if scheduler is not None and scheduler.state == SchedulerState.HALTED:
        return {"status": "degraded", "reason": scheduler.halt_reason}
    return {"status": "ok"}


@router.get("/metrics")
def metrics():
    """Prometheus text exposition."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
