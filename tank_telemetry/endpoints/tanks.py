"""Estado actual por tanque."""

from fastapi import APIRouter, Depends, HTTPException

from ..engine import TankTelemetryEngine
from ..schemas import CurrentReadingOut, TankSnapshotOut
from .deps import get_engine

router = APIRouter(prefix="/tanks", tags=["tanks"])


@router.get("/{entity_name}/current", response_model=CurrentReadingOut)
def get_current(entity_name: str, engine: TankTelemetryEngine = Depends(get_engine)):
    """Última lectura de la entidad o marcador de "awaiting data"."""
    return CurrentReadingOut.from_current(engine.get_current(entity_name))


@router.get("/{entity_name}/snapshot", response_model=TankSnapshotOut)
def get_snapshot(entity_name: str, engine: TankTelemetryEngine = Depends(get_engine)):
    snapshot = engine.get_tank_snapshot(entity_name)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"no readings for {entity_name}")
    return TankSnapshotOut.from_snapshot(snapshot)
