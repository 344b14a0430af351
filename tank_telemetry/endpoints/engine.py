"""Control del ciclo de vida del motor."""

from fastapi import APIRouter, Depends

from ..engine import TankTelemetryEngine
from ..schemas import EngineActionResult, EngineStatusOut
from .deps import get_engine

router = APIRouter(prefix="/engine", tags=["engine"])


def _result(action: str, before: dict, engine: TankTelemetryEngine) -> EngineActionResult:
    after = engine.status()
    changed = (
        before["scheduler_state"] != after["scheduler_state"]
        or before["playback_running"] != after["playback_running"]
        or before["liveness"] != after["liveness"]
    )
    return EngineActionResult(action=action, changed=changed, status=EngineStatusOut(**after))


@router.get("/status", response_model=EngineStatusOut)
def get_status(engine: TankTelemetryEngine = Depends(get_engine)):
    return EngineStatusOut(**engine.status())


@router.post("/start", response_model=EngineActionResult)
def start(engine: TankTelemetryEngine = Depends(get_engine)):
    before = engine.status()
    engine.start()
    return _result("start", before, engine)


@router.post("/stop", response_model=EngineActionResult)
def stop(engine: TankTelemetryEngine = Depends(get_engine)):
    before = engine.status()
    engine.stop()
    return _result("stop", before, engine)


@router.post("/reset", response_model=EngineActionResult)
def reset(engine: TankTelemetryEngine = Depends(get_engine)):
    """Reinicia el detector de vitalidad. El historial se conserva."""
    before = engine.status()
    engine.reset()
    return _result("reset", before, engine)


@router.post("/restart", response_model=EngineActionResult)
def restart(engine: TankTelemetryEngine = Depends(get_engine)):
    """stop + reset + start del polling (sale de HALTED)."""
    before = engine.status()
    engine.restart_polling()
    return _result("restart", before, engine)
