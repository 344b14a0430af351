from __future__ import annotations

from fastapi import HTTPException, Request

from ..engine import TankTelemetryEngine


def get_engine(request: Request) -> TankTelemetryEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="engine not initialized")
    return engine
