from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .endpoints import engine_router, health_router, history_router, tanks_router
from .engine import TankTelemetryEngine, build_engine

logger = logging.getLogger(__name__)


def create_app(engine: Optional[TankTelemetryEngine] = None, autostart: bool = True) -> FastAPI:
    """Crea la app HTTP alrededor de un motor.

    Sin `engine` se construye desde el entorno al arrancar (lifespan).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.engine is None:
            app.state.engine = build_engine()
        if autostart:
            app.state.engine.start()
            logger.info("[API] Engine started: %s", app.state.engine.status()["scheduler_state"])
        try:
            yield
        finally:
            app.state.engine.stop()

    app = FastAPI(title="Tank Telemetry Service", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine

    app.include_router(health_router)
    app.include_router(tanks_router)
    app.include_router(history_router)
    app.include_router(engine_router)
    return app


app = create_app()
