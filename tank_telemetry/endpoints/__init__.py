"""Módulo de endpoints HTTP.

Routers de la API del motor organizados por función.
"""

from .health import router as health_router
from .tanks import router as tanks_router
from .history import router as history_router
from .engine import router as engine_router

__all__ = [
    "health_router",
    "tanks_router",
    "history_router",
    "engine_router",
]
