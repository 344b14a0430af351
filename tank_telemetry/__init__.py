"""Motor de ingesta y retención de telemetría del tanque.

Módulos:
- domain: modelo Reading y enums de estado/fuente
- classification: clasificador de umbral y detector de vitalidad
- retention: buffer por ventana de tiempo, resumen y exportación CSV
- state: vista del estado actual por tanque
- scheduler / playback: los dos timers de entrada
- transports: cliente del canal ThingSpeak
- engine: fachada que serializa la ruta de escritura
- endpoints / main: API HTTP (FastAPI)
"""

from .config import EngineConfig, SourceMode
from .domain import Reading, ReadingSource, ReadingStatus, SwitchState
from .engine import TankTelemetryEngine, build_engine
from .errors import ConfigError, ParseError, StaleSourceError, TelemetryError, TransportError

__all__ = [
    "EngineConfig",
    "SourceMode",
    "Reading",
    "ReadingSource",
    "ReadingStatus",
    "SwitchState",
    "TankTelemetryEngine",
    "build_engine",
    "ConfigError",
    "ParseError",
    "StaleSourceError",
    "TelemetryError",
    "TransportError",
]
