"""Modelos de dominio del motor de telemetría."""

from .reading import (
    Reading,
    ReadingSource,
    ReadingStatus,
    SwitchState,
    normalize_water_level,
)

__all__ = [
    "Reading",
    "ReadingSource",
    "ReadingStatus",
    "SwitchState",
    "normalize_water_level",
]
