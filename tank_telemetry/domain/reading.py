"""Modelo de dominio para lecturas del tanque."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


WATER_LEVEL_MIN = 0.0
WATER_LEVEL_MAX = 100.0


class ReadingStatus(str, Enum):
    """Estado de contaminación de una lectura."""
    OK = "OK"
    WARNING = "WARNING"


class ReadingSource(str, Enum):
    """Procedencia de la lectura."""
    LIVE = "LIVE"            # Feed ThingSpeak
    SIMULATED = "SIMULATED"  # Playback / tanques ambientales


class SwitchState(str, Enum):
    ON = "ON"
    OFF = "OFF"

    @classmethod
    def from_raw(cls, raw: object) -> "SwitchState":
        """'1' (o 1, True, 'on') → ON; cualquier otra cosa → OFF."""
        if isinstance(raw, bool):
            return cls.ON if raw else cls.OFF
        text = str(raw).strip().upper() if raw is not None else ""
        return cls.ON if text in ("1", "ON", "TRUE") else cls.OFF


def normalize_water_level(raw: object) -> Optional[float]:
    """Convierte un nivel de agua crudo a float dentro de [0, 100].

    Devuelve None si el valor no es parseable, es NaN/Infinity o está
    fuera del dominio. Nunca se sustituye por 0.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    if not (WATER_LEVEL_MIN <= value <= WATER_LEVEL_MAX):
        return None
    return value


@dataclass(frozen=True)
class Reading:
    """Una observación normalizada del tanque.

    Es el contrato único que fluye por el motor:
    feed/playback → parser → clasificador → vista actual → buffer.

    `fuel_level` se deriva siempre de `water_level`, así que
    water_level + fuel_level == 100 cuando ambos existen.
    """

    entity_name: str
    timestamp: datetime
    water_level: Optional[float]
    pump_state: SwitchState = SwitchState.OFF
    emergency_state: SwitchState = SwitchState.OFF
    status: Optional[ReadingStatus] = ReadingStatus.OK
    source: ReadingSource = ReadingSource.LIVE
    fuel_level: Optional[float] = field(init=False)

    def __post_init__(self) -> None:
        fuel = None if self.water_level is None else 100.0 - self.water_level
        object.__setattr__(self, "fuel_level", fuel)
        # Sin nivel de agua no hay estado que reportar
        if self.water_level is None and self.status is not None:
            object.__setattr__(self, "status", None)

    @property
    def is_missing(self) -> bool:
        """True si la lectura no trae nivel de agua utilizable."""
        return self.water_level is None

    def with_status(self, status: Optional[ReadingStatus]) -> "Reading":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "entity_name": self.entity_name,
            "timestamp": self.timestamp.isoformat(),
            "water_level": self.water_level,
            "fuel_level": self.fuel_level,
            "pump_state": self.pump_state.value,
            "emergency_state": self.emergency_state.value,
            "status": self.status.value if self.status else None,
            "source": self.source.value,
        }
