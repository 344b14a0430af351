"""Vista del estado actual por tanque.

FUENTE ÚNICA DE VERDAD para la última lectura reconciliada de cada entidad.
Los colaboradores (dashboard, API) solo leen; el motor es el único escritor.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Union

from ..domain.reading import Reading, ReadingSource, ReadingStatus


@dataclass(frozen=True)
class MissingDataMarker:
    """La entidad está esperando datos (sin lectura o sin nivel de agua)."""

    entity_name: str
    last_timestamp: Optional[datetime] = None
    last_source: Optional[ReadingSource] = None
    reason: str = "awaiting data"

    def to_dict(self) -> dict:
        return {
            "entity_name": self.entity_name,
            "awaiting_data": True,
            "last_timestamp": self.last_timestamp.isoformat() if self.last_timestamp else None,
            "last_source": self.last_source.value if self.last_source else None,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class TankSnapshot:
    """Campos derivados por tanque para la capa de presentación."""

    entity_name: str
    water_level: Optional[float]
    fuel_level: Optional[float]
    pump_state: str
    emergency_state: str
    status: Optional[ReadingStatus]
    source: ReadingSource
    timestamp: datetime

    @property
    def awaiting_data(self) -> bool:
        return self.water_level is None

    @property
    def is_contaminated(self) -> bool:
        return self.status == ReadingStatus.WARNING

    @classmethod
    def from_reading(cls, reading: Reading) -> "TankSnapshot":
        return cls(
            entity_name=reading.entity_name,
            water_level=reading.water_level,
            fuel_level=reading.fuel_level,
            pump_state=reading.pump_state.value,
            emergency_state=reading.emergency_state.value,
            status=reading.status,
            source=reading.source,
            timestamp=reading.timestamp,
        )


CurrentValue = Union[Reading, MissingDataMarker]


class CurrentStateView:
    """Última lectura por entidad + procedencia del último escritor.

    Cada `update` sustituye el slot completo (lectura y snapshot derivados
    juntos), así un lector nunca ve un estado a medias.
    """

    def __init__(self) -> None:
        self._slots: Dict[str, tuple[Reading, TankSnapshot]] = {}
        self._lock = threading.Lock()

    def update(self, reading: Reading) -> None:
        slot = (reading, TankSnapshot.from_reading(reading))
        with self._lock:
            self._slots[reading.entity_name] = slot

    def get_current(self, entity_name: str) -> CurrentValue:
        """Lectura actual, o MissingDataMarker si aún no hay dato utilizable."""
        with self._lock:
            slot = self._slots.get(entity_name)
        if slot is None:
            return MissingDataMarker(entity_name=entity_name, reason="no reading received yet")
        reading = slot[0]
        if reading.is_missing:
            return MissingDataMarker(
                entity_name=entity_name,
                last_timestamp=reading.timestamp,
                last_source=reading.source,
                reason="latest reading has no water level",
            )
        return reading

    def get_tank_snapshot(self, entity_name: str) -> Optional[TankSnapshot]:
        with self._lock:
            slot = self._slots.get(entity_name)
        return slot[1] if slot else None

    def last_source(self, entity_name: str) -> Optional[ReadingSource]:
        with self._lock:
            slot = self._slots.get(entity_name)
        return slot[0].source if slot else None

    def entities(self) -> list[str]:
        with self._lock:
            return sorted(self._slots)
