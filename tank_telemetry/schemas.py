from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .domain.reading import Reading, ReadingSource, ReadingStatus
from .state.current_state import MissingDataMarker, TankSnapshot


class ReadingOut(BaseModel):
    entity_name: str
    timestamp: datetime
    water_level: Optional[float] = None
    fuel_level: Optional[float] = None
    pump_state: str
    emergency_state: str
    status: Optional[ReadingStatus] = None
    source: ReadingSource

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            entity_name=reading.entity_name,
            timestamp=reading.timestamp,
            water_level=reading.water_level,
            fuel_level=reading.fuel_level,
            pump_state=reading.pump_state.value,
            emergency_state=reading.emergency_state.value,
            status=reading.status,
            source=reading.source,
        )


class CurrentReadingOut(BaseModel):
    # awaiting_data=True → no hay nivel de agua que mostrar ("Awaiting data...")
    entity_name: str
    awaiting_data: bool
    reading: Optional[ReadingOut] = None
    last_timestamp: Optional[datetime] = None
    last_source: Optional[ReadingSource] = None
    reason: Optional[str] = None

    @classmethod
    def from_current(cls, value: Reading | MissingDataMarker) -> "CurrentReadingOut":
        if isinstance(value, MissingDataMarker):
            return cls(
                entity_name=value.entity_name,
                awaiting_data=True,
                last_timestamp=value.last_timestamp,
                last_source=value.last_source,
                reason=value.reason,
            )
        return cls(
            entity_name=value.entity_name,
            awaiting_data=False,
            reading=ReadingOut.from_reading(value),
            last_timestamp=value.timestamp,
            last_source=value.source,
        )


class TankSnapshotOut(BaseModel):
    entity_name: str
    water_level: Optional[float] = None
    fuel_level: Optional[float] = None
    pump_state: str
    emergency_state: str
    status: Optional[ReadingStatus] = None
    source: ReadingSource
    timestamp: datetime
    awaiting_data: bool
    is_contaminated: bool

    @classmethod
    def from_snapshot(cls, snapshot: TankSnapshot) -> "TankSnapshotOut":
        return cls(
            entity_name=snapshot.entity_name,
            water_level=snapshot.water_level,
            fuel_level=snapshot.fuel_level,
            pump_state=snapshot.pump_state,
            emergency_state=snapshot.emergency_state,
            status=snapshot.status,
            source=snapshot.source,
            timestamp=snapshot.timestamp,
            awaiting_data=snapshot.awaiting_data,
            is_contaminated=snapshot.is_contaminated,
        )


class HistoryOut(BaseModel):
    count: int
    readings: List[ReadingOut] = Field(default_factory=list)


class HistorySummaryOut(BaseModel):
    total: int
    ok_count: int
    warning_count: int
    awaiting_count: int
    average_water_level: Optional[float] = None


class LivenessOut(BaseModel):
    status: str
    repeat_count: int
    last_timestamp: Optional[datetime] = None


class EngineStatusOut(BaseModel):
    entity_name: str
    source_mode: str
    scheduler_state: str
    halt_reason: Optional[str] = None
    liveness: Optional[LivenessOut] = None
    playback_running: bool
    playback_fallback: bool
    buffer_size: int
    stats: Dict[str, float] = Field(default_factory=dict)


class EngineActionResult(BaseModel):
    action: str
    changed: bool
    status: EngineStatusOut
