"""Fixtures compartidos por los tests del motor."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest

from tank_telemetry.config import EngineConfig
from tank_telemetry.domain.reading import Reading, ReadingSource, SwitchState


BASE_TIME = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Reloj de pared controlado por el test."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_reading():
    """Factory de lecturas con valores por defecto razonables."""

    def _make(
        water_level: Optional[float] = 12.0,
        timestamp: datetime = BASE_TIME,
        source: ReadingSource = ReadingSource.LIVE,
        entity_name: str = "Tank 1",
        pump: SwitchState = SwitchState.OFF,
    ) -> Reading:
        return Reading(
            entity_name=entity_name,
            timestamp=timestamp,
            water_level=water_level,
            pump_state=pump,
            source=source,
        )

    return _make


@pytest.fixture
def feed_payload():
    """Factory de payloads crudos del feed."""

    def _make(
        timestamp: str = "2024-01-01T00:00:00Z",
        water: Any = "12.5",
        pump: str = "1",
        emergency: str = "0",
    ) -> Dict[str, Any]:
        return {
            "timestamp": timestamp,
            "waterLevelRaw": water,
            "pumpRaw": pump,
            "emergencyRaw": emergency,
        }

    return _make


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(poll_interval_ms=15_000, playback_interval_ms=5_000, max_repeat=10)
