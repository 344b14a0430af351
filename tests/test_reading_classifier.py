"""Tests del modelo Reading y del clasificador de umbral."""

import math
from datetime import datetime, timezone

import pytest

from tank_telemetry.classification.classifier import (
    ClassifierThresholds,
    ReadingClassifier,
    classify,
)
from tank_telemetry.domain.reading import (
    Reading,
    ReadingSource,
    ReadingStatus,
    SwitchState,
    normalize_water_level,
)


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# READING
# =============================================================================

class TestReadingInvariants:
    """water_level + fuel_level == 100 y dato faltante explícito."""

    @pytest.mark.parametrize("level", [0.0, 0.1, 12.5, 16.0, 33.3, 57.7, 99.9, 100.0])
    def test_fuel_complements_water(self, level):
        reading = Reading(entity_name="Tank 1", timestamp=BASE_TIME, water_level=level)
        assert reading.water_level + reading.fuel_level == 100

    def test_missing_water_has_no_fuel_nor_status(self):
        reading = Reading(entity_name="Tank 1", timestamp=BASE_TIME, water_level=None)
        assert reading.is_missing
        assert reading.fuel_level is None
        assert reading.status is None

    def test_to_dict(self):
        reading = Reading(
            entity_name="Tank 1",
            timestamp=BASE_TIME,
            water_level=30.0,
            pump_state=SwitchState.ON,
        )
        data = reading.to_dict()
        assert data["fuel_level"] == 70.0
        assert data["pump_state"] == "ON"
        assert data["source"] == "LIVE"
        assert data["timestamp"] == "2024-01-01T00:00:00+00:00"


class TestNormalizeWaterLevel:

    @pytest.mark.parametrize("raw,expected", [
        ("12.5", 12.5),
        (" 40 ", 40.0),
        (7, 7.0),
        ("0", 0.0),
        ("100", 100.0),
    ])
    def test_valid_values(self, raw, expected):
        assert normalize_water_level(raw) == expected

    @pytest.mark.parametrize("raw", [
        None, "", "abc", "NaN", "Infinity", float("nan"), math.inf, -0.5, 100.5, True,
    ])
    def test_unusable_values_become_missing(self, raw):
        """Nunca se sustituye por 0."""
        assert normalize_water_level(raw) is None


class TestSwitchState:

    @pytest.mark.parametrize("raw", ["1", 1, "on", True, "TRUE"])
    def test_on(self, raw):
        assert SwitchState.from_raw(raw) == SwitchState.ON

    @pytest.mark.parametrize("raw", ["0", 0, None, "", "off", False, "2"])
    def test_off(self, raw):
        assert SwitchState.from_raw(raw) == SwitchState.OFF


# =============================================================================
# CLASIFICADOR
# =============================================================================

class TestClassify:

    def test_above_live_threshold_is_warning(self):
        result = classify(25, 16)
        assert result.status == ReadingStatus.WARNING
        assert result.is_missing is False

    def test_threshold_is_exclusive(self):
        assert classify(16.0, 16.0).status == ReadingStatus.OK
        assert classify(16.01, 16.0).status == ReadingStatus.WARNING

    def test_missing(self):
        result = classify(None, 16)
        assert result.status is None
        assert result.is_missing is True


class TestReadingClassifier:

    def test_threshold_depends_on_source(self, make_reading):
        classifier = ReadingClassifier(ClassifierThresholds(live=16.0, simulated=20.0))

        live = classifier.classify_reading(make_reading(18.0, source=ReadingSource.LIVE))
        simulated = classifier.classify_reading(make_reading(18.0, source=ReadingSource.SIMULATED))

        assert live.status == ReadingStatus.WARNING
        assert simulated.status == ReadingStatus.OK

    def test_returns_new_reading(self, make_reading):
        original = make_reading(30.0)
        classified = ReadingClassifier().classify_reading(original)
        assert original.status == ReadingStatus.OK
        assert classified.status == ReadingStatus.WARNING
        assert classified.fuel_level == 70.0

    def test_missing_stays_missing(self, make_reading):
        classified = ReadingClassifier().classify_reading(make_reading(None))
        assert classified.status is None
        assert classified.is_missing
