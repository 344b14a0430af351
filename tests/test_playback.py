"""Tests de la fuente de playback y de la precarga."""

import json
import threading
from datetime import timedelta

import pytest

from tank_telemetry.domain.reading import ReadingSource, SwitchState
from tank_telemetry.metrics import EngineStats
from tank_telemetry.playback import (
    PlaybackSource,
    generate_ambient_records,
    load_playback_records,
    readings_from_records,
)


@pytest.fixture
def preload(make_reading, clock):
    return [
        make_reading(float(10 + i), timestamp=clock.now + timedelta(seconds=5 * i), source=ReadingSource.SIMULATED)
        for i in range(4)
    ]


class TestPlaybackTick:

    def test_two_passes_repeat_in_order(self, preload):
        """2N ticks devuelven cada elemento exactamente dos veces, en orden."""
        source = PlaybackSource(preload)
        ticks = [source.tick() for _ in range(2 * len(preload))]
        assert ticks == preload + preload

    def test_empty_preload_is_noop(self):
        source = PlaybackSource([])
        assert source.tick() is None
        assert source.index == 0

    def test_rewind(self, preload):
        source = PlaybackSource(preload)
        source.tick()
        source.tick()
        source.rewind()
        assert source.tick() is preload[0]

    def test_run_tick_emits_and_counts(self, preload):
        emitted = []
        stats = EngineStats()
        source = PlaybackSource(preload, emit=emitted.append, stats=stats)

        source.run_tick()
        source.run_tick()

        assert emitted == preload[:2]
        assert stats.playback_ticks == 2

    def test_emit_failure_does_not_raise(self, preload):
        def boom(reading):
            raise RuntimeError("view unavailable")

        stats = EngineStats()
        source = PlaybackSource(preload, emit=boom, stats=stats)
        assert source.run_tick() is None
        assert stats.failed == 1
        # La secuencia avanza igualmente
        assert source.index == 1


    def test_run_tick_restamps_with_clock(self, preload, clock):
        emitted = []
        source = PlaybackSource(preload, emit=emitted.append, clock=clock)

        clock.advance(hours=3)
        reading = source.run_tick()

        assert reading.timestamp == clock.now
        assert emitted == [reading]
        assert reading.water_level == preload[0].water_level
        # tick() sigue devolviendo la precarga original
        assert source.tick() is preload[1]


class TestPlaybackTimer:

    def test_start_requires_emit(self, preload):
        with pytest.raises(RuntimeError):
            PlaybackSource(preload).start()

    def test_timer_emits_until_stopped(self, preload):
        got_two = threading.Event()
        emitted = []

        def emit(reading):
            emitted.append(reading)
            if len(emitted) >= 2:
                got_two.set()

        source = PlaybackSource(preload, emit=emit, interval_seconds=0.01)
        assert source.start() is True
        assert source.start() is False
        try:
            assert got_two.wait(2.0)
        finally:
            source.stop()
            source.join(2.0)

        assert not source.is_running
        count = len(emitted)
        assert emitted[:2] == preload[:2]
        # Tras stop no hay más emisiones
        assert len(emitted) == count


class TestPreload:

    def test_readings_from_records(self):
        records = [
            {"tankName": "Tank 2", "timestamp": "2024-01-01T00:00:00Z", "waterLevel": 18,
             "pumpState": "ON", "floatSensor": "1"},
            {"timestamp": "2024-01-01T00:00:05Z", "waterLevel": "bad"},
            {"waterLevel": 10},
            "not-a-record",
        ]
        readings = readings_from_records(records, "Tank 1")

        assert len(readings) == 2
        assert readings[0].entity_name == "Tank 2"
        assert readings[0].pump_state == SwitchState.ON
        assert readings[0].emergency_state == SwitchState.ON
        assert readings[0].source == ReadingSource.SIMULATED
        assert readings[1].entity_name == "Tank 1"
        assert readings[1].is_missing

    def test_load_playback_records(self, tmp_path):
        path = tmp_path / "playback.json"
        path.write_text(json.dumps([
            {"timestamp": "2024-01-01T00:00:00Z", "waterLevel": 12.0, "source": "live"},
        ]))
        readings = load_playback_records(path, "Tank 1")
        assert len(readings) == 1
        assert readings[0].source == ReadingSource.LIVE

    def test_load_rejects_non_array(self, tmp_path):
        path = tmp_path / "playback.json"
        path.write_text(json.dumps({"timestamp": "2024-01-01T00:00:00Z"}))
        with pytest.raises(ValueError):
            load_playback_records(path, "Tank 1")

    def test_ambient_random_walk_is_bounded(self, clock):
        readings = generate_ambient_records(200, "Tank 3", seed=7, clock=clock)

        assert len(readings) == 200
        assert all(5.0 <= r.water_level <= 40.0 for r in readings)
        assert all(r.source == ReadingSource.SIMULATED for r in readings)
        assert readings[-1].timestamp == clock.now
        steps = [abs(b.water_level - a.water_level) for a, b in zip(readings, readings[1:])]
        assert max(steps) <= 1.1

    def test_ambient_is_deterministic_with_seed(self, clock):
        a = generate_ambient_records(10, "Tank 3", seed=1, clock=clock)
        b = generate_ambient_records(10, "Tank 3", seed=1, clock=clock)
        assert [r.water_level for r in a] == [r.water_level for r in b]
