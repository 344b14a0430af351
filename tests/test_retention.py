"""Tests del buffer de retención, consultas y resumen/exportación."""

import csv
import io
from datetime import timedelta

import pytest

from tank_telemetry.domain.reading import Reading, ReadingSource, ReadingStatus
from tank_telemetry.retention.buffer import ReadingFilter, RetentionBuffer
from tank_telemetry.retention.summary import EXPORT_HEADERS, export_csv, summarize


WINDOW = timedelta(milliseconds=7_200_000)


@pytest.fixture
def buffer(clock) -> RetentionBuffer:
    return RetentionBuffer(window=WINDOW, clock=clock)


# =============================================================================
# VENTANA DE TIEMPO
# =============================================================================

class TestRetentionWindow:

    def test_evicts_reading_older_than_window(self, buffer, clock, make_reading):
        first = make_reading(10.0, timestamp=clock.now)
        buffer.append(first)

        clock.advance(milliseconds=7_200_001)
        second = make_reading(11.0, timestamp=clock.now)
        buffer.append(second)

        assert len(buffer) == 1
        assert list(buffer.query()) == [second]

    def test_reading_exactly_at_window_edge_is_kept(self, buffer, clock, make_reading):
        buffer.append(make_reading(10.0, timestamp=clock.now))
        clock.advance(milliseconds=7_200_000)
        buffer.append(make_reading(11.0, timestamp=clock.now))
        assert len(buffer) == 2

    def test_every_retained_entry_is_within_window(self, buffer, clock, make_reading):
        for i in range(40):
            # Timestamps con desfase variable respecto al reloj
            buffer.append(make_reading(float(i), timestamp=clock.now - timedelta(minutes=(i * 7) % 150)))
            clock.advance(minutes=11)
            for r in buffer.query():
                assert clock.now - timedelta(minutes=11) - r.timestamp <= WINDOW

    def test_arrives_already_expired(self, buffer, clock, make_reading):
        buffer.append(make_reading(10.0, timestamp=clock.now - timedelta(hours=3)))
        assert len(buffer) == 0

    def test_evict_expired_without_append(self, buffer, clock, make_reading):
        buffer.append(make_reading(10.0, timestamp=clock.now))
        clock.advance(hours=2, seconds=1)
        assert buffer.evict_expired() == 1
        assert len(buffer) == 0

    def test_out_of_order_timestamps(self, buffer, clock, make_reading):
        """El orden de inserción no es orden por timestamp entre fuentes."""
        newer = make_reading(10.0, timestamp=clock.now)
        older = make_reading(20.0, timestamp=clock.now - timedelta(minutes=90), source=ReadingSource.SIMULATED)
        buffer.append(newer)
        buffer.append(older)

        clock.advance(minutes=45)
        buffer.evict_expired()

        assert list(buffer.query()) == [newer]


# =============================================================================
# CONSULTAS
# =============================================================================

class TestQueries:

    @pytest.fixture
    def filled(self, buffer, clock, make_reading):
        readings = [
            make_reading(10.0, timestamp=clock.now - timedelta(minutes=30)).with_status(ReadingStatus.OK),
            make_reading(25.0, timestamp=clock.now - timedelta(minutes=20)).with_status(ReadingStatus.WARNING),
            make_reading(30.0, timestamp=clock.now - timedelta(minutes=10), source=ReadingSource.SIMULATED)
            .with_status(ReadingStatus.WARNING),
            make_reading(None, timestamp=clock.now),
        ]
        for r in readings:
            buffer.append(r)
        return readings

    def test_query_without_filter_keeps_insertion_order(self, buffer, filled):
        assert list(buffer.query()) == filled

    def test_query_by_source(self, buffer, filled):
        result = list(buffer.query(ReadingFilter.build(sources=[ReadingSource.SIMULATED])))
        assert result == [filled[2]]

    def test_query_by_status(self, buffer, filled):
        result = list(buffer.query(ReadingFilter.build(statuses=[ReadingStatus.WARNING])))
        assert result == [filled[1], filled[2]]

    def test_query_date_range_is_inclusive(self, buffer, filled):
        f = ReadingFilter.build(start=filled[1].timestamp, end=filled[2].timestamp)
        assert list(buffer.query(f)) == [filled[1], filled[2]]

    def test_query_is_rescanned_per_call(self, buffer, filled, make_reading, clock):
        first = list(buffer.query())
        buffer.append(make_reading(5.0, timestamp=clock.now))
        assert len(list(buffer.query())) == len(first) + 1

    def test_snapshot_newest_first(self, buffer, filled):
        assert buffer.snapshot(2) == [filled[3], filled[2]]

    def test_snapshot_limits(self, buffer, filled):
        assert buffer.snapshot(0) == []
        assert buffer.snapshot(100) == list(reversed(filled))


# =============================================================================
# RESUMEN Y EXPORTACIÓN
# =============================================================================

class TestSummary:

    def test_summary_counts(self, make_reading):
        readings = [
            make_reading(10.0).with_status(ReadingStatus.OK),
            make_reading(20.0).with_status(ReadingStatus.WARNING),
            make_reading(30.5).with_status(ReadingStatus.WARNING),
            make_reading(None),
        ]
        summary = summarize(readings)

        assert summary.total == 4
        assert summary.ok_count == 1
        assert summary.warning_count == 2
        assert summary.awaiting_count == 1
        # El faltante no entra en la media
        assert summary.average_water_level == pytest.approx(20.17, abs=0.01)

    def test_empty_summary(self):
        summary = summarize([])
        assert summary.total == 0
        assert summary.average_water_level is None
        assert summary.to_dict()["average_water_level"] is None


class TestExportCsv:

    def test_writes_header_and_rows(self, make_reading):
        readings = [
            make_reading(12.5).with_status(ReadingStatus.OK),
            make_reading(None),
        ]
        buf = io.StringIO()
        assert export_csv(readings, buf) == 2

        rows = list(csv.reader(io.StringIO(buf.getvalue())))
        assert tuple(rows[0]) == EXPORT_HEADERS
        assert rows[1][1:] == ["12.5", "87.5", "OFF", "OFF", "OK", "LIVE"]
        assert rows[2][5] == "AWAITING_DATA"
