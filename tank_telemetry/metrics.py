"""Métricas del motor: contadores Prometheus + estadísticas en proceso."""

from __future__ import annotations

import threading
import time

from prometheus_client import Counter, Gauge

CYCLES_TOTAL = Counter(
    "tank_telemetry_cycles_total",
    "Polling/playback cycles by outcome",
    ["outcome"],  # accepted, suppressed, killed, parse_error, transport_error, discarded, failed, playback
)
READINGS_ACCEPTED = Counter(
    "tank_telemetry_readings_accepted_total",
    "Readings written to the current state view and retention buffer",
    ["source"],
)
BUFFER_SIZE = Gauge(
    "tank_telemetry_buffer_size",
    "Readings currently held in the retention buffer",
)
SCHEDULER_HALTED = Gauge(
    "tank_telemetry_scheduler_halted",
    "1 when the live poller halted on a stale source",
)


class EngineStats:
    """Estadísticas del motor (thread-safe)."""

    def __init__(self):
        self._lock = threading.Lock()
        self.accepted = 0
        self.suppressed = 0
        self.parse_errors = 0
        self.transport_errors = 0
        self.discarded = 0
        self.failed = 0
        self.playback_ticks = 0
        self.halts = 0
        self.last_accepted_at: float = 0

    def record(self, outcome: str) -> None:
        with self._lock:
            if outcome == "accepted":
                self.accepted += 1
                self.last_accepted_at = time.time()
            elif outcome == "suppressed":
                self.suppressed += 1
            elif outcome == "parse_error":
                self.parse_errors += 1
            elif outcome == "transport_error":
                self.transport_errors += 1
            elif outcome == "discarded":
                self.discarded += 1
            elif outcome == "killed":
                self.halts += 1
            elif outcome == "playback":
                self.playback_ticks += 1
            else:
                self.failed += 1
        CYCLES_TOTAL.labels(outcome=outcome).inc()

    def __str__(self) -> str:
        return (
            f"Stats: accepted={self.accepted} suppressed={self.suppressed} "
            f"parse_errors={self.parse_errors} transport_errors={self.transport_errors} "
            f"playback={self.playback_ticks} halts={self.halts}"
        )

    def to_dict(self) -> dict:
        """Convert stats to dictionary."""
        with self._lock:
            return {
                "accepted": self.accepted,
                "suppressed": self.suppressed,
                "parse_errors": self.parse_errors,
                "transport_errors": self.transport_errors,
                "discarded": self.discarded,
                "failed": self.failed,
                "playback_ticks": self.playback_ticks,
                "halts": self.halts,
                "last_accepted_at": self.last_accepted_at,
            }
