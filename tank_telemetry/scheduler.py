"""Scheduler de polling del feed en vivo.

Ejecuta ciclos fetch → parse → vitalidad → aceptación a intervalo fijo
en un thread propio.

Características:
- Un ciclo inmediato al arrancar y luego uno por periodo
- Sin solapamiento: ticks que vencen durante un ciclo en curso se descartan
- Fetch acotado por timeout (lo aplica el transporte)
- `stop()` no interrumpe un fetch en curso; su resultado se descarta
- Feed repetido → HALTED("stale-source") y aviso a los listeners
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, List, Optional

from .classification.liveness import LivenessDetector, LivenessVerdict
from .domain.reading import Reading, ReadingSource
from .errors import ParseError, StaleSourceError, TransportError
from .metrics import EngineStats, SCHEDULER_HALTED
from .validators import validate_feed_payload

logger = logging.getLogger(__name__)

HALT_REASON_STALE = "stale-source"

FetchFn = Callable[[], dict]
AcceptFn = Callable[[Reading], None]
HaltListener = Callable[[StaleSourceError], None]


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    HALTED = "halted"


class IngestOutcome(str, Enum):
    """Resultado de un ciclo/ingesta."""
    ACCEPTED = "accepted"
    SUPPRESSED = "suppressed"
    KILLED = "killed"
    PARSE_ERROR = "parse_error"
    TRANSPORT_ERROR = "transport_error"
    DISCARDED = "discarded"
    FAILED = "failed"


class PollingScheduler:
    """Polling periódico del feed con detector de vitalidad."""

    DEFAULT_INTERVAL = 15.0  # segundos

    def __init__(
        self,
        fetch: FetchFn,
        accept: AcceptFn,
        entity_name: str,
        liveness: Optional[LivenessDetector] = None,
        interval_seconds: float = DEFAULT_INTERVAL,
        stats: Optional[EngineStats] = None,
    ):
        """Inicializa el scheduler.

        Args:
            fetch: Obtiene un payload crudo del feed (puede lanzar TransportError/ParseError)
            accept: Recibe cada lectura aceptada (clasificación + vista + buffer)
            entity_name: Entidad monitorizada por este stream
            liveness: Detector de timestamps repetidos
            interval_seconds: Periodo entre ciclos
            stats: Estadísticas compartidas del motor
        """
        self._fetch = fetch
        self._accept = accept
        self._entity_name = entity_name
        self._liveness = liveness or LivenessDetector()
        self._interval = float(interval_seconds)
        self._stats = stats or EngineStats()

        self._state = SchedulerState.STOPPED
        self._halt_reason: Optional[str] = None
        self._generation = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()
        self._ingest_lock = threading.Lock()
        self._listeners: List[HaltListener] = []
        self.last_error: Optional[Exception] = None

    @property
    def state(self) -> SchedulerState:
        with self._state_lock:
            return self._state

    @property
    def halt_reason(self) -> Optional[str]:
        with self._state_lock:
            return self._halt_reason

    @property
    def liveness(self) -> LivenessDetector:
        return self._liveness

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def stats(self) -> EngineStats:
        return self._stats

    def add_halt_listener(self, listener: HaltListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """STOPPED → RUNNING. Devuelve False si no hubo transición."""
        with self._state_lock:
            if self._state == SchedulerState.RUNNING:
                return False
            if self._state == SchedulerState.HALTED:
                logger.warning(
                    "[SCHEDULER] Cannot start while halted (%s); call stop() first",
                    self._halt_reason,
                )
                return False

            self._state = SchedulerState.RUNNING
            self._halt_reason = None
            self._generation += 1
            generation = self._generation
            self._stop_event = threading.Event()
            stop_event = self._stop_event
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(generation, stop_event),
                name=f"tank-poller-{generation}",
                daemon=True,
            )
            thread = self._thread

        SCHEDULER_HALTED.set(0)
        thread.start()
        logger.info(
            "[SCHEDULER] Started entity=%s interval=%.1fs",
            self._entity_name,
            self._interval,
        )
        return True

    def stop(self) -> None:
        """RUNNING/HALTED → STOPPED. Idempotente."""
        with self._state_lock:
            if self._state == SchedulerState.STOPPED:
                return
            self._state = SchedulerState.STOPPED
            self._halt_reason = None
            self._generation += 1
            self._stop_event.set()

        SCHEDULER_HALTED.set(0)
        logger.info("[SCHEDULER] Stopped. %s", self._stats)

    def join(self, timeout: Optional[float] = None) -> None:
        """Espera a que termine el thread actual (tests / apagado)."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def reset_liveness(self) -> None:
        """Reinicia solo el detector de vitalidad; el buffer no se toca."""
        with self._ingest_lock:
            self._liveness.reset()
        logger.info("[SCHEDULER] Liveness detector reset")

    def _halt(self, reason: str) -> bool:
        with self._state_lock:
            if self._state == SchedulerState.HALTED:
                return False
            self._state = SchedulerState.HALTED
            self._halt_reason = reason
            self._generation += 1
            self._stop_event.set()
        SCHEDULER_HALTED.set(1)
        return True

    # ------------------------------------------------------------------
    # Ciclos
    # ------------------------------------------------------------------

    def _run_loop(self, generation: int, stop_event: threading.Event) -> None:
        """Loop principal del thread de polling."""
        next_tick = time.monotonic()
        while not stop_event.is_set():
            self.run_cycle(generation)

            next_tick += self._interval
            now = time.monotonic()
            if now > next_tick:
                # El ciclo tardó más que el periodo: se descartan los ticks vencidos
                missed = int((now - next_tick) // self._interval) + 1
                next_tick += missed * self._interval
                logger.debug("[SCHEDULER] Coalesced %d overdue tick(s)", missed)

            if stop_event.wait(max(0.0, next_tick - time.monotonic())):
                break

    def _is_current(self, generation: int) -> bool:
        with self._state_lock:
            return self._generation == generation and self._state == SchedulerState.RUNNING

    def run_cycle(self, generation: Optional[int] = None) -> IngestOutcome:
        """Un ciclo completo: fetch + ingest.

        Los errores del ciclo nunca se propagan: se registran y el
        scheduler sigue RUNNING (salvo KILL). Sin `generation` (llamada
        manual) el resultado se aplica en cualquier estado.
        """
        try:
            payload = self._fetch()
        except TransportError as e:
            self.last_error = e
            self._stats.record(IngestOutcome.TRANSPORT_ERROR.value)
            logger.warning("[SCHEDULER] Transport error, skipping cycle: %s", e)
            return IngestOutcome.TRANSPORT_ERROR
        except ParseError as e:
            self.last_error = e
            self._stats.record(IngestOutcome.PARSE_ERROR.value)
            logger.warning("[SCHEDULER] Unparseable feed response, skipping cycle: %s", e)
            return IngestOutcome.PARSE_ERROR
        except Exception as e:
            self.last_error = e
            self._stats.record(IngestOutcome.FAILED.value)
            logger.exception("[SCHEDULER] Unexpected fetch failure: %s", e)
            return IngestOutcome.FAILED

        return self._ingest(payload, generation)

    def ingest(self, payload: Any) -> IngestOutcome:
        """Procesa un payload crudo del feed.

        Orden: parse → vitalidad → (CONTINUE) aceptación.
        """
        return self._ingest(payload, None)

    def _ingest(self, payload: Any, generation: Optional[int]) -> IngestOutcome:
        error: Optional[StaleSourceError] = None

        with self._ingest_lock:
            if generation is not None and not self._is_current(generation):
                # stop() llegó mientras el fetch estaba en vuelo
                self._stats.record(IngestOutcome.DISCARDED.value)
                logger.debug("[SCHEDULER] Discarding fetch completed after stop")
                return IngestOutcome.DISCARDED

            result = validate_feed_payload(payload, self._entity_name, ReadingSource.LIVE)
            if not result.valid:
                self.last_error = ParseError(result.error or "invalid payload", payload)
                self._stats.record(IngestOutcome.PARSE_ERROR.value)
                logger.warning("[SCHEDULER] Parse error, cycle is a no-op: %s", result.error)
                return IngestOutcome.PARSE_ERROR

            reading = result.reading
            for warning in result.warnings:
                logger.info("[SCHEDULER] %s (timestamp=%s)", warning, reading.timestamp.isoformat())

            verdict = self._liveness.observe(reading.timestamp)

            if verdict == LivenessVerdict.SUPPRESS:
                self._stats.record(IngestOutcome.SUPPRESSED.value)
                return IngestOutcome.SUPPRESSED

            if verdict == LivenessVerdict.KILL:
                state = self._liveness.state
                error = StaleSourceError(state.last_timestamp, state.repeat_count, self._liveness.max_repeat)
                self.last_error = error
                if not self._halt(HALT_REASON_STALE):
                    # Ya estaba HALTED: nada que notificar
                    return IngestOutcome.KILLED
                self._stats.record(IngestOutcome.KILLED.value)
            else:
                try:
                    self._accept(reading)
                except Exception as e:
                    self.last_error = e
                    self._stats.record(IngestOutcome.FAILED.value)
                    logger.exception("[SCHEDULER] Failed to apply reading: %s", e)
                    return IngestOutcome.FAILED
                self._stats.record(IngestOutcome.ACCEPTED.value)
                return IngestOutcome.ACCEPTED

        logger.error("[SCHEDULER] Halted: %s", error)
        self._notify_halt(error)
        return IngestOutcome.KILLED

    def _notify_halt(self, error: StaleSourceError) -> None:
        for listener in list(self._listeners):
            try:
                listener(error)
            except Exception as e:
                logger.exception("[SCHEDULER] Halt listener failed: %s", e)
