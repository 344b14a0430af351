"""Motor de telemetría del tanque.

Une los componentes y es el ÚNICO escritor de la vista actual y del
buffer de historial:

  feed → PollingScheduler → (vitalidad) ┐
                                         ├→ clasificador → vista actual → buffer
  PlaybackSource.tick() ─────────────────┘

Los dos timers corren en threads independientes; todas las escrituras
pasan por `apply_reading` bajo un único lock, y las lecturas de los
colaboradores toman el mismo lock.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable, Iterator, List, Optional, Sequence, TextIO

from common.config import Settings, get_settings

from .classification.classifier import ClassifierThresholds, ReadingClassifier
from .classification.liveness import LivenessDetector
from .config import EngineConfig, SourceMode
from .domain.reading import Reading, ReadingSource
from .errors import StaleSourceError
from .metrics import BUFFER_SIZE, READINGS_ACCEPTED, EngineStats
from .playback import PlaybackSource, generate_ambient_records, load_playback_records
from .retention.buffer import Clock, ReadingFilter, RetentionBuffer, utc_now
from .retention.summary import HistorySummary, export_csv, summarize
from .scheduler import FetchFn, IngestOutcome, PollingScheduler, SchedulerState
from .state.current_state import CurrentStateView, CurrentValue, TankSnapshot
from .transports.thingspeak import ThingSpeakFeedClient

logger = logging.getLogger(__name__)


class TankTelemetryEngine:
    """Fachada del motor para los colaboradores externos."""

    def __init__(
        self,
        config: EngineConfig,
        fetch: Optional[FetchFn] = None,
        playback_readings: Sequence[Reading] = (),
        clock: Clock = utc_now,
    ):
        """Inicializa el motor.

        Args:
            config: Configuración validada
            fetch: Transporte del feed en vivo; None deshabilita el polling
            playback_readings: Precarga de la fuente de playback
            clock: Reloj de pared (inyectable en tests)
        """
        config.validate()
        self._config = config
        self._lock = threading.RLock()
        self._stats = EngineStats()

        self._classifier = ReadingClassifier(
            ClassifierThresholds(
                live=config.warn_threshold_live,
                simulated=config.warn_threshold_simulated,
            )
        )
        self._view = CurrentStateView()
        self._buffer = RetentionBuffer(
            window=timedelta(milliseconds=config.retention_window_ms),
            clock=clock,
        )

        self._scheduler: Optional[PollingScheduler] = None
        if fetch is not None:
            self._scheduler = PollingScheduler(
                fetch=fetch,
                accept=self.apply_reading,
                entity_name=config.entity_name,
                liveness=LivenessDetector(max_repeat=config.max_repeat),
                interval_seconds=config.poll_interval_ms / 1000.0,
                stats=self._stats,
            )
            self._scheduler.add_halt_listener(self._on_stale_source)

        self._playback = PlaybackSource(
            readings=playback_readings,
            emit=self.apply_reading,
            interval_seconds=config.playback_interval_ms / 1000.0,
            stats=self._stats,
            clock=clock,
        )

        self._halt_listeners: List[Callable[[StaleSourceError], None]] = []
        self._fallback_active = False

    # ------------------------------------------------------------------
    # Propiedades
    # ------------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def scheduler(self) -> Optional[PollingScheduler]:
        return self._scheduler

    @property
    def playback(self) -> PlaybackSource:
        return self._playback

    @property
    def buffer(self) -> RetentionBuffer:
        return self._buffer

    @property
    def stats(self) -> EngineStats:
        return self._stats

    # ------------------------------------------------------------------
    # Ruta de escritura (serializada)
    # ------------------------------------------------------------------

    def apply_reading(self, reading: Reading) -> Reading:
        """Clasificador → vista actual → buffer, atómico para los lectores."""
        with self._lock:
            classified = self._classifier.classify_reading(reading)
            self._view.update(classified)
            self._buffer.append(classified)
            BUFFER_SIZE.set(len(self._buffer))
        READINGS_ACCEPTED.labels(source=classified.source.value).inc()
        logger.debug(
            "[ENGINE] Applied entity=%s source=%s water=%s status=%s",
            classified.entity_name,
            classified.source.value,
            classified.water_level,
            classified.status.value if classified.status else "AWAITING_DATA",
        )
        return classified

    def ingest(self, payload: dict) -> IngestOutcome:
        """Empuja un payload crudo del feed (sin pasar por el fetch)."""
        if self._scheduler is None:
            raise RuntimeError("Live polling is not configured for this engine")
        return self._scheduler.ingest(payload)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Arranca las fuentes según `source_mode`."""
        mode = self._config.source_mode

        if mode == SourceMode.BOTH:
            logger.warning(
                "[ENGINE] source_mode=both is deprecated: live and playback readings "
                "will overwrite each other in the current state view"
            )

        if mode in (SourceMode.LIVE, SourceMode.BOTH):
            if self._scheduler is None:
                logger.warning("[ENGINE] No live transport configured; falling back to playback")
                self._start_playback(fallback=True)
            else:
                self._scheduler.start()

        if mode in (SourceMode.PLAYBACK, SourceMode.BOTH):
            self._start_playback(fallback=False)

    def stop(self) -> None:
        """Detiene ambos timers. El buffer y la vista se conservan."""
        if self._scheduler is not None:
            self._scheduler.stop()
        with self._lock:
            self._playback.stop()
            self._fallback_active = False
        logger.info("[ENGINE] Stopped. %s", self._stats)

    def reset(self) -> None:
        """Reinicia solo el detector de vitalidad (no el buffer)."""
        if self._scheduler is not None:
            self._scheduler.reset_liveness()

    def restart_polling(self) -> bool:
        """stop + reset + start del polling; apaga el playback de fallback."""
        if self._scheduler is None:
            return False
        self._scheduler.stop()
        self._scheduler.reset_liveness()
        with self._lock:
            if self._fallback_active:
                self._playback.stop()
                self._fallback_active = False
        return self._scheduler.start()

    def add_halt_listener(self, listener: Callable[[StaleSourceError], None]) -> None:
        self._halt_listeners.append(listener)

    def _start_playback(self, fallback: bool) -> None:
        if len(self._playback) == 0:
            logger.warning("[ENGINE] Playback requested but no records are preloaded")
            return
        with self._lock:
            if self._playback.start():
                self._fallback_active = fallback

    def _on_stale_source(self, error: StaleSourceError) -> None:
        for listener in list(self._halt_listeners):
            try:
                listener(error)
            except Exception as e:
                logger.exception("[ENGINE] Halt listener failed: %s", e)

        if self._config.source_mode == SourceMode.LIVE and self._config.fallback_to_playback:
            logger.warning("[ENGINE] Live feed stale, switching to playback")
            self._start_playback(fallback=True)

    # ------------------------------------------------------------------
    # Lectura para colaboradores
    # ------------------------------------------------------------------

    def get_current(self, entity_name: Optional[str] = None) -> CurrentValue:
        with self._lock:
            return self._view.get_current(entity_name or self._config.entity_name)

    def get_tank_snapshot(self, entity_name: Optional[str] = None) -> Optional[TankSnapshot]:
        with self._lock:
            return self._view.get_tank_snapshot(entity_name or self._config.entity_name)

    def last_source(self, entity_name: Optional[str] = None) -> Optional[ReadingSource]:
        with self._lock:
            return self._view.last_source(entity_name or self._config.entity_name)

    def query(self, reading_filter: Optional[ReadingFilter] = None) -> Iterator[Reading]:
        with self._lock:
            return self._buffer.query(reading_filter)

    def snapshot(self, limit: Optional[int] = None) -> List[Reading]:
        if limit is None:
            limit = self._config.history_display_limit
        with self._lock:
            return self._buffer.snapshot(limit)

    def summary(self, reading_filter: Optional[ReadingFilter] = None) -> HistorySummary:
        """Resumen del historial. Por defecto solo lecturas LIVE, igual que `export`."""
        if reading_filter is None:
            reading_filter = ReadingFilter.build(sources=[ReadingSource.LIVE])
        return summarize(self.query(reading_filter))

    def export(self, fp: TextIO, reading_filter: Optional[ReadingFilter] = None) -> int:
        """Exporta el historial a CSV. Por defecto solo lecturas LIVE."""
        if reading_filter is None:
            reading_filter = ReadingFilter.build(sources=[ReadingSource.LIVE])
        return export_csv(self.query(reading_filter), fp)

    def status(self) -> dict:
        scheduler = self._scheduler
        liveness = scheduler.liveness.state if scheduler is not None else None
        with self._lock:
            fallback_active = self._fallback_active
        return {
            "entity_name": self._config.entity_name,
            "source_mode": self._config.source_mode.value,
            "scheduler_state": scheduler.state.value if scheduler else SchedulerState.STOPPED.value,
            "halt_reason": scheduler.halt_reason if scheduler else None,
            "liveness": {
                "status": liveness.status.value,
                "repeat_count": liveness.repeat_count,
                "last_timestamp": liveness.last_timestamp.isoformat() if liveness.last_timestamp else None,
            } if liveness else None,
            "playback_running": self._playback.is_running,
            "playback_fallback": fallback_active,
            "buffer_size": len(self._buffer),
            "stats": self._stats.to_dict(),
        }


PLAYBACK_PRELOAD_SIZE = 120


def build_engine(
    config: Optional[EngineConfig] = None,
    settings: Optional[Settings] = None,
) -> TankTelemetryEngine:
    """Construye el motor a partir del entorno.

    - Transporte en vivo: canal ThingSpeak de `settings`
    - Precarga de playback: `TANK_PLAYBACK_FILE` si existe; si no, un
      paseo aleatorio sembrado con `TANK_PLAYBACK_SEED`
    """
    config = config or EngineConfig.from_env()
    settings = settings or get_settings()

    client = ThingSpeakFeedClient(
        channel_id=settings.thingspeak_channel_id,
        timeout_seconds=config.effective_fetch_timeout_ms / 1000.0,
        base_url=settings.thingspeak_base_url,
        read_key=settings.thingspeak_read_key,
    )

    if settings.playback_file:
        readings = load_playback_records(settings.playback_file, config.entity_name)
    else:
        readings = generate_ambient_records(
            PLAYBACK_PRELOAD_SIZE,
            config.entity_name,
            interval=timedelta(milliseconds=config.playback_interval_ms),
            seed=settings.playback_seed,
        )

    logger.info(
        "[ENGINE] Built entity=%s mode=%s channel=%s playback_records=%d",
        config.entity_name,
        config.source_mode.value,
        settings.thingspeak_channel_id,
        len(readings),
    )
    return TankTelemetryEngine(config, fetch=client.fetch, playback_readings=readings)
