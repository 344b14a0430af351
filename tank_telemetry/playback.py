"""Fuente de playback: reproduce en bucle una secuencia precargada.

Se usa cuando el feed en vivo no está disponible (o como modo único).
Las lecturas emitidas NO pasan por el detector de vitalidad. Con `clock`
cada lectura emitida se re-sella con la hora del tick, así queda dentro
de la ventana de retención aunque la precarga sea antigua.
"""

from __future__ import annotations

import json
import logging
import random
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .domain.reading import Reading, ReadingSource, SwitchState, normalize_water_level
from .metrics import EngineStats
from .retention.buffer import Clock, utc_now
from .validators import parse_timestamp

logger = logging.getLogger(__name__)

EmitFn = Callable[[Reading], None]


class PlaybackSource:
    """Secuencia cíclica, finita y reiniciable sobre N lecturas."""

    DEFAULT_INTERVAL = 5.0  # segundos

    def __init__(
        self,
        readings: Sequence[Reading],
        emit: Optional[EmitFn] = None,
        interval_seconds: float = DEFAULT_INTERVAL,
        stats: Optional[EngineStats] = None,
        clock: Optional[Clock] = None,
    ):
        self._readings = tuple(readings)
        self._clock = clock
        self._emit = emit
        self._interval = float(interval_seconds)
        self._stats = stats or EngineStats()

        self._index = 0
        self._index_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._running = False
        self._generation = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __len__(self) -> int:
        return len(self._readings)

    @property
    def index(self) -> int:
        with self._index_lock:
            return self._index

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def tick(self) -> Optional[Reading]:
        """Devuelve el elemento actual y avanza (con vuelta al inicio).

        Con la precarga vacía no hace nada y devuelve None.
        """
        if not self._readings:
            return None
        with self._index_lock:
            reading = self._readings[self._index]
            self._index = (self._index + 1) % len(self._readings)
        return reading

    def rewind(self) -> None:
        with self._index_lock:
            self._index = 0

    def start(self) -> bool:
        """Arranca el timer de playback. False si ya estaba corriendo."""
        if self._emit is None:
            raise RuntimeError("PlaybackSource needs an emit callback to run on a timer")

        with self._state_lock:
            if self._running:
                return False
            self._running = True
            self._generation += 1
            generation = self._generation
            self._stop_event = threading.Event()
            stop_event = self._stop_event
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(generation, stop_event),
                name=f"tank-playback-{generation}",
                daemon=True,
            )
            thread = self._thread

        thread.start()
        logger.info(
            "[PLAYBACK] Started records=%d interval=%.1fs",
            len(self._readings),
            self._interval,
        )
        return True

    def stop(self) -> None:
        """Detiene el timer. Idempotente."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            self._stop_event.set()
        logger.info("[PLAYBACK] Stopped at index=%d", self.index)

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _is_current(self, generation: int) -> bool:
        with self._state_lock:
            return self._running and self._generation == generation

    def _run_loop(self, generation: int, stop_event: threading.Event) -> None:
        """Loop del thread de playback: un tick por periodo."""
        while not stop_event.wait(self._interval):
            self.run_tick(generation)

    def run_tick(self, generation: Optional[int] = None) -> Optional[Reading]:
        """Un tick completo: avanzar la secuencia y emitir."""
        if generation is not None and not self._is_current(generation):
            return None

        reading = self.tick()
        if reading is None:
            return None
        if self._clock is not None:
            reading = replace(reading, timestamp=self._clock())

        try:
            self._emit(reading)
        except Exception as e:
            self._stats.record("failed")
            logger.exception("[PLAYBACK] Failed to emit reading: %s", e)
            return None

        self._stats.record("playback")
        return reading


# ---------------------------------------------------------------------------
# Precarga
# ---------------------------------------------------------------------------


def _parse_source(raw: object, default: ReadingSource) -> ReadingSource:
    if raw is None:
        return default
    try:
        return ReadingSource(str(raw).strip().upper())
    except ValueError:
        return default


def reading_from_record(
    record: dict,
    default_entity: str,
    default_source: ReadingSource = ReadingSource.SIMULATED,
) -> Reading:
    """Convierte un registro precargado en lectura.

    Campos reconocidos: tankName, timestamp, waterLevel, pumpState,
    floatSensor (o emergencyState), source.

    Raises:
        ValueError: Registro sin timestamp válido
    """
    entity = str(record.get("tankName") or default_entity).strip()
    return Reading(
        entity_name=entity or default_entity,
        timestamp=parse_timestamp(record.get("timestamp")),
        water_level=normalize_water_level(record.get("waterLevel")),
        pump_state=SwitchState.from_raw(record.get("pumpState")),
        emergency_state=SwitchState.from_raw(record.get("floatSensor", record.get("emergencyState"))),
        source=_parse_source(record.get("source"), default_source),
    )


def readings_from_records(records: Iterable[dict], default_entity: str) -> List[Reading]:
    readings: List[Reading] = []
    for idx, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning("[PLAYBACK] Skipping record %d: not an object", idx)
            continue
        try:
            readings.append(reading_from_record(record, default_entity))
        except (TypeError, ValueError) as e:
            logger.warning("[PLAYBACK] Skipping record %d: %s", idx, e)
    return readings


def load_playback_records(path: str | Path, default_entity: str) -> List[Reading]:
    """Carga un JSON (array de registros) como precarga de playback."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as fp:
        data = json.load(fp)

    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of records")

    readings = readings_from_records(data, default_entity)
    logger.info("[PLAYBACK] Loaded %d/%d records from %s", len(readings), len(data), path)
    return readings


def generate_ambient_records(
    count: int,
    entity_name: str,
    interval: timedelta = timedelta(seconds=5),
    seed: Optional[int] = None,
    start_level: float = 15.0,
    min_level: float = 5.0,
    max_level: float = 40.0,
    max_step: float = 1.0,
    clock: Clock = utc_now,
) -> List[Reading]:
    """Paseo aleatorio acotado del nivel de agua para tanques simulados.

    Los timestamps van espaciados por `interval` y terminan en `clock()`.
    """
    rng = random.Random(seed)
    end: datetime = clock()
    level = min(max(start_level, min_level), max_level)
    readings: List[Reading] = []

    for i in range(count):
        level = min(max_level, max(min_level, level + rng.uniform(-max_step, max_step)))
        readings.append(
            Reading(
                entity_name=entity_name,
                timestamp=end - interval * (count - 1 - i),
                water_level=round(level, 1),
                pump_state=SwitchState.ON if rng.random() < 0.5 else SwitchState.OFF,
                emergency_state=SwitchState.OFF,
                source=ReadingSource.SIMULATED,
            )
        )
    return readings
