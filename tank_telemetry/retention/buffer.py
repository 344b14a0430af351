from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, FrozenSet, Iterable, Iterator, List, Optional

from ..domain.reading import Reading, ReadingSource, ReadingStatus


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReadingFilter:
    """Filtro para consultas sobre el buffer.

    Cada criterio en None significa "sin restricción". El rango de fechas
    es inclusivo en ambos extremos.
    """

    sources: Optional[FrozenSet[ReadingSource]] = None
    statuses: Optional[FrozenSet[ReadingStatus]] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        sources: Optional[Iterable[ReadingSource]] = None,
        statuses: Optional[Iterable[ReadingStatus]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> "ReadingFilter":
        return cls(
            sources=frozenset(sources) if sources is not None else None,
            statuses=frozenset(statuses) if statuses is not None else None,
            start=start,
            end=end,
        )

    def matches(self, reading: Reading) -> bool:
        if self.sources is not None and reading.source not in self.sources:
            return False
        if self.statuses is not None and reading.status not in self.statuses:
            return False
        if self.start is not None and reading.timestamp < self.start:
            return False
        if self.end is not None and reading.timestamp > self.end:
            return False
        return True


class RetentionBuffer:
    """Buffer de historial en memoria acotado por ventana de tiempo.

    - Orden de inserción = orden de llegada (no necesariamente por timestamp
      entre fuentes distintas).
    - Cada `append` recorta de forma síncrona las lecturas con
      `timestamp < now - window`, donde `now` es el reloj de pared.
    """

    DEFAULT_WINDOW = timedelta(hours=2)

    def __init__(self, window: timedelta = DEFAULT_WINDOW, clock: Clock = utc_now) -> None:
        self._window = window
        self._clock = clock
        self._buffer: Deque[Reading] = deque()
        self._lock = threading.Lock()

    @property
    def window(self) -> timedelta:
        return self._window

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def append(self, reading: Reading) -> None:
        """Añade una lectura al final y recorta las expiradas."""
        with self._lock:
            self._buffer.append(reading)
            self._evict_locked(self._clock())

    def evict_expired(self) -> int:
        """Recorta lecturas fuera de la ventana. Devuelve cuántas se quitaron."""
        with self._lock:
            return self._evict_locked(self._clock())

    def _evict_locked(self, now: datetime) -> int:
        cutoff = now - self._window
        before = len(self._buffer)
        # Sin orden por timestamp garantizado: se filtra el buffer completo
        if any(r.timestamp < cutoff for r in self._buffer):
            self._buffer = deque(r for r in self._buffer if r.timestamp >= cutoff)
        return before - len(self._buffer)

    def query(self, reading_filter: Optional[ReadingFilter] = None) -> Iterator[Reading]:
        """Secuencia perezosa de lecturas que cumplen el filtro.

        Cada llamada re-escanea el estado actual; no hay cursor persistente.
        """
        with self._lock:
            items = tuple(self._buffer)

        def _scan() -> Iterator[Reading]:
            for reading in items:
                if reading_filter is None or reading_filter.matches(reading):
                    yield reading

        return _scan()

    def snapshot(self, limit: int) -> List[Reading]:
        """Las `limit` lecturas más recientes, de la más nueva a la más vieja."""
        if limit <= 0:
            return []
        with self._lock:
            newest = list(self._buffer)[-limit:]
        newest.reverse()
        return newest
