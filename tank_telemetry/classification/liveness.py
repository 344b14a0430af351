"""Detector de vitalidad del feed en vivo.

Rastrea polls consecutivos que devuelven el mismo timestamp para
determinar cuándo el feed remoto dejó de producir datos nuevos.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class LivenessVerdict(str, Enum):
    """Decisión para el poll actual."""
    CONTINUE = "continue"  # Timestamp nuevo: la lectura sigue al clasificador
    SUPPRESS = "suppress"  # Repetido: se descarta este ciclo
    KILL = "kill"          # Límite alcanzado: el feed se considera muerto


class LivenessStatus(str, Enum):
    ALIVE = "alive"
    DEAD = "dead"


@dataclass(frozen=True)
class LivenessState:
    """Estado de repetición del stream en vivo."""
    last_timestamp: Optional[datetime] = None
    repeat_count: int = 0
    status: LivenessStatus = LivenessStatus.ALIVE


class LivenessDetector:
    """Rastrea timestamps repetidos del feed.

    Reglas:
    - Timestamp distinto al último → resetea contador a 0, CONTINUE
    - Mismo timestamp → incrementa contador; SUPPRESS mientras el timestamp
      no se haya visto en `max_repeat` polls consecutivos, KILL al llegar
    - Una vez DEAD, todo devuelve KILL hasta `reset()`
    """

    DEFAULT_MAX_REPEAT = 10

    def __init__(self, max_repeat: int = DEFAULT_MAX_REPEAT):
        self._max_repeat = max_repeat
        self._state = LivenessState()

    @property
    def state(self) -> LivenessState:
        return self._state

    @property
    def max_repeat(self) -> int:
        return self._max_repeat

    @property
    def is_dead(self) -> bool:
        return self._state.status == LivenessStatus.DEAD

    def observe(self, timestamp: datetime) -> LivenessVerdict:
        """Registra el timestamp de un poll y devuelve el veredicto.

        Args:
            timestamp: Timestamp upstream del payload recibido

        Returns:
            CONTINUE, SUPPRESS o KILL
        """
        current = self._state

        if current.status == LivenessStatus.DEAD:
            return LivenessVerdict.KILL

        if current.last_timestamp is None or timestamp != current.last_timestamp:
            self._state = LivenessState(last_timestamp=timestamp, repeat_count=0)
            return LivenessVerdict.CONTINUE

        new_count = current.repeat_count + 1
        # El poll aceptado cuenta como la primera aparición del timestamp
        if new_count + 1 >= self._max_repeat:
            self._state = LivenessState(
                last_timestamp=current.last_timestamp,
                repeat_count=new_count,
                status=LivenessStatus.DEAD,
            )
            logger.warning(
                "[LIVENESS] Feed stale: timestamp=%s repeated on %d consecutive polls",
                current.last_timestamp.isoformat(),
                new_count + 1,
            )
            return LivenessVerdict.KILL

        self._state = LivenessState(
            last_timestamp=current.last_timestamp,
            repeat_count=new_count,
        )
        logger.debug(
            "[LIVENESS] Duplicate timestamp=%s repeat_count=%d",
            current.last_timestamp.isoformat(),
            new_count,
        )
        return LivenessVerdict.SUPPRESS

    def reset(self) -> None:
        """Reinicia el detector (p.ej. el colaborador reinicia el polling)."""
        self._state = LivenessState()
