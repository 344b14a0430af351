"""Taxonomía de errores del motor de telemetría.

- TransportError: fallo de red/fetch. Se recupera localmente (se salta el ciclo).
- ParseError: payload malformado. El ciclo queda como no-op.
- StaleSourceError: el feed repite timestamp demasiadas veces. El scheduler
  pasa a HALTED y se notifica a los listeners.
- ConfigError: configuración inválida al construir. Fatal.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class TelemetryError(Exception):
    """Base de todos los errores del motor."""


class TransportError(TelemetryError):
    """Fallo al obtener el payload del feed remoto."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Fetch failed for {url}: {reason}")


class ParseError(TelemetryError):
    """Payload del feed que no se puede normalizar a una lectura."""

    def __init__(self, reason: str, payload: Optional[dict] = None):
        self.reason = reason
        self.payload = payload
        super().__init__(f"Malformed feed payload: {reason}")


class StaleSourceError(TelemetryError):
    """El feed en vivo dejó de producir timestamps nuevos."""

    def __init__(self, last_timestamp: Optional[datetime], repeat_count: int, max_repeat: int):
        self.last_timestamp = last_timestamp
        self.repeat_count = repeat_count
        self.max_repeat = max_repeat
        ts = last_timestamp.isoformat() if last_timestamp else "n/a"
        super().__init__(
            f"Live feed is stale: timestamp {ts} seen on "
            f"{repeat_count + 1} consecutive polls (max_repeat={max_repeat})"
        )


class ConfigError(TelemetryError):
    """Valor de configuración inválido (umbral, intervalo, modo)."""

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid config {field}={value!r}: {reason}")
