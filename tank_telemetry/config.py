"""Configuración del motor de telemetría.

Todos los valores son sobreescribibles por variables de entorno
(prefijo TANK_). `validate()` falla con ConfigError en la construcción.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from .errors import ConfigError


class SourceMode(str, Enum):
    """Qué fuente(s) de datos están activas."""
    LIVE = "live"          # Polling; playback solo como fallback
    PLAYBACK = "playback"  # Solo playback
    BOTH = "both"          # Deprecado: ambos timers compiten por la vista


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Configuración del motor."""
    poll_interval_ms: int = 15_000
    playback_interval_ms: int = 5_000
    retention_window_ms: int = 7_200_000  # 2 horas
    max_repeat: int = 10
    warn_threshold_live: float = 16.0
    warn_threshold_simulated: float = 20.0
    history_display_limit: int = 50
    fetch_timeout_ms: int | None = None  # None = igual al periodo de polling
    source_mode: SourceMode = SourceMode.LIVE
    fallback_to_playback: bool = True
    entity_name: str = "Tank 1"

    def __post_init__(self) -> None:
        if isinstance(self.source_mode, str) and not isinstance(self.source_mode, SourceMode):
            try:
                self.source_mode = SourceMode(self.source_mode.strip().lower())
            except ValueError:
                raise ConfigError("source_mode", self.source_mode, "expected live|playback|both")
        self.validate()

    @property
    def effective_fetch_timeout_ms(self) -> int:
        return self.fetch_timeout_ms if self.fetch_timeout_ms is not None else self.poll_interval_ms

    def validate(self) -> None:
        """Verifica rangos. Lanza ConfigError en el primer valor inválido."""
        for name in ("poll_interval_ms", "playback_interval_ms", "retention_window_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigError(name, value, "must be a positive integer (ms)")

        if self.fetch_timeout_ms is not None and self.fetch_timeout_ms <= 0:
            raise ConfigError("fetch_timeout_ms", self.fetch_timeout_ms, "must be positive")

        if not isinstance(self.max_repeat, int) or self.max_repeat < 2:
            raise ConfigError("max_repeat", self.max_repeat, "must be an integer >= 2")

        for name in ("warn_threshold_live", "warn_threshold_simulated"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not (0 <= value <= 100):
                raise ConfigError(name, value, "must be a percentage in [0, 100]")

        if not isinstance(self.history_display_limit, int) or self.history_display_limit < 1:
            raise ConfigError("history_display_limit", self.history_display_limit, "must be >= 1")

        if not self.entity_name or not self.entity_name.strip():
            raise ConfigError("entity_name", self.entity_name, "must not be empty")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        fetch_timeout = os.getenv("TANK_FETCH_TIMEOUT_MS")
        try:
            return cls(
                poll_interval_ms=int(os.getenv("TANK_POLL_INTERVAL_MS", "15000")),
                playback_interval_ms=int(os.getenv("TANK_PLAYBACK_INTERVAL_MS", "5000")),
                retention_window_ms=int(os.getenv("TANK_RETENTION_WINDOW_MS", "7200000")),
                max_repeat=int(os.getenv("TANK_MAX_REPEAT", "10")),
                warn_threshold_live=float(os.getenv("TANK_WARN_THRESHOLD_LIVE", "16")),
                warn_threshold_simulated=float(os.getenv("TANK_WARN_THRESHOLD_SIMULATED", "20")),
                history_display_limit=int(os.getenv("TANK_HISTORY_DISPLAY_LIMIT", "50")),
                fetch_timeout_ms=int(fetch_timeout) if fetch_timeout else None,
                source_mode=SourceMode(os.getenv("TANK_SOURCE_MODE", "live").strip().lower()),
                fallback_to_playback=_env_bool("TANK_FALLBACK_TO_PLAYBACK", "true"),
                entity_name=os.getenv("TANK_ENTITY_NAME", "Tank 1"),
            )
        except ValueError as e:
            # int()/float()/SourceMode() sobre texto inválido
            raise ConfigError("environment", None, str(e)) from e
