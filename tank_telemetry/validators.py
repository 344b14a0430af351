"""Validadores de payloads del feed para ingesta.

Valida y transforma payloads del feed al modelo `Reading`.
Un nivel de agua no parseable NO invalida el payload: se representa
como dato faltante. Solo la falta de timestamp lo invalida.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .domain.reading import Reading, ReadingSource, SwitchState, normalize_water_level
from .errors import ParseError

logger = logging.getLogger(__name__)


def parse_timestamp(raw: Any) -> datetime:
    """ISO-8601 → datetime UTC. Sin zona horaria se asume UTC."""
    if isinstance(raw, datetime):
        dt = raw
    else:
        text = str(raw).strip() if raw is not None else ""
        if not text:
            raise ValueError("timestamp is required")
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class FeedPayload(BaseModel):
    """Schema de validación para payloads del feed.

    Formato esperado:
    {
        "timestamp": "2024-01-01T00:00:00Z",
        "waterLevelRaw": "12.5",
        "pumpRaw": "1",
        "emergencyRaw": "0"
    }
    """

    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    water_level_raw: Any = Field(default=None, alias="waterLevelRaw")
    pump_raw: Any = Field(default="0", alias="pumpRaw")
    emergency_raw: Any = Field(default="0", alias="emergencyRaw")

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v):
        try:
            return parse_timestamp(v)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid timestamp format: {e}")

    @property
    def water_level(self) -> Optional[float]:
        return normalize_water_level(self.water_level_raw)

    def to_reading(
        self,
        entity_name: str,
        source: ReadingSource = ReadingSource.LIVE,
    ) -> Reading:
        """Convierte a lectura. El estado se fija después en el clasificador."""
        return Reading(
            entity_name=entity_name,
            timestamp=self.timestamp,
            water_level=self.water_level,
            pump_state=SwitchState.from_raw(self.pump_raw),
            emergency_state=SwitchState.from_raw(self.emergency_raw),
            source=source,
        )


@dataclass
class ParseResult:
    """Resultado de validación."""

    valid: bool
    reading: Optional[Reading] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def unwrap(self) -> Reading:
        """Devuelve la lectura o lanza ParseError."""
        if not self.valid or self.reading is None:
            raise ParseError(self.error or "unknown parse failure")
        return self.reading


def validate_feed_payload(
    data: Any,
    entity_name: str,
    source: ReadingSource = ReadingSource.LIVE,
) -> ParseResult:
    """Valida payload del feed.

    Args:
        data: Diccionario con el payload crudo
        entity_name: Entidad a la que pertenece la lectura
        source: Procedencia a registrar en la lectura

    Returns:
        ParseResult con la lectura normalizada o el error
    """
    if not isinstance(data, dict):
        return ParseResult(valid=False, error=f"payload must be an object, got {type(data).__name__}")

    if not entity_name or not str(entity_name).strip():
        return ParseResult(valid=False, error="entity name is required")

    try:
        payload = FeedPayload.model_validate(data)
    except ValidationError as e:
        logger.warning("[PARSER] Validation failed: %s", e.errors(include_url=False))
        return ParseResult(valid=False, error=str(e))

    warnings: List[str] = []
    reading = payload.to_reading(entity_name.strip(), source)
    if reading.is_missing:
        warnings.append(f"water level not usable: {payload.water_level_raw!r}")

    return ParseResult(valid=True, reading=reading, warnings=warnings)
