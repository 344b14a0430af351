"""Clasificador de lecturas por nivel de agua.

Clasifica el nivel de agua del tanque en 2 estados:
1. WARNING: nivel de agua por encima del umbral de contaminación
2. OK: resto

Si no hay nivel de agua, NO se asume OK: se marca `is_missing` y el
estado queda vacío para que la capa de presentación muestre "cargando".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..domain.reading import Reading, ReadingSource, ReadingStatus


@dataclass(frozen=True)
class ClassificationResult:
    """Resultado de la clasificación de un nivel de agua."""

    status: Optional[ReadingStatus]
    is_missing: bool


def classify(water_level: Optional[float], high_threshold: float) -> ClassificationResult:
    """Función pura: nivel de agua → (estado, is_missing)."""
    if water_level is None:
        return ClassificationResult(status=None, is_missing=True)
    if water_level > high_threshold:
        return ClassificationResult(status=ReadingStatus.WARNING, is_missing=False)
    return ClassificationResult(status=ReadingStatus.OK, is_missing=False)


@dataclass(frozen=True)
class ClassifierThresholds:
    """Umbrales WARNING por procedencia.

    El feed en vivo usa un umbral más fino (16) que los tanques
    simulados/ambientales (20).
    """

    live: float = 16.0
    simulated: float = 20.0

    def for_source(self, source: ReadingSource) -> float:
        return self.live if source == ReadingSource.LIVE else self.simulated


class ReadingClassifier:
    """Aplica el umbral de la procedencia de cada lectura."""

    def __init__(self, thresholds: Optional[ClassifierThresholds] = None) -> None:
        self._thresholds = thresholds or ClassifierThresholds()

    @property
    def thresholds(self) -> ClassifierThresholds:
        return self._thresholds

    def classify_reading(self, reading: Reading) -> Reading:
        """Devuelve una copia de la lectura con el estado recalculado."""
        result = classify(reading.water_level, self._thresholds.for_source(reading.source))
        if result.status == reading.status:
            return reading
        return reading.with_status(result.status)
