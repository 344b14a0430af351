"""Módulo de clasificación y vitalidad de lecturas.

Estructura modular:
- classifier.py: Clasificador puro por nivel de agua (OK / WARNING)
- liveness.py: Detector de timestamps repetidos del feed en vivo
"""

from .classifier import (
    ClassificationResult,
    ClassifierThresholds,
    ReadingClassifier,
    classify,
)
from .liveness import (
    LivenessDetector,
    LivenessState,
    LivenessStatus,
    LivenessVerdict,
)

__all__ = [
    "ClassificationResult",
    "ClassifierThresholds",
    "ReadingClassifier",
    "classify",
    "LivenessDetector",
    "LivenessState",
    "LivenessStatus",
    "LivenessVerdict",
]
