"""Agregados y exportación del historial retenido.

Reemplaza las tarjetas de resumen y la exportación del dashboard:
conteos por estado, nivel medio de agua y volcado tabular (CSV).
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import Iterable, Optional, TextIO

from ..domain.reading import Reading, ReadingStatus


EXPORT_HEADERS = (
    "Timestamp",
    "Water Level (%)",
    "Fuel Level (%)",
    "Pump State",
    "Emergency Switch",
    "Status",
    "Source",
)


@dataclass(frozen=True)
class HistorySummary:
    """Resumen del historial."""

    total: int
    ok_count: int
    warning_count: int
    awaiting_count: int
    average_water_level: Optional[float]

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "ok_count": self.ok_count,
            "warning_count": self.warning_count,
            "awaiting_count": self.awaiting_count,
            "average_water_level": self.average_water_level,
        }


def summarize(readings: Iterable[Reading]) -> HistorySummary:
    total = ok = warning = awaiting = 0
    level_sum = 0.0
    for r in readings:
        total += 1
        if r.is_missing:
            awaiting += 1
            continue
        level_sum += r.water_level
        if r.status == ReadingStatus.WARNING:
            warning += 1
        else:
            ok += 1

    measured = total - awaiting
    # Las lecturas sin dato no entran en la media
    average = round(level_sum / measured, 2) if measured else None
    return HistorySummary(
        total=total,
        ok_count=ok,
        warning_count=warning,
        awaiting_count=awaiting,
        average_water_level=average,
    )


def _fmt_level(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.1f}"


def export_csv(readings: Iterable[Reading], fp: TextIO) -> int:
    """Escribe las lecturas en CSV. Devuelve el número de filas."""
    writer = csv.writer(fp)
    writer.writerow(EXPORT_HEADERS)
    rows = 0
    for r in readings:
        writer.writerow([
            r.timestamp.isoformat(),
            _fmt_level(r.water_level),
            _fmt_level(r.fuel_level),
            r.pump_state.value,
            r.emergency_state.value,
            r.status.value if r.status else "AWAITING_DATA",
            r.source.value,
        ])
        rows += 1
    return rows
