"""Consultas sobre el historial retenido (ventana de 2 horas por defecto)."""

from __future__ import annotations

import io
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..domain.reading import ReadingSource, ReadingStatus
from ..engine import TankTelemetryEngine
from ..retention.buffer import ReadingFilter
from ..schemas import HistoryOut, HistorySummaryOut, ReadingOut
from .deps import get_engine

router = APIRouter(prefix="/history", tags=["history"])


def _build_filter(
    source: Optional[List[ReadingSource]],
    status: Optional[List[ReadingStatus]],
    start: Optional[datetime],
    end: Optional[datetime],
) -> Optional[ReadingFilter]:
    if start is not None and end is not None and start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    if source is None and status is None and start is None and end is None:
        return None
    return ReadingFilter.build(sources=source, statuses=status, start=start, end=end)


@router.get("", response_model=HistoryOut)
def get_history(
    source: Optional[List[ReadingSource]] = Query(None),
    status: Optional[List[ReadingStatus]] = Query(None),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    engine: TankTelemetryEngine = Depends(get_engine),
):
    """Lecturas retenidas en orden de inserción, con filtros opcionales."""
    reading_filter = _build_filter(source, status, start, end)
    readings = [ReadingOut.from_reading(r) for r in engine.query(reading_filter)]
    return HistoryOut(count=len(readings), readings=readings)


@router.get("/recent", response_model=HistoryOut)
def get_recent(
    limit: Optional[int] = Query(None, ge=1),
    engine: TankTelemetryEngine = Depends(get_engine),
):
    """Las N lecturas más recientes, la más nueva primero."""
    readings = [ReadingOut.from_reading(r) for r in engine.snapshot(limit)]
    return HistoryOut(count=len(readings), readings=readings)


@router.get("/summary", response_model=HistorySummaryOut)
def get_summary(
    source: Optional[List[ReadingSource]] = Query(None),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    engine: TankTelemetryEngine = Depends(get_engine),
):
    """Conteos y nivel medio. Sin `source` resume solo el feed en vivo."""
    summary = engine.summary(_build_filter(source, None, start, end))
    return HistorySummaryOut(**summary.to_dict())


@router.get("/export.csv")
def export_history(
    source: Optional[List[ReadingSource]] = Query(None),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    engine: TankTelemetryEngine = Depends(get_engine),
):
    """CSV del historial. Sin `source` exporta solo el feed en vivo."""
    buf = io.StringIO()
    engine.export(buf, _build_filter(source, None, start, end))
    return Response(
        content=buf.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="tank_history.csv"'},
    )
