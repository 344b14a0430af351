"""Historial en memoria: buffer por ventana de tiempo, consultas y resumen."""

from .buffer import ReadingFilter, RetentionBuffer, utc_now
from .summary import EXPORT_HEADERS, HistorySummary, export_csv, summarize

__all__ = [
    "ReadingFilter",
    "RetentionBuffer",
    "utc_now",
    "EXPORT_HEADERS",
    "HistorySummary",
    "export_csv",
    "summarize",
]
