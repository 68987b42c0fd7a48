"""Core types and time helpers shared by templog components."""

from .records import (
    PeriodAverage,
    Record,
    RecordFormatError,
    format_record_line,
    parse_record_line,
)
from .time import format_local_iso, get_current_time, parse_local_iso

__all__ = [
    "PeriodAverage",
    "Record",
    "RecordFormatError",
    "format_local_iso",
    "format_record_line",
    "get_current_time",
    "parse_local_iso",
    "parse_record_line",
]
