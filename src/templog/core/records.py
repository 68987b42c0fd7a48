"""Record types and the on-disk line format shared by all series.

Line format: ``<ISO-8601 local timestamp> <value with 3 decimals>``, e.g.
``2025-03-01T10:00:00 23.457``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .time import format_local_iso, parse_local_iso

__all__ = [
    "VALUE_PRECISION",
    "PeriodAverage",
    "Record",
    "RecordFormatError",
    "format_record_line",
    "parse_record_line",
]

VALUE_PRECISION = 3


class RecordFormatError(ValueError):
    """Raised when a record line cannot be parsed."""

    pass


@dataclass(frozen=True)
class Record:
    """A single (timestamp, value) sample of a series.

    Attributes
    ----------
    timestamp : datetime
        Naive local timestamp
    value : float
        Measured or averaged value
    """

    timestamp: datetime
    value: float


@dataclass(frozen=True)
class PeriodAverage:
    """Average of all values that fell into one completed period."""

    period_start: datetime
    average: float

    def to_record(self) -> Record:
        return Record(timestamp=self.period_start, value=self.average)


def format_record_line(record: Record) -> str:
    """Format a record as one log line, including the trailing newline."""
    return f"{format_local_iso(record.timestamp)} {record.value:.{VALUE_PRECISION}f}\n"


def parse_record_line(line: str) -> Record:
    """Parse one log line into a record.

    Parameters
    ----------
    line
        Raw line, with or without trailing newline

    Returns
    -------
    Record
        Parsed record

    Raises
    ------
    RecordFormatError
        If the line does not hold exactly two fields separated by one space,
        or a field fails to parse
    """
    parts = line.rstrip("\r\n").split(" ")
    if len(parts) != 2:
        raise RecordFormatError(f"Expected 2 fields, got {len(parts)}: {line!r}")

    ts_str, value_str = parts
    try:
        timestamp = parse_local_iso(ts_str)
    except ValueError as exc:
        raise RecordFormatError(f"Invalid timestamp: {ts_str!r}") from exc

    try:
        value = float(value_str)
    except ValueError as exc:
        raise RecordFormatError(f"Invalid value: {value_str!r}") from exc

    return Record(timestamp=timestamp, value=value)
