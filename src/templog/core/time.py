"""Local wall-clock time utilities for templog.

Provides consistent time handling across the logger with:
- Naive local timestamps (no timezone suffix is ever persisted)
- ISO-8601 formatting at second precision for log lines
- Optional IANA timezone selecting which wall clock "now" reads
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

__all__ = [
    "LOCAL_ISO_FORMAT",
    "format_local_iso",
    "get_current_time",
    "parse_local_iso",
    "validate_timezone",
]

LOCAL_ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"


def validate_timezone(timezone_name: str) -> ZoneInfo:
    """Resolve an IANA timezone name.

    Parameters
    ----------
    timezone_name
        IANA timezone name (e.g., "Europe/Brussels")

    Returns
    -------
    ZoneInfo
        Resolved timezone

    Raises
    ------
    ValueError
        If timezone is invalid
    """
    try:
        return ZoneInfo(timezone_name)
    except Exception as exc:
        raise ValueError(f"Invalid timezone: {timezone_name}") from exc


def get_current_time(tz: ZoneInfo | str | None = None) -> datetime:
    """Get the current local wall-clock time as a naive datetime.

    Parameters
    ----------
    tz
        Timezone whose wall clock to read (ZoneInfo, name, or None for the
        system local time)

    Returns
    -------
    datetime
        Current time without tzinfo
    """
    if tz is None:
        return datetime.now()
    if isinstance(tz, str):
        tz = validate_timezone(tz)
    return datetime.now(tz).replace(tzinfo=None)


def format_local_iso(dt: datetime) -> str:
    """Format a timestamp as ``YYYY-MM-DDTHH:MM:SS``.

    Sub-second precision is dropped. Aware datetimes are converted to the
    system local time first so that no offset suffix is written.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.strftime(LOCAL_ISO_FORMAT)


def parse_local_iso(value: str) -> datetime:
    """Parse an ISO-8601 local timestamp into a naive datetime.

    Parameters
    ----------
    value
        Timestamp string, normally ``YYYY-MM-DDTHH:MM:SS``

    Returns
    -------
    datetime
        Parsed naive datetime

    Raises
    ------
    ValueError
        If parsing fails
    """
    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt
