"""Period floors and retention cutoffs.

Floors map an instant to the start of its enclosing period (hour, day,
calendar year). Cutoffs map "now" to the oldest instant a series retains.
All functions are pure and operate on naive local datetimes.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Literal

__all__ = [
    "CutoffFn",
    "Period",
    "PeriodFloor",
    "RETENTION_POLICIES",
    "Series",
    "cutoff_for_series",
    "floor_to_day",
    "floor_to_hour",
    "get_period_floor",
    "hours_ago_cutoff",
    "start_of_current_year",
]

Period = Literal["hour", "day"]
Series = Literal["raw", "hourly", "daily"]

PeriodFloor = Callable[[datetime], datetime]
CutoffFn = Callable[[datetime], datetime]


def floor_to_hour(dt: datetime) -> datetime:
    """Start of the clock hour containing ``dt``."""
    return dt.replace(minute=0, second=0, microsecond=0)


def floor_to_day(dt: datetime) -> datetime:
    """Local midnight of the day containing ``dt``."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_current_year(now: datetime) -> datetime:
    """January 1st, 00:00 of the year containing ``now``."""
    return datetime(now.year, 1, 1, tzinfo=now.tzinfo)


def hours_ago_cutoff(hours: int) -> CutoffFn:
    """Build a cutoff that keeps the last ``hours`` hours.

    Parameters
    ----------
    hours
        Window length in hours

    Returns
    -------
    CutoffFn
        Function mapping now to ``now - hours``
    """
    window = timedelta(hours=hours)

    def cutoff(now: datetime) -> datetime:
        return now - window

    return cutoff


_PERIOD_FLOORS: dict[str, PeriodFloor] = {
    "hour": floor_to_hour,
    "day": floor_to_day,
}

RETENTION_POLICIES: dict[str, CutoffFn] = {
    "raw": hours_ago_cutoff(24),
    "hourly": hours_ago_cutoff(24 * 30),
    "daily": start_of_current_year,
}


def get_period_floor(period: Period | PeriodFloor) -> PeriodFloor:
    """Resolve a period name or pass through a floor function.

    Parameters
    ----------
    period
        "hour", "day", or a callable floor

    Returns
    -------
    PeriodFloor
        Floor function

    Raises
    ------
    ValueError
        If the period name is unknown
    """
    if callable(period):
        return period
    try:
        return _PERIOD_FLOORS[period]
    except KeyError:
        raise ValueError(f"Unknown period: {period}") from None


def cutoff_for_series(series: Series) -> CutoffFn:
    """Return the retention cutoff for a named series.

    Raises
    ------
    ValueError
        If the series name is unknown
    """
    try:
        return RETENTION_POLICIES[series]
    except KeyError:
        raise ValueError(f"Unknown series: {series}") from None
