"""Time-bucketed aggregation of reading streams."""

from .aggregator import AggregatorState, TimeBucketAggregator
from .time_windows import (
    cutoff_for_series,
    floor_to_day,
    floor_to_hour,
    get_period_floor,
    hours_ago_cutoff,
    start_of_current_year,
)

__all__ = [
    "AggregatorState",
    "TimeBucketAggregator",
    "cutoff_for_series",
    "floor_to_day",
    "floor_to_hour",
    "get_period_floor",
    "hours_ago_cutoff",
    "start_of_current_year",
]
