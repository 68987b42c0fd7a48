"""Streaming time-bucket aggregation.

Reduce a monotonically timestamped value stream into one average per fixed
period. A period is only known to be complete when a reading from a later
period arrives; the trailing partial period is never flushed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.records import PeriodAverage
from ..observability.loguru_config import get_logger
from .time_windows import Period, PeriodFloor, get_period_floor

__all__ = [
    "AggregatorState",
    "TimeBucketAggregator",
]

rollup_logger = get_logger("rollups")


@dataclass(frozen=True)
class AggregatorState:
    """Snapshot of the bucket currently being accumulated.

    Attributes
    ----------
    initialized : bool
        False until the first push or explicit reset
    period_start : datetime | None
        Floored start of the current bucket
    total : float
        Sum of values folded into the bucket
    count : int
        Number of values folded into the bucket
    """

    initialized: bool
    period_start: datetime | None
    total: float
    count: int


class TimeBucketAggregator:
    """Fold readings into per-period averages.

    Example:
        >>> agg = TimeBucketAggregator("hour")
        >>> agg.push(datetime(2025, 1, 1, 10, 0), 1.0) is None
        True
        >>> agg.push(datetime(2025, 1, 1, 10, 30), 2.0) is None
        True
        >>> agg.push(datetime(2025, 1, 1, 11, 5), 3.0)
        PeriodAverage(period_start=datetime.datetime(2025, 1, 1, 10, 0), average=1.5)
    """

    def __init__(self, period: Period | PeriodFloor, *, name: str | None = None) -> None:
        """Initialize aggregator.

        Parameters
        ----------
        period
            Period name ("hour", "day") or a floor function
        name
            Label used in log messages
        """
        self._floor = get_period_floor(period)
        self.name = name or (period if isinstance(period, str) else getattr(period, "__name__", "custom"))

        self._initialized = False
        self._period_start: datetime | None = None
        self._sum = 0.0
        self._count = 0

    @property
    def state(self) -> AggregatorState:
        return AggregatorState(
            initialized=self._initialized,
            period_start=self._period_start,
            total=self._sum,
            count=self._count,
        )

    @property
    def pending_count(self) -> int:
        """Values accumulated in the still-open bucket."""
        return self._count

    def reset(self, period_start: datetime) -> None:
        """Start accumulating a fresh, empty bucket at ``period_start``."""
        self._initialized = True
        self._period_start = period_start
        self._sum = 0.0
        self._count = 0

    def push(self, timestamp: datetime, value: float) -> PeriodAverage | None:
        """Fold one reading in.

        Parameters
        ----------
        timestamp
            Reading time; expected to be >= every earlier timestamp
        value
            Reading value

        Returns
        -------
        PeriodAverage | None
            Average of the previous bucket if this reading crossed a period
            boundary and that bucket held values, otherwise None
        """
        start = self._floor(timestamp)

        if not self._initialized:
            self.reset(start)

        finished: PeriodAverage | None = None

        if start != self._period_start:
            if self._count > 0:
                finished = PeriodAverage(
                    period_start=self._period_start,
                    average=self._sum / self._count,
                )
            if self._period_start is not None and start < self._period_start:
                rollup_logger.bind(timestamp=str(timestamp), period_start=str(self._period_start)).warning(
                    f"Out-of-order reading for {self.name} aggregator"
                )
            self.reset(start)

        self._sum += value
        self._count += 1
        return finished
