"""Logger Pipeline - the single driving loop of templog.

Reads a line, parses it, feeds the raw log and both aggregators, forwards
finished periods into their own logs, and runs a compaction pass whenever
the wall clock passes the next-due deadline. Everything runs synchronously
between two line reads.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from ..adapters.readings import ReadingParseError, parse_reading
from ..core.records import PeriodAverage, Record
from ..core.time import get_current_time
from ..observability.loguru_config import get_logger, timing_context
from ..rollups.aggregator import TimeBucketAggregator
from ..rollups.time_windows import cutoff_for_series
from ..storage.retention_log import RetentionLog, WriteStatus

if TYPE_CHECKING:
    from ..adapters.line_readers import LineReader
    from ..config.settings import Settings

__all__ = [
    "LoggerPipeline",
    "LoggerPipelineConfig",
    "PipelineStats",
    "create_logger_pipeline",
]

pipeline_logger = get_logger("pipeline")

Clock = Callable[[], datetime]


@dataclass
class LoggerPipelineConfig:
    """Configuration for the logger pipeline."""

    raw_path: Path = Path("measurements.log")
    hourly_path: Path = Path("hourly_avg.log")
    daily_path: Path = Path("daily_avg.log")
    compact_interval: timedelta = timedelta(minutes=5)
    source_label: str = "stdin"


@dataclass
class PipelineStats:
    """Counters collected while the pipeline runs."""

    lines_read: int = 0
    readings: int = 0
    dropped_lines: int = 0
    hourly_emitted: int = 0
    daily_emitted: int = 0
    compactions: int = 0
    write_failures: int = 0
    last_reading_at: datetime | None = None
    statuses: dict[str, WriteStatus] = field(default_factory=dict)


class LoggerPipeline:
    """Thin orchestration over aggregators and retention logs.

    Responsibilities:
    - Timestamp each reading with the wall clock at receipt
    - Append every reading to the raw log
    - Forward finished hourly/daily averages into their logs
    - Compact all logs at startup and every ``compact_interval``
    - Compact the daily log as soon as a day completes (year rollover)

    Example:
        >>> pipeline = create_logger_pipeline(settings)
        >>> pipeline.start()
        >>> stats = pipeline.run(reader)
    """

    def __init__(
        self,
        config: LoggerPipelineConfig,
        *,
        clock: Clock | None = None,
        raw_log: RetentionLog | None = None,
        hourly_log: RetentionLog | None = None,
        daily_log: RetentionLog | None = None,
        hourly_aggregator: TimeBucketAggregator | None = None,
        daily_aggregator: TimeBucketAggregator | None = None,
    ) -> None:
        """Initialize pipeline.

        Parameters
        ----------
        config
            Pipeline configuration
        clock
            Wall clock returning naive local time (default: system local time)
        raw_log, hourly_log, daily_log
            Logs to use instead of ones built from ``config``
        hourly_aggregator, daily_aggregator
            Aggregators to use instead of the default hour/day ones
        """
        self.config = config
        self.clock = clock or get_current_time

        self.raw_log = raw_log or RetentionLog(config.raw_path, cutoff_for_series("raw"), name="raw")
        self.hourly_log = hourly_log or RetentionLog(config.hourly_path, cutoff_for_series("hourly"), name="hourly")
        self.daily_log = daily_log or RetentionLog(config.daily_path, cutoff_for_series("daily"), name="daily")

        self.hourly_aggregator = hourly_aggregator or TimeBucketAggregator("hour", name="hourly")
        self.daily_aggregator = daily_aggregator or TimeBucketAggregator("day", name="daily")

        self.stats = PipelineStats()
        self.next_compaction: datetime | None = None

    @property
    def logs(self) -> tuple[RetentionLog, RetentionLog, RetentionLog]:
        return (self.raw_log, self.hourly_log, self.daily_log)

    def start(self) -> None:
        """Load every log, drop expired records and schedule the first compaction."""
        now = self.clock()
        for log in self.logs:
            self._track(log, log.load_and_compact(now))

        self.next_compaction = self.clock() + self.config.compact_interval

    def process_line(self, line: str) -> Record | None:
        """Handle one raw line from the reading source.

        Returns
        -------
        Record | None
            The raw record appended, or None if the line was dropped
        """
        self.stats.lines_read += 1

        try:
            value = parse_reading(line)
        except ReadingParseError as exc:
            self.stats.dropped_lines += 1
            pipeline_logger.debug(f"Dropped line: {exc}")
            return None

        record = self.process_reading(self.clock(), value)
        self.maybe_compact()
        return record

    def process_reading(self, timestamp: datetime, value: float) -> Record:
        """Feed one timestamped reading into every series."""
        record = Record(timestamp=timestamp, value=value)
        self.stats.readings += 1
        self.stats.last_reading_at = timestamp

        self._track(self.raw_log, self.raw_log.append(record))

        finished_hour = self.hourly_aggregator.push(timestamp, value)
        if finished_hour is not None:
            self._emit(self.hourly_log, finished_hour)
            self.stats.hourly_emitted += 1

        finished_day = self.daily_aggregator.push(timestamp, value)
        if finished_day is not None:
            self._emit(self.daily_log, finished_day)
            self.stats.daily_emitted += 1
            # A completed day may also be the first reading of a new year
            self._track(self.daily_log, self.daily_log.compact_to_disk(self.clock()))

        return record

    def maybe_compact(self) -> bool:
        """Run a compaction pass if the deadline has passed.

        Returns
        -------
        bool
            True if a pass ran
        """
        now = self.clock()
        if self.next_compaction is not None and now < self.next_compaction:
            return False

        self.compact_all(now)
        self.next_compaction = now + self.config.compact_interval
        return True

    def compact_all(self, now: datetime) -> None:
        """Expire old records in every log and rewrite their files."""
        with timing_context("compaction", component="pipeline") as ctx:
            for log in self.logs:
                self._track(log, log.compact_to_disk(now))
            ctx["retained"] = {log.name: len(log) for log in self.logs}
        self.stats.compactions += 1

    def run(self, reader: LineReader) -> PipelineStats:
        """Consume ``reader`` until end-of-stream.

        The trailing partial hour/day is not flushed when input ends.
        """
        if self.next_compaction is None:
            self.start()

        pipeline_logger.info(f"templog started. source={self.config.source_label}")

        while True:
            line = reader.read_line()
            if line is None:
                break
            self.process_line(line)

        pending = self.hourly_aggregator.pending_count
        pipeline_logger.bind(
            lines=self.stats.lines_read,
            readings=self.stats.readings,
            dropped=self.stats.dropped_lines,
            write_failures=self.stats.write_failures,
        ).info(f"templog finished (input closed); {pending} readings in the open hour not averaged")
        return self.stats

    def _emit(self, log: RetentionLog, average: PeriodAverage) -> None:
        pipeline_logger.info(f"{log.name} average for {average.period_start.isoformat()}: {average.average:.3f}")
        self._track(log, log.append(average.to_record()))

    def _track(self, log: RetentionLog, status: WriteStatus) -> None:
        self.stats.statuses[log.name] = status
        if status is WriteStatus.FAILED:
            self.stats.write_failures += 1


def create_logger_pipeline(settings: Settings, *, clock: Clock | None = None) -> LoggerPipeline:
    """Create a pipeline from loaded settings.

    Parameters
    ----------
    settings
        Loaded settings
    clock
        Optional wall clock override

    Returns
    -------
    LoggerPipeline
        Configured pipeline (not yet started)
    """
    config = LoggerPipelineConfig(
        raw_path=settings.raw_path,
        hourly_path=settings.hourly_path,
        daily_path=settings.daily_path,
        compact_interval=timedelta(minutes=settings.compact_minutes),
        source_label=settings.source,
    )

    if clock is None and settings.timezone:
        timezone_name = settings.timezone

        def clock() -> datetime:
            return get_current_time(timezone_name)

    return LoggerPipeline(config, clock=clock)
