"""Integration tests for the logger pipeline with real files and a fake clock."""

from __future__ import annotations

import io
import os
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from templog.adapters.line_readers import StreamLineReader
from templog.config.settings import Settings
from templog.core.records import Record
from templog.pipelines.logger_pipeline import LoggerPipeline, LoggerPipelineConfig, create_logger_pipeline
from templog.storage.retention_log import WriteStatus


class ScriptedReader:
    """Line reader that advances the clock before handing out each line."""

    def __init__(self, clock, script: list[tuple[datetime, str]]) -> None:
        self.clock = clock
        self.script = list(script)

    def read_line(self) -> str | None:
        if not self.script:
            return None
        when, line = self.script.pop(0)
        self.clock.set(when)
        return line

    def close(self) -> None:
        pass


@pytest.fixture
def config(tmp_path) -> LoggerPipelineConfig:
    return LoggerPipelineConfig(
        raw_path=tmp_path / "measurements.log",
        hourly_path=tmp_path / "hourly_avg.log",
        daily_path=tmp_path / "daily_avg.log",
        compact_interval=timedelta(minutes=5),
    )


def read_lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


class TestHourlyFlow:
    """Test readings flowing into the raw and hourly series."""

    def test_hourly_average_written_at_boundary(self, config, fake_clock):
        """Test 1.0@10:00, 2.0@10:30, 3.0@11:05 writes 1.5 for 10:00."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        reader = ScriptedReader(
            fake_clock,
            [
                (datetime(2025, 3, 10, 10, 0), "1.0"),
                (datetime(2025, 3, 10, 10, 30), "TEMP=2,0"),
                (datetime(2025, 3, 10, 11, 5), "3.0C"),
            ],
        )

        stats = pipeline.run(reader)

        assert read_lines(config.raw_path) == [
            "2025-03-10T10:00:00 1.000",
            "2025-03-10T10:30:00 2.000",
            "2025-03-10T11:05:00 3.000",
        ]
        assert read_lines(config.hourly_path) == ["2025-03-10T10:00:00 1.500"]
        assert read_lines(config.daily_path) == []
        assert stats.readings == 3
        assert stats.hourly_emitted == 1
        assert stats.daily_emitted == 0

    def test_open_hour_not_flushed_on_end_of_input(self, config, fake_clock):
        """Test the trailing partial hour is not written when input ends."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        reader = ScriptedReader(fake_clock, [(datetime(2025, 3, 10, 10, 15), "20.0")])

        pipeline.run(reader)

        assert read_lines(config.hourly_path) == []
        assert pipeline.hourly_aggregator.pending_count == 1

    def test_bad_lines_dropped(self, config, fake_clock):
        """Test unparseable lines are counted and never reach any series."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        pipeline.start()

        assert pipeline.process_line("sensor error") is None
        assert pipeline.process_line("") is None
        record = pipeline.process_line("21.5")

        assert record == Record(fake_clock.now, 21.5)
        assert pipeline.stats.lines_read == 3
        assert pipeline.stats.dropped_lines == 2
        assert read_lines(config.raw_path) == ["2025-03-10T09:00:00 21.500"]


class TestDailyFlow:
    """Test daily averages and year rollover."""

    def test_daily_average_and_rollover_compaction(self, config, fake_clock):
        """Test the first reading of a new year empties the daily series."""
        config.daily_path.write_text("2025-12-30T00:00:00 3.000\n", encoding="utf-8")
        fake_clock.set(datetime(2025, 12, 31, 22, 0))
        pipeline = LoggerPipeline(config, clock=fake_clock)
        pipeline.start()

        fake_clock.set(datetime(2025, 12, 31, 23, 0))
        pipeline.process_line("10.0")
        fake_clock.set(datetime(2025, 12, 31, 23, 30))
        pipeline.process_line("20.0")
        fake_clock.set(datetime(2026, 1, 1, 0, 0, 1))
        pipeline.process_line("5.0")

        assert pipeline.stats.daily_emitted == 1
        # The finished day belongs to the old year and is pruned at once
        assert read_lines(config.daily_path) == []
        assert len(pipeline.daily_log) == 0

    def test_daily_average_within_year(self, config, fake_clock):
        """Test a completed day is appended and kept."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        pipeline.start()

        for when, value in [
            (datetime(2025, 3, 10, 9, 0), "10"),
            (datetime(2025, 3, 10, 18, 0), "14"),
            (datetime(2025, 3, 11, 0, 30), "0"),
        ]:
            fake_clock.set(when)
            pipeline.process_line(value)

        assert read_lines(config.daily_path) == ["2025-03-10T00:00:00 12.000"]


class TestCompaction:
    """Test startup and periodic compaction."""

    def test_startup_compaction_prunes_old_records(self, config, fake_clock):
        """Test expired raw records are removed when the pipeline starts."""
        config.raw_path.write_text(
            "2025-03-09T08:00:00 1.000\n"
            "2025-03-10T08:00:00 2.000\n",
            encoding="utf-8",
        )
        pipeline = LoggerPipeline(config, clock=fake_clock)

        pipeline.start()

        assert read_lines(config.raw_path) == ["2025-03-10T08:00:00 2.000"]
        assert pipeline.next_compaction == fake_clock.now + timedelta(minutes=5)
        assert pipeline.stats.statuses == {
            "raw": WriteStatus.OK,
            "hourly": WriteStatus.OK,
            "daily": WriteStatus.OK,
        }

    def test_periodic_compaction_cadence(self, config, fake_clock):
        """Test a pass runs once the interval has elapsed and not before."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        pipeline.start()
        start = fake_clock.now

        fake_clock.set(start + timedelta(minutes=4, seconds=59))
        pipeline.process_line("1.0")
        assert pipeline.stats.compactions == 0

        fake_clock.set(start + timedelta(minutes=5))
        pipeline.process_line("1.0")
        assert pipeline.stats.compactions == 1
        assert pipeline.next_compaction == start + timedelta(minutes=10)

    def test_compaction_expires_raw_readings(self, config, fake_clock):
        """Test raw readings older than 24h disappear at the next pass."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        pipeline.start()
        pipeline.process_line("7.0")

        fake_clock.set(fake_clock.now + timedelta(hours=24, minutes=1))
        pipeline.process_line("8.0")

        assert [r.value for r in pipeline.raw_log] == [8.0]
        assert read_lines(config.raw_path) == ["2025-03-11T09:01:00 8.000"]

    def test_unreadable_file_at_startup_keeps_history(self, config, fake_clock):
        """Test a periodic pass after a failed startup read keeps old records."""
        config.raw_path.write_text(
            "2025-03-10T08:00:00 1.000\n"
            "2025-03-10T08:30:00 2.000\n",
            encoding="utf-8",
        )
        pipeline = LoggerPipeline(config, clock=fake_clock)
        real_open = open

        def deny_raw_reads(file, mode="r", *args, **kwargs):
            if isinstance(file, (str, os.PathLike)) and Path(file) == config.raw_path and "r" in mode:
                raise PermissionError(f"Permission denied: {file}")
            return real_open(file, mode, *args, **kwargs)

        with patch("builtins.open", deny_raw_reads):
            pipeline.start()
        assert pipeline.stats.statuses["raw"] is WriteStatus.FAILED

        fake_clock.set(fake_clock.now + timedelta(minutes=6))
        pipeline.process_line("3.0")

        assert pipeline.stats.compactions == 1
        assert read_lines(config.raw_path) == [
            "2025-03-10T08:00:00 1.000",
            "2025-03-10T08:30:00 2.000",
            "2025-03-10T09:06:00 3.000",
        ]
        assert pipeline.stats.statuses["raw"] is WriteStatus.OK

    def test_run_survives_undecodable_input(self, config, fake_clock):
        """Test invalid UTF-8 from the device drops one line, not the stream."""
        pipeline = LoggerPipeline(config, clock=fake_clock)
        stream = io.TextIOWrapper(io.BytesIO(b"21.5\n\xff\xfe noise\n22.5\n23.5\n"), encoding="utf-8")

        stats = pipeline.run(StreamLineReader(stream))

        assert stats.readings == 3
        assert stats.dropped_lines == 1
        assert len(read_lines(config.raw_path)) == 3

    def test_write_failures_counted(self, tmp_path, fake_clock):
        """Test an unwritable series is reported without stopping the loop."""
        blocked = tmp_path / "blocked"
        blocked.write_text("not a directory", encoding="utf-8")
        config = LoggerPipelineConfig(
            raw_path=blocked / "measurements.log",
            hourly_path=tmp_path / "hourly_avg.log",
            daily_path=tmp_path / "daily_avg.log",
        )
        pipeline = LoggerPipeline(config, clock=fake_clock)

        pipeline.start()
        pipeline.process_line("1.0")

        assert pipeline.stats.write_failures >= 2
        assert pipeline.stats.statuses["raw"] is WriteStatus.FAILED
        assert pipeline.stats.readings == 1


def test_run_with_stream_reader(config, fake_clock):
    """Test the loop ends cleanly when the stream closes."""
    pipeline = LoggerPipeline(config, clock=fake_clock)
    reader = StreamLineReader(io.StringIO("20.5\nbogus\n21.5\n"))

    stats = pipeline.run(reader)

    assert stats.lines_read == 3
    assert stats.readings == 2
    assert stats.last_reading_at == fake_clock.now
    assert len(read_lines(config.raw_path)) == 2


def test_create_logger_pipeline_from_settings(tmp_path, fake_clock):
    """Test settings map onto the pipeline configuration."""
    settings = Settings(
        raw_path=tmp_path / "r.log",
        hourly_path=tmp_path / "h.log",
        daily_path=tmp_path / "d.log",
        compact_minutes=2,
    )

    pipeline = create_logger_pipeline(settings, clock=fake_clock)

    assert pipeline.config.compact_interval == timedelta(minutes=2)
    assert pipeline.raw_log.path == tmp_path / "r.log"
    assert pipeline.clock is fake_clock
