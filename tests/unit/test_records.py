"""Tests for the record line format and local time helpers."""

from datetime import datetime

import pytest

from templog.core.records import (
    PeriodAverage,
    Record,
    RecordFormatError,
    format_record_line,
    parse_record_line,
)
from templog.core.time import format_local_iso, get_current_time, parse_local_iso


class TestFormat:
    """Test formatting records as log lines."""

    def test_format_record_line(self):
        """Test timestamp and 3-decimal value separated by one space."""
        record = Record(datetime(2025, 3, 1, 10, 0, 0), 23.5)

        assert format_record_line(record) == "2025-03-01T10:00:00 23.500\n"

    def test_format_drops_microseconds(self):
        """Test timestamps are written at second precision."""
        record = Record(datetime(2025, 3, 1, 10, 0, 0, 999999), 1.0)

        assert format_record_line(record).startswith("2025-03-01T10:00:00 ")

    def test_format_negative_value(self):
        """Test negative readings keep their sign."""
        record = Record(datetime(2025, 1, 15, 6, 30, 0), -4.25)

        assert format_record_line(record) == "2025-01-15T06:30:00 -4.250\n"


class TestParse:
    """Test parsing log lines."""

    def test_parse_record_line(self):
        """Test a well-formed line parses to a record."""
        record = parse_record_line("2025-03-01T10:00:00 23.457\n")

        assert record == Record(datetime(2025, 3, 1, 10, 0, 0), 23.457)

    def test_parse_tolerates_crlf(self):
        """Test a Windows line ending is ignored."""
        record = parse_record_line("2025-03-01T10:00:00 1.000\r\n")

        assert record.value == 1.0

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "2025-03-01T10:00:00",
            "2025-03-01T10:00:00 1.0 extra",
            "not-a-time 1.0",
            "2025-13-01T10:00:00 1.0",
            "2025-03-01T10:00:00 abc",
            "2025-03-01T10:00:00  1.0",
            "2025-03-01T10:00:00\t1.0",
            " 2025-03-01T10:00:00 1.0",
        ],
    )
    def test_parse_rejects_malformed_lines(self, line):
        """Test wrong field counts, separators and unparseable tokens raise."""
        with pytest.raises(RecordFormatError):
            parse_record_line(line)


def test_round_trip_keeps_three_decimals():
    """Test formatting then parsing rounds to 3 decimal digits."""
    record = Record(datetime(2025, 3, 1, 10, 0, 0), 23.4567)

    parsed = parse_record_line(format_record_line(record))

    assert parsed.value == pytest.approx(23.457, abs=1e-9)
    assert parsed.timestamp == record.timestamp


def test_period_average_to_record():
    """Test an aggregation result converts to a series record."""
    average = PeriodAverage(datetime(2025, 3, 1, 10, 0), 1.5)

    assert average.to_record() == Record(datetime(2025, 3, 1, 10, 0), 1.5)


class TestLocalTime:
    """Test local ISO formatting helpers."""

    def test_format_local_iso(self):
        """Test formatting has no timezone suffix."""
        assert format_local_iso(datetime(2025, 12, 31, 23, 59, 58)) == "2025-12-31T23:59:58"

    def test_parse_local_iso(self):
        """Test parsing yields a naive datetime."""
        dt = parse_local_iso("2025-12-31T23:59:58")

        assert dt == datetime(2025, 12, 31, 23, 59, 58)
        assert dt.tzinfo is None

    def test_get_current_time_is_naive(self):
        """Test the wall clock is naive with or without a timezone."""
        assert get_current_time().tzinfo is None
        assert get_current_time("UTC").tzinfo is None

    def test_get_current_time_invalid_timezone(self):
        """Test unknown timezone names raise ValueError."""
        with pytest.raises(ValueError, match="Invalid timezone"):
            get_current_time("Mars/Olympus_Mons")
