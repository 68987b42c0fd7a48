"""Bounded-retention append log backed by a text file.

Each series (raw, hourly, daily) keeps its records in one human-readable
file, one ``TIMESTAMP VALUE`` line per record. Appends add a single line;
compaction drops expired records from the front and rewrites the whole file
through a temporary sibling and an atomic replace.

I/O failures never propagate to callers: every mutating operation returns a
``WriteStatus`` and the log keeps counters so the failure stays observable.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections import deque
from collections.abc import Iterator
from datetime import datetime
from enum import Enum
from pathlib import Path

from ..core.records import Record, RecordFormatError, format_record_line, parse_record_line
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import CutoffFn

__all__ = [
    "RetentionLog",
    "WriteStatus",
    "atomic_rewrite",
]

storage_logger = get_logger("storage")


class WriteStatus(str, Enum):
    """Outcome of a durable write."""

    OK = "ok"
    DEGRADED = "degraded"  # replace unavailable, copy fallback used
    FAILED = "failed"


def _fsync_directory(directory: Path) -> None:
    if os.name != "posix":
        return
    dir_fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def atomic_rewrite(file_path: Path, content: str) -> WriteStatus:
    """Replace ``file_path`` with ``content`` without ever truncating it in place.

    Protocol: write tmp sibling -> fsync(tmp) -> replace -> fsync(dir). If the
    replace fails the temporary file is copied over the target and removed.

    Parameters
    ----------
    file_path
        Target file path
    content
        Full new contents

    Returns
    -------
    WriteStatus
        OK, DEGRADED (copy fallback used) or FAILED (target untouched)
    """
    tmp_path: Path | None = None
    try:
        if not file_path.parent.exists():
            file_path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temporary file on same filesystem
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=file_path.parent,
            prefix=f".{file_path.name}.tmp",
            delete=False,
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
    except OSError as exc:
        storage_logger.error(f"Failed to write temporary file for {file_path}: {exc}")
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        return WriteStatus.FAILED

    try:
        tmp_path.replace(file_path)
    except OSError as exc:
        storage_logger.warning(f"Atomic replace failed for {file_path} ({exc}); falling back to copy")
    else:
        try:
            _fsync_directory(file_path.parent)
        except OSError as exc:
            storage_logger.warning(f"Directory fsync failed for {file_path.parent}: {exc}")
        return WriteStatus.OK

    try:
        shutil.copyfile(tmp_path, file_path)
    except OSError as exc:
        storage_logger.error(f"Copy fallback failed for {file_path}: {exc}")
        return WriteStatus.FAILED
    finally:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as exc:
            storage_logger.warning(f"Could not remove temporary file {tmp_path}: {exc}")

    return WriteStatus.DEGRADED


class RetentionLog:
    """Ordered, time-bounded series of records persisted to a text file.

    The file is the durable source of truth; the in-memory deque is a cache
    of it. Records are only truncated from the front and appended at the
    back, so timestamps are expected to be non-decreasing.

    Example:
        >>> log = RetentionLog(Path("measurements.log"), hours_ago_cutoff(24))
        >>> log.load_and_compact(datetime.now())
        >>> log.append(Record(datetime.now(), 21.5))
    """

    def __init__(self, path: Path | str, cutoff_fn: CutoffFn, *, name: str | None = None) -> None:
        """Initialize log.

        Parameters
        ----------
        path
            Backing file path
        cutoff_fn
            Pure function mapping "now" to the oldest retained instant
        name
            Series label used in log messages (defaults to the file name)
        """
        self.path = Path(path)
        self.cutoff_fn = cutoff_fn
        self.name = name or self.path.name

        self._records: deque[Record] = deque()

        self.last_status: WriteStatus = WriteStatus.OK
        self.last_error: str | None = None
        self.error_count = 0
        self.skipped_lines = 0
        # Set while the file exists but could not be read; blocks rewrites
        self.load_failed = False

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    @property
    def records(self) -> tuple[Record, ...]:
        return tuple(self._records)

    def latest(self) -> Record | None:
        return self._records[-1] if self._records else None

    def load(self) -> bool:
        """Replace in-memory records with every well-formed line of the file.

        Malformed lines are skipped and counted in ``skipped_lines``. A missing
        file yields an empty log.

        Returns
        -------
        bool
            False if the file exists but could not be read
        """
        self._records.clear()
        self.skipped_lines = 0

        try:
            with open(self.path, encoding="utf-8", errors="replace") as f:
                for line in f:
                    if not line.strip():
                        continue
                    try:
                        self._records.append(parse_record_line(line))
                    except RecordFormatError as exc:
                        self.skipped_lines += 1
                        storage_logger.debug(f"Skipping malformed line in {self.name}: {exc}")
        except FileNotFoundError:
            storage_logger.debug(f"No existing file for {self.name} at {self.path}")
        except OSError as exc:
            self._records.clear()
            self._record_failure(f"Failed to read {self.path}: {exc}")
            self.load_failed = True
            return False

        self.load_failed = False
        return True

    def load_and_compact(self, now: datetime) -> WriteStatus:
        """Reload from disk, drop expired records and rewrite the file.

        An unreadable file is left untouched rather than rewritten empty.

        Parameters
        ----------
        now
            Reference instant for the cutoff

        Returns
        -------
        WriteStatus
            Outcome of the rewrite
        """
        if not self.load():
            return WriteStatus.FAILED

        loaded = len(self._records)
        status = self.compact_to_disk(now)

        storage_logger.bind(path=str(self.path), status=status.value).info(
            f"Loaded {self.name}: {loaded} records, {len(self._records)} retained, "
            f"{self.skipped_lines} malformed lines skipped"
        )
        return status

    def append(self, record: Record) -> WriteStatus:
        """Add a record to the tail and append its line to the file.

        Parameters
        ----------
        record
            Record to append

        Returns
        -------
        WriteStatus
            OK or FAILED; the in-memory record is kept either way
        """
        self._records.append(record)

        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(format_record_line(record))
        except OSError as exc:
            return self._record_failure(f"Failed to append to {self.path}: {exc}")

        self.last_status = WriteStatus.OK
        return WriteStatus.OK

    def expire(self, now: datetime) -> int:
        """Drop in-memory records older than ``cutoff_fn(now)``.

        Returns
        -------
        int
            Number of records dropped
        """
        cutoff = self.cutoff_fn(now)
        dropped = 0
        while self._records and self._records[0].timestamp < cutoff:
            self._records.popleft()
            dropped += 1
        return dropped

    def compact_to_disk(self, now: datetime) -> WriteStatus:
        """Expire old records and atomically rewrite the file.

        Parameters
        ----------
        now
            Reference instant for the cutoff

        Returns
        -------
        WriteStatus
            Outcome of the rewrite
        """
        if self.load_failed and not self._reload_keeping_pending():
            return self._record_failure(f"{self.path} is still unreadable; rewrite skipped to keep its contents")

        dropped = self.expire(now)
        content = "".join(format_record_line(r) for r in self._records)
        status = atomic_rewrite(self.path, content)

        if status is WriteStatus.FAILED:
            return self._record_failure(f"Rewrite of {self.path} failed; in-memory state kept")

        if dropped:
            storage_logger.debug(f"Compacted {self.name}: dropped {dropped}, kept {len(self._records)}")
        self.last_status = status
        return status

    def _reload_keeping_pending(self) -> bool:
        """Retry a failed load, keeping records added since.

        Appends made while the file was unreadable may or may not have
        reached it, so only records missing from the file are re-added.
        """
        pending = list(self._records)
        if not self.load():
            self._records.extend(pending)
            return False

        on_disk = set(self._records)
        self._records.extend(r for r in pending if r not in on_disk)
        storage_logger.info(f"Recovered {self.name}: {len(self._records)} records after failed load")
        return True

    def _record_failure(self, message: str) -> WriteStatus:
        self.error_count += 1
        self.last_status = WriteStatus.FAILED
        self.last_error = message
        storage_logger.bind(series=self.name, error_count=self.error_count).warning(message)
        return WriteStatus.FAILED
