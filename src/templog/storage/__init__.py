"""Durable, bounded-retention storage for templog series."""

from .retention_log import RetentionLog, WriteStatus, atomic_rewrite

__all__ = [
    "RetentionLog",
    "WriteStatus",
    "atomic_rewrite",
]
