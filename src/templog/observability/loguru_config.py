"""Loguru configuration for templog.

This module provides centralized loguru configuration with:
- Colored console output on stderr
- Optional structured JSON log file with rotation
- Component-bound loggers (storage, rollups, pipeline, adapters, cli)
- A context manager for timing operations such as compaction passes
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("storage", "rollups", "pipeline", "adapters", "cli")


def configure_loguru(
    *,
    level: str = "INFO",
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "10 days",
    enable_console: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_file
        Optional path of a JSON lines log file
    rotation
        Log rotation policy (e.g., "10 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    enable_console
        Enable console output

    Example
    -------
    >>> from templog.observability.loguru_config import configure_loguru
    >>> configure_loguru(level="DEBUG", log_file=Path("logs/templog.jsonl"))
    """
    # Remove default handler
    logger.remove()
    logger.configure(extra={"component": "templog"})

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=False,
            diagnose=False,
        )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            serialize=True,  # JSON serialization
            backtrace=True,
            diagnose=False,
        )

    logger.debug("Loguru configured", level=level, log_file=str(log_file) if log_file else None)


def get_logger(component: str = "templog") -> Any:
    """Get logger instance bound to a component.

    Parameters
    ----------
    component
        Component name (storage, rollups, pipeline, adapters, cli)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "templog",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Context manager logging the duration of an operation.

    Parameters
    ----------
    operation
        Name of the operation being timed
    component
        Component name for filtering logs
    **metadata
        Additional metadata to log

    Yields
    ------
    dict
        Context dictionary that can be updated with additional data

    Example
    -------
    >>> with timing_context("compaction", component="pipeline") as ctx:
    ...     ctx["retained"] = compact_all()
    """
    start_ns = time.perf_counter_ns()
    context: dict[str, Any] = dict(metadata)
    bound = logger.bind(component=component, operation=operation)

    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        bound.debug(
            f"END: {operation}",
            phase="end",
            duration_ms=duration_ms,
            **context,
        )
