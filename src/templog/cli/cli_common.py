"""Common CLI utilities: stable exit codes and settings/logging bootstrap."""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from typing import Any

from ..config.settings import Settings, load_settings
from ..observability.loguru_config import configure_loguru

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    UNKNOWN_ERROR = 1  # Unknown/unexpected error
    CONFIG_ERROR = 2  # Bad arguments, settings or unopenable source
    IO_ERROR = 5  # Series file could not be written


def bootstrap(
    *,
    config_file: str | None,
    env_file: str | None,
    overrides: dict[str, Any],
) -> Settings:
    """Load settings and configure logging for a command.

    Raises
    ------
    ConfigError
        If settings are missing or invalid
    """
    settings = load_settings(config_file=config_file, env_file=env_file, overrides=overrides)
    configure_loguru(level=settings.log_level, log_file=Path(settings.log_file) if settings.log_file else None)
    return settings
