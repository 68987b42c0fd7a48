"""Centralized configuration for templog.

Configuration priority (highest to lowest):
1. Explicit overrides (CLI options)
2. Environment variables (TEMPLOG_*)
3. .env file
4. YAML config file (templog.yaml)
5. Dataclass defaults

Missing or invalid configuration produces a ``ConfigError`` with a clear
message; the CLI turns it into a non-zero exit status.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from ..core.time import validate_timezone

__all__ = [
    "ConfigError",
    "ENV_PREFIX",
    "Settings",
    "generate_example_env",
    "load_env_file",
    "load_settings",
    "load_yaml_config",
]

ENV_PREFIX = "TEMPLOG_"

SOURCES = ("stdin", "serial")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """All templog settings in one place.

    Attributes
    ----------
    source : str
        Reading source: stdin or serial
    port : str | None
        Serial device (required for serial source)
    baud : int
        Serial speed
    raw_path : Path
        Raw readings log (last 24 hours)
    hourly_path : Path
        Hourly averages log (last 30 days)
    daily_path : Path
        Daily averages log (current calendar year)
    compact_minutes : float
        Minutes between periodic compaction passes
    timezone : str | None
        IANA timezone for the wall clock (None: system local time)
    log_level : str
        Logging level
    log_file : Path | None
        JSON log file path (None: console only)
    """

    source: str = "stdin"
    port: str | None = None
    baud: int = 9600

    raw_path: Path = Path("measurements.log")
    hourly_path: Path = Path("hourly_avg.log")
    daily_path: Path = Path("daily_avg.log")

    compact_minutes: float = 5.0
    timezone: str | None = None

    log_level: str = "INFO"
    log_file: Path | None = None

    def __post_init__(self):
        """Normalize types and validate settings."""
        for name in ("raw_path", "hourly_path", "daily_path"):
            value = getattr(self, name)
            if not value:
                raise ConfigError(f"{name} is required")
            setattr(self, name, Path(value))

        if self.log_file and isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)

        self.source = str(self.source).lower()
        if self.source not in SOURCES:
            raise ConfigError(f"Unknown source '{self.source}'. Expected one of: {', '.join(SOURCES)}")

        if self.source == "serial" and not self.port:
            raise ConfigError(
                "A serial port is required when source is serial.\n"
                "Pass --port /dev/ttyUSB0 (or COM3) or set TEMPLOG_PORT"
            )

        try:
            self.baud = int(self.baud)
            self.compact_minutes = float(self.compact_minutes)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid numeric setting: {exc}") from exc

        if self.baud <= 0:
            raise ConfigError(f"baud must be positive, got {self.baud}")
        if self.compact_minutes <= 0:
            raise ConfigError(f"compact_minutes must be positive, got {self.compact_minutes}")

        if self.timezone:
            try:
                validate_timezone(self.timezone)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
        else:
            self.timezone = None

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.log_level}")

    @classmethod
    def from_sources(
        cls,
        *,
        config_file: Path | str | None = None,
        env_file: Path | str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> Settings:
        """Build settings from YAML, .env, environment and explicit overrides.

        Parameters
        ----------
        config_file
            YAML config path (default: templog.yaml in current directory)
        env_file
            .env path (default: .env in current directory)
        overrides
            Highest-priority values; None entries are ignored

        Returns
        -------
        Settings
            Loaded settings

        Raises
        ------
        ConfigError
            If a file is unreadable or a setting is invalid
        """
        values: dict[str, Any] = {}

        values.update(load_yaml_config(Path(config_file) if config_file else Path("templog.yaml")))

        env_path = Path(env_file) if env_file else Path(".env")
        if env_path.exists():
            load_env_file(env_path)
        elif env_file:
            raise ConfigError(f"Env file not found: {env_path}")

        for field_ in fields(cls):
            env_name = f"{ENV_PREFIX}{field_.name.upper()}"
            if env_name in os.environ:
                values[field_.name] = os.environ[env_name]

        if overrides:
            values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**values)


def load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load flat settings from a YAML file.

    A missing default file yields an empty mapping. Unknown keys are
    rejected so typos surface early.

    Raises
    ------
    ConfigError
        If the file cannot be parsed or holds unknown keys
    """
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")

    return data


def load_env_file(env_file: Path) -> None:
    """Load environment variables from .env file.

    Existing environment variables win over values from the file.

    Parameters
    ----------
    env_file
        Path to .env file
    """
    with open(env_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            # Skip comments and empty lines
            if not line or line.startswith("#"):
                continue

            # Parse KEY=VALUE
            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                # Remove quotes
                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ.setdefault(key, value)


def load_settings(
    *,
    config_file: Path | str | None = None,
    env_file: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from every source.

    Raises
    ------
    ConfigError
        If settings are missing or invalid
    """
    return Settings.from_sources(config_file=config_file, env_file=env_file, overrides=overrides)


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate example .env file with all settings.

    Parameters
    ----------
    output_path
        Optional path to write .env file

    Returns
    -------
    str
        Example .env contents
    """
    example = """# templog configuration
# Copy this to .env and adjust values

# Reading source: stdin or serial (default: stdin)
TEMPLOG_SOURCE=stdin

# Serial device, required when TEMPLOG_SOURCE=serial
# TEMPLOG_PORT=/dev/ttyUSB0
TEMPLOG_BAUD=9600

# Series files
TEMPLOG_RAW_PATH=measurements.log
TEMPLOG_HOURLY_PATH=hourly_avg.log
TEMPLOG_DAILY_PATH=daily_avg.log

# Minutes between compaction passes (default: 5)
TEMPLOG_COMPACT_MINUTES=5

# Wall clock timezone (optional, default: system local time)
# TEMPLOG_TIMEZONE=Europe/Brussels

# Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL
TEMPLOG_LOG_LEVEL=INFO

# JSON log file (optional, logs to console if not set)
# TEMPLOG_LOG_FILE=logs/templog.jsonl
"""

    if output_path:
        output_path.write_text(example, encoding="utf-8")

    return example
