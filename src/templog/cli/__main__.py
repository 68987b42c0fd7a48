#!/usr/bin/env python3
"""templog command line interface."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from ..adapters.line_readers import open_line_reader
from ..config.settings import ConfigError, Settings, generate_example_env
from ..core.records import format_record_line
from ..core.time import get_current_time
from ..observability.loguru_config import get_logger
from ..pipelines.logger_pipeline import create_logger_pipeline
from ..rollups.time_windows import cutoff_for_series
from ..storage.retention_log import RetentionLog, WriteStatus
from .cli_common import CONTEXT_SETTINGS, ExitCode, bootstrap

cli_logger = get_logger("cli")

EPILOG = """
Examples:
  # Log readings piped from another program
  sensor-reader | templog run

  # Read a serial device at 115200 baud
  templog run --source serial --port /dev/ttyUSB0 --baud 115200

  # Prune all series files now
  templog compact

  # Print the retained hourly averages
  templog show hourly --limit 24

  # Write an example .env listing every setting
  templog init-env
""".strip()


def series_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that touches the series files."""
    options = [
        click.option("--raw", "raw_path", type=click.Path(dir_okay=False, path_type=Path),
                     help="Raw readings log (default: measurements.log)"),
        click.option("--hour", "hourly_path", type=click.Path(dir_okay=False, path_type=Path),
                     help="Hourly averages log (default: hourly_avg.log)"),
        click.option("--day", "daily_path", type=click.Path(dir_okay=False, path_type=Path),
                     help="Daily averages log (default: daily_avg.log)"),
        click.option("--timezone", type=str, help="IANA timezone of the wall clock (default: system local)"),
        click.option("--log-level", type=str, help="Log level (default: INFO)"),
        click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), help="JSON log file"),
        click.option("--config", "config_file", type=str, help="YAML config file (default: templog.yaml)"),
        click.option("--env-file", type=str, help=".env file (default: .env)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _series_logs(settings: Settings) -> list[RetentionLog]:
    return [
        RetentionLog(settings.raw_path, cutoff_for_series("raw"), name="raw"),
        RetentionLog(settings.hourly_path, cutoff_for_series("hourly"), name="hourly"),
        RetentionLog(settings.daily_path, cutoff_for_series("daily"), name="daily"),
    ]


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="templog - sensor reading logger with hourly and daily averages",
    epilog=EPILOG,
)
def cli() -> None:
    """Root command."""


@cli.command("run")
@click.option("--source", type=click.Choice(["stdin", "serial"]), help="Reading source (default: stdin)")
@click.option("--port", type=str, help="Serial device, e.g. /dev/ttyUSB0 or COM3")
@click.option("--baud", type=int, help="Serial speed (default: 9600)")
@click.option("--compact-min", "compact_minutes", type=float, help="Minutes between compactions (default: 5)")
@series_options
def run_command(
    source: str | None,
    port: str | None,
    baud: int | None,
    compact_minutes: float | None,
    config_file: str | None,
    env_file: str | None,
    **series: Any,
) -> int:
    """Read lines until the input closes and maintain all three series."""
    overrides = {"source": source, "port": port, "baud": baud, "compact_minutes": compact_minutes, **series}

    try:
        settings = bootstrap(config_file=config_file, env_file=env_file, overrides=overrides)
        reader = open_line_reader(settings.source, port=settings.port, baudrate=settings.baud)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        return ExitCode.CONFIG_ERROR

    pipeline = create_logger_pipeline(settings)
    try:
        pipeline.start()
        pipeline.run(reader)
    except KeyboardInterrupt:
        cli_logger.info("Interrupted, stopping")
    finally:
        reader.close()

    return ExitCode.SUCCESS


@cli.command("compact")
@series_options
def compact_command(config_file: str | None, env_file: str | None, **series: Any) -> int:
    """Drop expired records from every series file now."""
    try:
        settings = bootstrap(config_file=config_file, env_file=env_file, overrides=series)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        return ExitCode.CONFIG_ERROR

    now = get_current_time(settings.timezone)
    exit_code = ExitCode.SUCCESS

    for log in _series_logs(settings):
        status = log.load_and_compact(now)
        click.echo(f"{log.name}: {len(log)} records retained in {log.path} ({status.value})")
        if status is WriteStatus.FAILED:
            exit_code = ExitCode.IO_ERROR

    return exit_code


@cli.command("show")
@click.argument("series_name", metavar="SERIES", type=click.Choice(["raw", "hourly", "daily"]))
@click.option("--limit", "-n", type=int, help="Only print the newest N records")
@series_options
def show_command(
    series_name: str,
    limit: int | None,
    config_file: str | None,
    env_file: str | None,
    **series: Any,
) -> int:
    """Print the retained records of one series without rewriting its file."""
    try:
        settings = bootstrap(config_file=config_file, env_file=env_file, overrides=series)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        return ExitCode.CONFIG_ERROR

    log = {log.name: log for log in _series_logs(settings)}[series_name]
    if not log.load():
        click.echo(f"Error: could not read {log.path}", err=True)
        return ExitCode.IO_ERROR
    log.expire(get_current_time(settings.timezone))

    records = log.records
    if limit is not None:
        records = records[-limit:] if limit > 0 else ()

    for record in records:
        click.echo(format_record_line(record), nl=False)

    return ExitCode.SUCCESS


@cli.command("init-env")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
    help="Where to write the example file",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_env_command(output: Path, force: bool) -> int:
    """Write an example .env file listing every TEMPLOG_ setting."""
    if output.exists() and not force:
        click.echo(f"Error: {output} already exists (use --force to overwrite)", err=True)
        return ExitCode.CONFIG_ERROR

    try:
        generate_example_env(output)
    except OSError as exc:
        click.echo(f"Error: could not write {output}: {exc}", err=True)
        return ExitCode.IO_ERROR

    click.echo(f"Wrote {output}")
    return ExitCode.SUCCESS


def main(args: list[str] | None = None) -> int:
    """CLI entry point returning a stable exit code."""
    try:
        normalized_args = list(args) if args is not None else None
        result = cli.main(args=normalized_args, prog_name="templog", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return ExitCode.UNKNOWN_ERROR
    except SystemExit as exc:  # pragma: no cover - click normalizes exit codes
        return int(exc.code) if exc.code is not None else 0

    return int(result) if isinstance(result, int) else ExitCode.SUCCESS


if __name__ == "__main__":  # pragma: no cover - executable module
    sys.exit(main())
