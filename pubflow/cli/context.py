from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from pubflow.core.errors import ErrorCode
from pubflow.core.result import Err
from pubflow.output.console import ConsoleProtocol, LogLevel, RichConsole, parse_log_level
from pubflow.publish.config import Configuration, load_configuration


@dataclass(frozen=True, slots=True)
class CLIContext:
    config_dir: Path
    config: Configuration
    console: ConsoleProtocol


def _resolve_level(option: str | None, configured: str | None) -> LogLevel:
    for value in (option, configured):
        if value is None:
            continue
        level = parse_log_level(value)
        if level is None:
            typer.echo(f"error: unknown log level: {value}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        return level
    return LogLevel.INFO


def build_context(*, config_dir: Path, log_level: str | None = None) -> CLIContext:
    try:
        root = config_dir.expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --config-dir: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    result = load_configuration(root)
    if isinstance(result, Err):
        error = result.error
        typer.echo(f"error: {error.pretty()}", err=True)
        raise typer.Exit(code=int(error.exit_code))

    config = result.value
    return CLIContext(
        config_dir=root,
        config=config,
        console=RichConsole(level=_resolve_level(log_level, config.log_level)),
    )
