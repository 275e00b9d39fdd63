from __future__ import annotations

from pathlib import Path

import typer

from pubflow.cli.commands._helpers import exit_on_error
from pubflow.cli.context import build_context
from pubflow.output.console import Style
from pubflow.publish.config import CONFIG_DIR_NAME
from pubflow.publish.context import PublishSession
from pubflow.publish.model import Phase
from pubflow.publish.orchestrator import publish_all
from pubflow.publish.phases import strategy_for

_CONFIG_DIR_OPTION = typer.Option(
    Path(CONFIG_DIR_NAME),
    "--config-dir",
    help="Directory holding publisher.json and publisher.local.json",
)
_DRY_RUN_OPTION = typer.Option(
    False, "--dry-run", help="Print side effects instead of performing them"
)
_LOG_LEVEL_OPTION = typer.Option(
    None, "--log-level", help="trace, debug, info, warn or error (overrides logLevel)"
)


def _run(
    phase: Phase,
    *,
    config_dir: Path,
    dry_run: bool,
    log_level: str | None,
    update_all: bool = False,
) -> None:
    ctx = build_context(config_dir=config_dir, log_level=log_level)
    if dry_run:
        ctx.console.print("dry run: no changes will be pushed or published", Style.DIM)

    session = PublishSession(
        config=ctx.config,
        strategy=strategy_for(phase),
        console=ctx.console,
        config_dir=ctx.config_dir,
        dry_run=dry_run,
        update_all=update_all,
    )
    exit_on_error(publish_all(session), ctx)


def alpha(
    update_all: bool = typer.Option(
        False, "--update-all", help="Update third-party dependencies to their latest release"
    ),
    dry_run: bool = _DRY_RUN_OPTION,
    config_dir: Path = _CONFIG_DIR_OPTION,
    log_level: str | None = _LOG_LEVEL_OPTION,
) -> None:
    """Publish changed repositories to the alpha registry."""
    _run(
        "alpha",
        config_dir=config_dir,
        dry_run=dry_run,
        log_level=log_level,
        update_all=update_all,
    )


def beta(
    dry_run: bool = _DRY_RUN_OPTION,
    config_dir: Path = _CONFIG_DIR_OPTION,
    log_level: str | None = _LOG_LEVEL_OPTION,
) -> None:
    """Promote alpha versions to beta: tag, push, release."""
    _run("beta", config_dir=config_dir, dry_run=dry_run, log_level=log_level)


def production(
    dry_run: bool = _DRY_RUN_OPTION,
    config_dir: Path = _CONFIG_DIR_OPTION,
    log_level: str | None = _LOG_LEVEL_OPTION,
) -> None:
    """Promote beta versions to production and open pull requests forward."""
    _run("production", config_dir=config_dir, dry_run=dry_run, log_level=log_level)
