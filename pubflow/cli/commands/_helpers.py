"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import typer

from pubflow.core.result import Err, Result
from pubflow.output.console import Style
from pubflow.publish.errors import PublishError

if TYPE_CHECKING:
    from pubflow.cli.context import CLIContext

T = TypeVar("T")


def exit_on_error(result: Result[T, PublishError], ctx: CLIContext) -> None:
    """Exit with the error's code if result is Err, otherwise return.

    Persisted state is left as is; the next run resumes from it.
    """
    if isinstance(result, Err):
        error = result.error
        ctx.console.error(error.message)
        if error.hint:
            ctx.console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(error.exit_code))
