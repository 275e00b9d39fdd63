"""Dry-run aware execution of external commands.

Every side-effecting command of a publish goes through ``CommandRunner``
with one of three run options. Outside dry run all three simply run the
command; under dry run:

- ``ALWAYS`` still runs it (read-only queries),
- ``SKIP_ON_DRY_RUN`` prints what would run,
- ``PARAMETERIZE_ON_DRY_RUN`` runs it with ``--dry-run`` appended, for
  tools that can simulate themselves (``npm publish``, ``git push``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.output.console import ConsoleProtocol
from pubflow.platform.process import run as run_process
from pubflow.platform.process import run_silent
from pubflow.publish.errors import PublishError, command_error

__all__ = ["CommandRunner", "RunOption"]


class RunOption(Enum):
    ALWAYS = auto()
    SKIP_ON_DRY_RUN = auto()
    PARAMETERIZE_ON_DRY_RUN = auto()


@dataclass(frozen=True, slots=True)
class CommandRunner:
    cwd: Path
    console: ConsoleProtocol
    dry_run: bool = False

    def effective_option(self, option: RunOption) -> RunOption:
        return option if self.dry_run else RunOption.ALWAYS

    def run(
        self,
        cmd: list[str],
        *,
        option: RunOption = RunOption.ALWAYS,
        capture: bool = False,
        timeout: float | None = None,
    ) -> Result[list[str], PublishError]:
        """Run ``cmd`` in ``cwd``.

        Returns the output lines when ``capture`` is set (empty list
        otherwise, and for skipped commands).

        Raises:
            ValueError: capturing the output of a command that a dry run
                skips; the caller would act on output that does not exist.
        """
        effective = self.effective_option(option)
        if effective is RunOption.SKIP_ON_DRY_RUN and capture:
            raise ValueError(f"cannot capture output of skipped command: {' '.join(cmd)}")

        description = f"Running command {' '.join(cmd)}"
        if effective is RunOption.SKIP_ON_DRY_RUN:
            self.console.info(f"Dry run: {description}")
            return Ok([])

        args = [*cmd, "--dry-run"] if effective is RunOption.PARAMETERIZE_ON_DRY_RUN else cmd
        self.console.debug(description if args is cmd else f"{description} --dry-run")

        if capture:
            result = run_process(args, cwd=self.cwd, timeout=timeout)
            if isinstance(result, Err):
                return Err(command_error(result.error))
            lines = result.value.splitlines()
            self.console.trace("Output:\n" + "\n".join(lines))
            return Ok(lines)

        silent = run_silent(args, cwd=self.cwd)
        if isinstance(silent, Err):
            return Err(command_error(silent.error))
        return Ok([])

    def capture(
        self, cmd: list[str], *, timeout: float | None = None
    ) -> Result[list[str], PublishError]:
        """Run a read-only query and return its output lines."""
        return self.run(cmd, capture=True, timeout=timeout)
