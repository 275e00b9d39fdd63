"""Read-only git queries for a single repository.

Commands that change the repository (commit, tag, push) are issued through
the dry-run aware ``CommandRunner``; this module only asks questions.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.current_branch():
        case Ok(branch):
            print(f"Branch: {branch}")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.platform.process import ProcessError
from pubflow.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = [
    "GitError",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
        signal_name: Signal that terminated git, if any
    """

    command: str
    message: str
    returncode: int = 1
    signal_name: str | None = None


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single ``git status --porcelain`` entry.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "R ")
        path: File path (the original path for a rename)
        new_path: Destination of a rename, None otherwise
    """

    xy: str
    path: str
    new_path: str | None = None


class Repository:
    """Git repository rooted at ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def current_branch(self) -> Result[str, GitError]:
        """Current branch name; empty when HEAD is detached."""
        result = self._query(["branch", "--show-current"])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def fetch_dry_run(self) -> Result[str, GitError]:
        """What a fetch would bring in; empty when the remote has nothing new."""
        result = self._query(["fetch", "--porcelain", "--dry-run"])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def log_name_status(self, since: datetime) -> Result[list[str], GitError]:
        """Files touched by commits since ``since``, oldest commit first.

        Lines alternate between ``<sha> <subject>`` headers and
        ``<status>\\t<path>[\\t<new path>]`` entries.
        """
        result = self._query(
            [
                "log",
                "--since",
                since.isoformat(),
                "--name-status",
                "--reverse",
                "--pretty=oneline",
            ]
        )
        if isinstance(result, Err):
            return result
        return Ok([line for line in result.value.splitlines() if line])

    def status(self, *paths: str) -> Result[list[StatusEntry], GitError]:
        """Uncommitted entries, optionally restricted to ``paths``."""
        args = ["status", "--porcelain"]
        if paths:
            args.extend(["--", *paths])
        result = self._query(args)
        if isinstance(result, Err):
            return result
        return Ok([self._parse_entry(line) for line in result.value.splitlines() if line])

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        result = self._query(["rev-parse", ref])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def _query(self, args: list[str]) -> Result[str, GitError]:
        result = self._run(args)
        if isinstance(result, Err):
            return Err(self._error(args[0], result.error))
        return result

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _error(self, command: str, error: ProcessError) -> GitError:
        return GitError(
            command=command,
            message=error.stderr.strip() or f"git {command} failed",
            returncode=error.returncode,
            signal_name=error.signal_name,
        )

    def _parse_entry(self, line: str) -> StatusEntry:
        """Parse ``XY path`` or ``XY from -> to``."""
        xy = line[:2]
        detail = line[3:]
        if " -> " in detail:
            path, new_path = detail.split(" -> ", 1)
            return StatusEntry(xy=xy, path=path, new_path=new_path)
        return StatusEntry(xy=xy, path=detail)
