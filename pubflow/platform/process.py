"""Subprocess execution with Result-based error handling.

Two flavours:
- ``run`` captures stdout (git queries, ``npm view``, ``gh api``);
- ``run_silent`` lets the child inherit the terminal (builds, tests,
  ``npm publish``) so long-running output streams to the operator.

Usage:
    result = run(["git", "branch", "--show-current"], cwd=repo_root)
    match result:
        case Ok(stdout):
            branch = stdout.strip()
        case Err(error):
            console.error(str(error))
"""

from __future__ import annotations

import signal as signal_mod
import subprocess
from dataclasses import dataclass
from pathlib import Path

from pubflow.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_silent"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code; negative when the process was killed by a
            signal (POSIX convention), -1 when it could not be started or
            timed out.
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
        started: False when the executable could not be launched.
        timed_out: True when the timeout expired before the process exited.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    started: bool = True
    timed_out: bool = False

    @property
    def signal(self) -> int | None:
        """Signal number that terminated the process, if any."""
        if not self.started or self.timed_out or self.returncode >= 0:
            return None
        return -self.returncode

    @property
    def signal_name(self) -> str | None:
        sig = self.signal
        if sig is None:
            return None
        try:
            return signal_mod.Signals(sig).name
        except ValueError:
            return str(sig)

    def __str__(self) -> str:
        """Format error for display."""
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        if not self.started:
            return f"{cmd_str} could not be started: {self.stderr}"
        if self.signal is not None:
            return f"{cmd_str} terminated by signal {self.signal_name}"
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout or an error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Environment variables (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout="",
                stderr=str(e),
                started=False,
            )
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Execute a command with stdout/stderr inherited from this process.

    Returns:
        Ok(None) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            check=False,
        )
    except OSError as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout="",
                stderr=str(e),
                started=False,
            )
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout="",
                stderr="",
            )
        )

    return Ok(None)
