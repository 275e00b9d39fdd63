"""Error types for the publish bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pubflow.core.errors import ErrorCode
from pubflow.git.repository import GitError
from pubflow.platform.process import ProcessError

PublishErrorKind = Literal[
    # Configuration / internal consistency
    "internal",
    "config_invalid",
    "io_failed",
    # Preconditions
    "invalid_version",
    "invalid_branch",
    "invalid_version_transition",
    "invalid_pre_release",
    "remote_drift",
    "uncommitted_changes",
    "changed_since_publish",
    "repository_not_found",
    # External commands
    "command_failed",
    "command_signaled",
    "invalid_git_output",
    # External services
    "workflow_not_started",
    "workflow_failed",
    "gh_failed",
]

_EXIT_CODES: dict[str, ErrorCode] = {
    "internal": ErrorCode.INTERNAL_ERROR,
    "config_invalid": ErrorCode.USER_ERROR,
    "io_failed": ErrorCode.USER_ERROR,
    "command_failed": ErrorCode.COMMAND_ERROR,
    "command_signaled": ErrorCode.COMMAND_ERROR,
    "invalid_git_output": ErrorCode.COMMAND_ERROR,
    "workflow_not_started": ErrorCode.NETWORK_ERROR,
    "workflow_failed": ErrorCode.NETWORK_ERROR,
    "gh_failed": ErrorCode.NETWORK_ERROR,
}


@dataclass(frozen=True, slots=True)
class PublishError:
    """Canonical publish error payload.

    ``kind`` is stable and drives the exit code; ``message`` is for humans;
    ``hint`` usually carries stderr of the failing command or the fix.
    """

    kind: PublishErrorKind
    message: str
    hint: str | None = None

    @property
    def exit_code(self) -> ErrorCode:
        return _EXIT_CODES.get(self.kind, ErrorCode.STATE_ERROR)

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def internal_error(message: str) -> PublishError:
    """Persisted state contradicts itself; never retried."""
    return PublishError(kind="internal", message=f"*** internal error *** {message}")


def command_error(error: ProcessError) -> PublishError:
    """Translate a failed process into a publish error."""
    command = " ".join(error.command)
    if error.signal is not None:
        return PublishError(
            kind="command_signaled",
            message=f"terminated by signal {error.signal_name}: {command}",
        )
    return PublishError(
        kind="command_failed",
        message=f"failed with status {error.returncode}: {command}",
        hint=error.stderr.strip() or None,
    )


def git_error(error: GitError) -> PublishError:
    if error.signal_name is not None:
        return PublishError(
            kind="command_signaled",
            message=f"git {error.command} terminated by signal {error.signal_name}",
        )
    return PublishError(
        kind="command_failed",
        message=f"git {error.command} failed with status {error.returncode}",
        hint=error.message,
    )
