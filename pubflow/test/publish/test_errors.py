from __future__ import annotations

from pubflow.core.errors import ErrorCode
from pubflow.git.repository import GitError
from pubflow.platform.process import ProcessError
from pubflow.publish.errors import PublishError, command_error, git_error, internal_error


def test_exit_codes_by_kind() -> None:
    assert PublishError(kind="config_invalid", message="x").exit_code is ErrorCode.USER_ERROR
    assert PublishError(kind="remote_drift", message="x").exit_code is ErrorCode.STATE_ERROR
    assert PublishError(kind="command_failed", message="x").exit_code is ErrorCode.COMMAND_ERROR
    assert PublishError(kind="workflow_failed", message="x").exit_code is ErrorCode.NETWORK_ERROR
    assert internal_error("x").exit_code is ErrorCode.INTERNAL_ERROR


def test_internal_error_is_flagged() -> None:
    assert internal_error("pointer lost").message == "*** internal error *** pointer lost"


def test_pretty_includes_hint() -> None:
    assert PublishError(kind="invalid_branch", message="bad", hint="use v1.5").pretty() == "bad (hint: use v1.5)"


def test_command_error_without_stderr_has_no_hint() -> None:
    error = command_error(ProcessError(command=("npm", "test"), returncode=1, stdout="", stderr=" \n"))
    assert error.hint is None


def test_git_error_signal() -> None:
    error = git_error(GitError(command="push", message="", returncode=-2, signal_name="SIGINT"))
    assert error.kind == "command_signaled"
    assert "SIGINT" in error.message
