"""GitHub operations through the ``gh`` CLI (``gh api``)."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from time import sleep

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import as_str_dict, get_int, get_list, get_str
from pubflow.platform.process import ProcessError
from pubflow.platform.process import run as run_process
from pubflow.publish.errors import PublishError
from pubflow.publish.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
)


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "http 429",
        "http 502",
        "http 503",
        "http 504",
    )
    if error.timed_out:
        return True
    return any(marker in text for marker in markers)


def run_gh_read(
    *,
    cwd: Path,
    cmd: list[str],
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, PublishError]:
    """Run an idempotent ``gh`` query, retrying transient network failures."""
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=cwd, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        hint = error.stderr.strip() or hint
        return Err(PublishError(kind="gh_failed", message=message, hint=hint))

    return Err(PublishError(kind="gh_failed", message=message, hint=hint))


def ensure_gh_available() -> Result[None, PublishError]:
    if shutil.which("gh") is None:
        return Err(
            PublishError(
                kind="gh_failed",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def gh_api_json(*, cwd: Path, endpoint: str) -> Result[object, PublishError]:
    result = run_gh_read(
        cwd=cwd,
        cmd=["gh", "api", endpoint],
        message=f"gh api failed: {endpoint}",
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            PublishError(
                kind="gh_failed",
                message=f"gh api returned invalid JSON: {e}",
                hint=endpoint,
            )
        )
    return Ok(obj)


@dataclass(frozen=True, slots=True)
class WorkflowRunInfo:
    id: int
    status: str
    conclusion: str | None

    @property
    def completed(self) -> bool:
        return self.status == "completed"


def list_workflow_runs(
    *, cwd: Path, repo: str, head_sha: str
) -> Result[list[WorkflowRunInfo], PublishError]:
    """Workflow runs triggered for commit ``head_sha``."""
    endpoint = f"repos/{repo}/actions/runs?head_sha={head_sha}"
    obj = gh_api_json(cwd=cwd, endpoint=endpoint)
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    raw = get_list(data, "workflow_runs") if data is not None else None
    if raw is None:
        return Err(
            PublishError(kind="gh_failed", message=f"unexpected workflow runs payload: {repo}")
        )

    runs: list[WorkflowRunInfo] = []
    for item in raw:
        d = as_str_dict(item)
        if d is None:
            continue
        run_id = get_int(d, "id")
        status = get_str(d, "status")
        if run_id is None or status is None:
            continue
        runs.append(WorkflowRunInfo(id=run_id, status=status, conclusion=get_str(d, "conclusion")))
    return Ok(runs)


def _gh_write(*, cwd: Path, cmd: list[str], message: str) -> Result[object, PublishError]:
    # Writes are not retried: a timed out POST may still have succeeded.
    result = run_process(cmd, cwd=cwd, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            PublishError(
                kind="gh_failed", message=message, hint=result.error.stderr.strip() or None
            )
        )
    try:
        obj: object = json.loads(result.value) if result.value.strip() else None
    except json.JSONDecodeError:
        obj = None
    return Ok(obj)


def create_release(
    *,
    cwd: Path,
    repo: str,
    tag: str,
    name: str,
    prerelease: bool,
) -> Result[None, PublishError]:
    result = _gh_write(
        cwd=cwd,
        cmd=[
            "gh",
            "api",
            "--method",
            "POST",
            f"repos/{repo}/releases",
            "-f",
            f"tag_name={tag}",
            "-f",
            f"name={name}",
            "-F",
            f"prerelease={'true' if prerelease else 'false'}",
        ],
        message=f"failed to create release {tag} in {repo}",
    )
    if isinstance(result, Err):
        return result
    return Ok(None)


def create_pull_request(
    *,
    cwd: Path,
    repo: str,
    title: str,
    head: str,
    base: str,
) -> Result[str | None, PublishError]:
    """Open a pull request; returns its URL when GitHub reports one."""
    result = _gh_write(
        cwd=cwd,
        cmd=[
            "gh",
            "api",
            "--method",
            "POST",
            f"repos/{repo}/pulls",
            "-f",
            f"title={title}",
            "-f",
            f"head={head}",
            "-f",
            f"base={base}",
        ],
        message=f"failed to create pull request {head} -> {base} in {repo}",
    )
    if isinstance(result, Err):
        return result

    data = as_str_dict(result.value)
    return Ok(get_str(data, "html_url") if data is not None else None)
