"""GitHub Actions workflows of a repository: trigger detection and waiting.

A push of a version branch or the publication of a release may start a
workflow; when one is configured the publish waits for its run on the
pushed commit and fails if the run does not succeed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from time import sleep
from typing import Final, cast

import yaml

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import StrDict, as_str_dict, get_str_list
from pubflow.output.console import ConsoleProtocol
from pubflow.publish.errors import PublishError
from pubflow.publish.gh import WorkflowRunInfo, list_workflow_runs
from pubflow.publish.timeouts import WORKFLOW_POLL_INTERVAL_SECONDS, WORKFLOW_START_MAX_POLLS

WORKFLOWS_DIR: Final = Path(".github") / "workflows"
VERSION_BRANCH_PATTERN: Final = "v*"
RELEASE_PUBLISHED: Final = "published"


@dataclass(frozen=True, slots=True)
class WorkflowTriggers:
    on_push: bool = False
    on_release: bool = False


def _on_table(document: Mapping[object, object]) -> StrDict | None:
    # YAML 1.1 reads a bare ``on`` key as the boolean True.
    raw = document.get("on", document.get(True))
    if isinstance(raw, str):
        return {raw: None}
    if isinstance(raw, list):
        return {item: None for item in raw if isinstance(item, str)}
    return as_str_dict(raw)


def _triggers_of(document: Mapping[object, object]) -> WorkflowTriggers:
    on = _on_table(document)
    if on is None:
        return WorkflowTriggers()

    on_push = False
    if "push" in on:
        push = as_str_dict(on["push"]) or {}
        branches = get_str_list(push, "branches")
        on_push = branches is None or VERSION_BRANCH_PATTERN in branches

    on_release = False
    if "release" in on:
        release = as_str_dict(on["release"]) or {}
        types = get_str_list(release, "types")
        on_release = types is None or RELEASE_PUBLISHED in types

    return WorkflowTriggers(on_push=on_push, on_release=on_release)


def detect_triggers(
    repo_root: Path, *, console: ConsoleProtocol
) -> Result[WorkflowTriggers, PublishError]:
    """Scan ``.github/workflows/*.yml`` for version-branch push and release triggers."""
    workflows_dir = repo_root / WORKFLOWS_DIR
    if not workflows_dir.is_dir():
        return Ok(WorkflowTriggers())

    console.debug("Checking workflows")
    on_push = False
    on_release = False
    for path in sorted(workflows_dir.glob("*.yml")):
        try:
            loaded: object = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as e:
            return Err(PublishError(kind="io_failed", message=f"cannot read {path}: {e}"))
        except yaml.YAMLError as e:
            return Err(
                PublishError(kind="config_invalid", message=f"invalid workflow {path.name}: {e}")
            )

        if not isinstance(loaded, dict):
            continue
        triggers = _triggers_of(cast(dict[object, object], loaded))
        if triggers.on_push and not on_push:
            console.debug("Repository has push workflow")
            on_push = True
        if triggers.on_release and not on_release:
            console.debug("Repository has release workflow")
            on_release = True

    return Ok(WorkflowTriggers(on_push=on_push, on_release=on_release))


RunLister = Callable[[str], Result[list[WorkflowRunInfo], PublishError]]


def wait_for_workflow(
    *,
    repo_root: Path,
    repo_slug: str,
    head_sha: str,
    console: ConsoleProtocol,
    list_runs: RunLister | None = None,
    sleep_fn: Callable[[float], None] = sleep,
    poll_interval: float = WORKFLOW_POLL_INTERVAL_SECONDS,
    max_start_polls: int = WORKFLOW_START_MAX_POLLS,
) -> Result[int, PublishError]:
    """Wait for the single workflow run on ``head_sha`` to complete successfully.

    The first in-progress run seen is tracked; another in-progress run for
    the same commit is an error, as is a completed run that did not succeed.
    Returns the tracked run id.
    """
    lister: RunLister = list_runs or (
        lambda sha: list_workflow_runs(cwd=repo_root, repo=repo_slug, head_sha=sha)
    )

    tracked: int | None = None
    polls = 0
    while True:
        sleep_fn(poll_interval)
        runs = lister(head_sha)
        if isinstance(runs, Err):
            return runs

        for run in runs.value:
            if not run.completed:
                if tracked is None:
                    tracked = run.id
                    console.info(f"Workflow run ID {tracked}")
                elif run.id != tracked:
                    return Err(
                        PublishError(
                            kind="workflow_failed",
                            message=f"parallel workflow runs for SHA {head_sha}",
                            hint=f"runs {tracked} and {run.id}",
                        )
                    )
            elif run.id == tracked:
                if run.conclusion != "success":
                    return Err(
                        PublishError(
                            kind="workflow_failed",
                            message=f"workflow {run.conclusion or 'failed'}",
                            hint=f"run {run.id} for SHA {head_sha}",
                        )
                    )
                console.success(f"Workflow run {run.id} succeeded")
                return Ok(run.id)

        polls += 1
        if tracked is None:
            if polls >= max_start_polls:
                return Err(
                    PublishError(
                        kind="workflow_not_started",
                        message=f"workflow run not started for SHA {head_sha}",
                        hint=f"no run observed after {polls} polls",
                    )
                )
        else:
            console.trace(f"Workflow run {tracked} in progress")
