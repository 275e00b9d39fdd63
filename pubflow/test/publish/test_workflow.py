"""Tests for publish/workflow.py."""

from __future__ import annotations

from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.output.console import MockConsole
from pubflow.publish.errors import PublishError
from pubflow.publish.gh import WorkflowRunInfo
from pubflow.publish.workflow import WorkflowTriggers, detect_triggers, wait_for_workflow


def _workflow(repo_root: Path, name: str, content: str) -> None:
    path = repo_root / ".github" / "workflows" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TestDetectTriggers:
    def test_no_workflows(self, tmp_path: Path) -> None:
        assert detect_triggers(tmp_path, console=MockConsole()) == Ok(WorkflowTriggers())

    def test_push_on_version_branches(self, tmp_path: Path) -> None:
        _workflow(tmp_path, "ci.yml", "on:\n  push:\n    branches:\n      - 'v*'\njobs: {}\n")
        assert detect_triggers(tmp_path, console=MockConsole()) == Ok(WorkflowTriggers(on_push=True))

    def test_push_on_other_branches_only(self, tmp_path: Path) -> None:
        _workflow(tmp_path, "ci.yml", "on:\n  push:\n    branches: [main]\n")
        assert detect_triggers(tmp_path, console=MockConsole()) == Ok(WorkflowTriggers())

    def test_release_published(self, tmp_path: Path) -> None:
        _workflow(tmp_path, "release.yml", "on:\n  release:\n    types: [published]\n")
        assert detect_triggers(tmp_path, console=MockConsole()) == Ok(
            WorkflowTriggers(on_release=True)
        )

    def test_short_forms(self, tmp_path: Path) -> None:
        _workflow(tmp_path, "a.yml", "on: push\n")
        _workflow(tmp_path, "b.yml", "on: [pull_request, release]\n")
        assert detect_triggers(tmp_path, console=MockConsole()) == Ok(
            WorkflowTriggers(on_push=True, on_release=True)
        )

    def test_yaml_extension_only(self, tmp_path: Path) -> None:
        _workflow(tmp_path, "ci.yaml", "on: push\n")
        assert detect_triggers(tmp_path, console=MockConsole()) == Ok(WorkflowTriggers())

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        _workflow(tmp_path, "ci.yml", "on: [push\n")
        result = detect_triggers(tmp_path, console=MockConsole())
        assert isinstance(result, Err)
        assert result.error.kind == "config_invalid"


class _ScriptedRuns:
    def __init__(self, *polls: list[WorkflowRunInfo]) -> None:
        self.polls = list(polls)
        self.seen: list[str] = []

    def __call__(self, sha: str) -> Result[list[WorkflowRunInfo], PublishError]:
        self.seen.append(sha)
        if len(self.polls) > 1:
            return Ok(self.polls.pop(0))
        return Ok(self.polls[0])


def _wait(tmp_path: Path, runs: _ScriptedRuns, sleeps: list[float]) -> Result[int, PublishError]:
    return wait_for_workflow(
        repo_root=tmp_path,
        repo_slug="acme/utility",
        head_sha="abc123",
        console=MockConsole(),
        list_runs=runs,
        sleep_fn=sleeps.append,
        poll_interval=2,
        max_start_polls=3,
    )


class TestWaitForWorkflow:
    def test_tracks_run_until_success(self, tmp_path: Path) -> None:
        runs = _ScriptedRuns(
            [],
            [WorkflowRunInfo(id=7, status="in_progress", conclusion=None)],
            [WorkflowRunInfo(id=7, status="completed", conclusion="success")],
        )
        sleeps: list[float] = []
        assert _wait(tmp_path, runs, sleeps) == Ok(7)
        assert sleeps == [2, 2, 2]
        assert runs.seen == ["abc123"] * 3

    def test_failed_conclusion(self, tmp_path: Path) -> None:
        runs = _ScriptedRuns(
            [WorkflowRunInfo(id=7, status="queued", conclusion=None)],
            [WorkflowRunInfo(id=7, status="completed", conclusion="failure")],
        )
        result = _wait(tmp_path, runs, [])
        assert isinstance(result, Err)
        assert result.error.kind == "workflow_failed"

    def test_parallel_runs(self, tmp_path: Path) -> None:
        runs = _ScriptedRuns(
            [WorkflowRunInfo(id=7, status="in_progress", conclusion=None)],
            [
                WorkflowRunInfo(id=7, status="in_progress", conclusion=None),
                WorkflowRunInfo(id=8, status="in_progress", conclusion=None),
            ],
        )
        result = _wait(tmp_path, runs, [])
        assert isinstance(result, Err)
        assert "parallel" in result.error.message

    def test_never_started(self, tmp_path: Path) -> None:
        sleeps: list[float] = []
        result = _wait(tmp_path, _ScriptedRuns([]), sleeps)
        assert isinstance(result, Err)
        assert result.error.kind == "workflow_not_started"
        assert len(sleeps) == 3

    def test_completed_runs_from_earlier_pushes_are_ignored(self, tmp_path: Path) -> None:
        runs = _ScriptedRuns(
            [WorkflowRunInfo(id=5, status="completed", conclusion="failure")],
            [
                WorkflowRunInfo(id=5, status="completed", conclusion="failure"),
                WorkflowRunInfo(id=6, status="completed", conclusion="success"),
            ],
        )
        result = _wait(tmp_path, runs, [])
        assert isinstance(result, Err)
        assert result.error.kind == "workflow_not_started"
