"""Shared fakes for publish tests: scripted processes and small builders."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pubflow.core.result import Err, Ok, Result
from pubflow.git import repository as git_repository
from pubflow.output.console import MockConsole
from pubflow.platform.process import ProcessError
from pubflow.publish import gh as gh_mod
from pubflow.publish import runner as runner_mod
from pubflow.publish.config import Configuration
from pubflow.publish.context import PublishSession, RepositoryPublishState
from pubflow.publish.manifest import Manifest
from pubflow.publish.model import DependencyType, Phase, PhaseState, Repository
from pubflow.publish.phases import strategy_for
from pubflow.publish.version import Version

FIXED_NOW = datetime(2026, 10, 19, 12, 30, 45, 123000, tzinfo=UTC)


def _empty_responses() -> dict[tuple[str, ...], Result[str, ProcessError]]:
    return {}


def _empty_calls() -> list[list[str]]:
    return []


@dataclass
class FakeProcesses:
    """Scripted ``run``/``run_silent`` replacement.

    Responses are keyed by command prefix (``git -C <path>`` is stripped
    first); the longest matching prefix wins and unscripted commands
    succeed with empty output.
    """

    responses: dict[tuple[str, ...], Result[str, ProcessError]] = field(
        default_factory=_empty_responses
    )
    calls: list[list[str]] = field(default_factory=_empty_calls)

    def respond(self, *prefix: str, output: str = "") -> None:
        self.responses[prefix] = Ok(output)

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "") -> None:
        self.responses[prefix] = Err(
            ProcessError(command=prefix, returncode=returncode, stdout="", stderr=stderr)
        )

    def install(self, monkeypatch: pytest.MonkeyPatch) -> FakeProcesses:
        monkeypatch.setattr(git_repository, "run_process", self.run)
        monkeypatch.setattr(runner_mod, "run_process", self.run)
        monkeypatch.setattr(runner_mod, "run_silent", self.run_silent)
        monkeypatch.setattr(gh_mod, "run_process", self.run)
        return self

    @property
    def commands(self) -> list[str]:
        return [" ".join(cmd) for cmd in self.calls]

    def run(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        del cwd, env, timeout
        return self._lookup(cmd)

    def run_silent(
        self, cmd: list[str], cwd: Path, env: dict[str, str] | None = None
    ) -> Result[None, ProcessError]:
        del cwd, env
        result = self._lookup(cmd)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def _lookup(self, cmd: list[str]) -> Result[str, ProcessError]:
        key = ["git", *cmd[3:]] if cmd[:2] == ["git", "-C"] else list(cmd)
        self.calls.append(key)
        best: tuple[str, ...] | None = None
        for prefix in self.responses:
            if tuple(key[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return Ok("")
        result = self.responses[best]
        if isinstance(result, Err):
            return Err(replace(result.error, command=tuple(cmd)))
        return result


def make_repository(
    name: str,
    dependency_type: DependencyType = "internal",
    *,
    working_version: str = "1.5",
    phase_states: dict[Phase, PhaseState] | None = None,
    additional_dependencies: list[str] | None = None,
) -> Repository:
    return Repository(
        name=name,
        dependency_type=dependency_type,
        working_version=working_version,
        phase_states=dict(phase_states or {}),
        additional_dependencies=list(additional_dependencies or []),
    )


def make_config(*repositories: Repository, alpha_registry: str = "https://npm.acme.test") -> Configuration:
    return Configuration(
        organization="acme",
        versions=["1.4", "1.5"],
        repositories={r.name: r for r in repositories},
        alpha_registry=alpha_registry,
    )


def make_workspace(tmp_path: Path, *names: str) -> Path:
    """Create ``publisher/config`` and one directory per repository; return config dir."""
    config_dir = tmp_path / "publisher" / "config"
    config_dir.mkdir(parents=True)
    for name in names:
        (tmp_path / name).mkdir()
    return config_dir


def write_manifest(repo_root: Path, data: dict[str, object]) -> None:
    (repo_root / "package.json").write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def make_session(
    config: Configuration,
    phase: Phase,
    config_dir: Path,
    *,
    dry_run: bool = False,
    update_all: bool = False,
) -> tuple[PublishSession, MockConsole]:
    console = MockConsole()
    sleeps: list[float] = []
    session = PublishSession(
        config=config,
        strategy=strategy_for(phase),
        console=console,
        config_dir=config_dir,
        dry_run=dry_run,
        update_all=update_all,
        clock=lambda: FIXED_NOW,
        sleep_fn=sleeps.append,
    )
    return session, console


def make_state(
    session: PublishSession,
    name: str,
    repo_root: Path,
    *,
    version: str,
    branch: str = "v1.5",
    manifest: dict[str, object] | None = None,
) -> RepositoryPublishState:
    major, minor, rest = version.split(".", 2)
    patch, _, pre_release = rest.partition("-")
    data: dict[str, object] = {"name": f"@acme/{name}", "version": version, **(manifest or {})}
    repository = session.config.repositories[name]
    return RepositoryPublishState(
        session=session,
        name=name,
        repository=repository,
        repo_root=repo_root,
        branch=branch,
        manifest=Manifest(data=data),
        version=Version(int(major), int(minor), int(patch), pre_release or None),
        phase_instant=session.strategy.phase_instant(repository),
    )
