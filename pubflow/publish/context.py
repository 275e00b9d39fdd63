"""Publish session and per-repository publish state.

``PublishSession`` lives for a whole run. ``RepositoryPublishState`` is
built by the orchestrator for one repository, handed explicitly to the
phase procedure and dropped when the repository is done.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from time import sleep

from pubflow.core.result import Err, Ok, Result
from pubflow.output.console import ConsoleProtocol
from pubflow.publish.changes import ChangeDetector
from pubflow.publish.config import Configuration
from pubflow.publish.errors import PublishError
from pubflow.publish.manifest import Manifest, save_manifest
from pubflow.publish.model import PhaseState, Repository
from pubflow.publish.phases import PhaseStrategy
from pubflow.publish.runner import CommandRunner, RunOption
from pubflow.publish.version import UNSET, Unset, Version


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PublishSession:
    config: Configuration
    strategy: PhaseStrategy
    console: ConsoleProtocol
    config_dir: Path
    dry_run: bool = False
    update_all: bool = False
    clock: Callable[[], datetime] = utc_now
    sleep_fn: Callable[[float], None] = sleep

    @property
    def publisher_root(self) -> Path:
        """Repository holding ``config/``."""
        return self.config_dir.parent

    @property
    def workspace_root(self) -> Path:
        """Directory whose children are the published repositories."""
        return self.publisher_root.parent

    def runner(self, cwd: Path) -> CommandRunner:
        return CommandRunner(cwd=cwd, console=self.console, dry_run=self.dry_run)


@dataclass
class RepositoryPublishState:
    session: PublishSession
    name: str
    repository: Repository
    repo_root: Path
    branch: str
    manifest: Manifest
    version: Version
    # Reference instant for change and dependency checks in this phase.
    phase_instant: datetime | None
    save_manifest_pending: bool = False
    any_dependencies_updated: bool = False
    runner: CommandRunner = field(init=False)

    def __post_init__(self) -> None:
        self.runner = self.session.runner(self.repo_root)

    @property
    def console(self) -> ConsoleProtocol:
        return self.session.console

    @property
    def phase_state(self) -> PhaseState:
        return self.session.config.ensure_phase_state(self.name, self.session.strategy.phase)

    @property
    def repo_slug(self) -> str:
        return f"{self.session.config.organization}/{self.name}"

    def update_phase_state(
        self,
        *,
        date_time: datetime | Unset = UNSET,
        version: str | None | Unset = UNSET,
        step: str | None | Unset = UNSET,
    ) -> PhaseState:
        """Merge into the active phase state.

        A new ``date_time`` also replaces the cached phase instant, with the
        same normalization the stored value gets.
        """
        updated = self.session.config.update_phase_state(
            self.name,
            self.session.strategy.phase,
            date_time=date_time,
            version=version,
            step=step,
        )
        if not isinstance(date_time, Unset):
            self.phase_instant = updated.date_time
        return updated

    def save_manifest(self) -> Result[None, PublishError]:
        result = save_manifest(
            self.manifest,
            self.repo_root,
            console=self.console,
            dry_run=self.session.dry_run,
        )
        if isinstance(result, Ok):
            self.save_manifest_pending = False
        return result

    def update_version(
        self,
        *,
        major: int | Unset = UNSET,
        minor: int | Unset = UNSET,
        patch: int | Unset = UNSET,
        pre_release: str | None | Unset = UNSET,
    ) -> Result[str, PublishError]:
        """Apply overrides to the package version and save the manifest."""
        self.version = self.version.apply(
            major=major, minor=minor, patch=patch, pre_release=pre_release
        )
        text = self.version.format()
        self.manifest.version = text
        saved = self.save_manifest()
        if isinstance(saved, Err):
            return saved
        return Ok(text)

    def any_changes(
        self, since: datetime | None, *, ignore_control_files: bool
    ) -> Result[bool, PublishError]:
        detector = ChangeDetector(
            repo_root=self.repo_root,
            console=self.console,
            exclude_paths=tuple(self.repository.exclude_paths),
            strict=self.session.strategy.strict,
        )
        return detector.any_changes(since, ignore_control_files=ignore_control_files)

    def commit_updated_version(self, *files: str) -> Result[None, PublishError]:
        return commit_modified(self.runner, f"Updated to version {self.manifest.version}.", *files)

    def install(self) -> Result[None, PublishError]:
        """``npm install`` to bring the lock file in line with the manifest."""
        result = self.runner.run(["npm", "install"], option=RunOption.PARAMETERIZE_ON_DRY_RUN)
        if isinstance(result, Err):
            return result
        return Ok(None)


# Statuses a targeted commit accepts: local additions and modifications only.
_COMMITTABLE = frozenset({"A ", " M", "AM", "M "})


def commit_modified(runner: CommandRunner, message: str, *files: str) -> Result[None, PublishError]:
    """Commit ``files`` (everything tracked when none are given).

    Named files that are unchanged are left out; a conflicted or deleted
    file is refused.
    """
    if not files:
        targets = ["--all"]
    else:
        status = runner.capture(["git", "status", "--porcelain", "--", *files])
        if isinstance(status, Err):
            return status
        targets = []
        for line in status.value:
            xy, path = line[:2], line[3:]
            if xy not in _COMMITTABLE:
                return Err(
                    PublishError(
                        kind="invalid_git_output",
                        message=f'unsupported status "{xy}" for {path}',
                    )
                )
            targets.append(path)
        if not targets:
            runner.console.debug(f"Nothing to commit for {', '.join(files)}")
            return Ok(None)

    result = runner.run(
        ["git", "commit", *targets, "--message", message],
        option=RunOption.PARAMETERIZE_ON_DRY_RUN,
    )
    if isinstance(result, Err):
        return result
    return Ok(None)


__all__ = [
    "PublishSession",
    "RepositoryPublishState",
    "commit_modified",
    "utc_now",
]
