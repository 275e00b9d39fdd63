"""Publication of every configured repository for one phase.

Repositories are visited in configuration order. The publish pointer in the
local configuration records the phase and the repository in progress, so a
run that stopped on an error resumes with that repository; the
configuration is saved after every repository whether it succeeded or not.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable
from pathlib import Path

from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository as GitRepository
from pubflow.publish.alpha import publish_alpha
from pubflow.publish.config import LOCAL_CONFIG_FILE, SHARED_CONFIG_FILE, save_configuration
from pubflow.publish.context import PublishSession, RepositoryPublishState, commit_modified
from pubflow.publish.dependencies import resolve_dependencies
from pubflow.publish.errors import PublishError, git_error, internal_error
from pubflow.publish.gh import ensure_gh_available
from pubflow.publish.manifest import MANIFEST_FILE, load_manifest
from pubflow.publish.model import PublishPointer, Repository
from pubflow.publish.non_alpha import publish_non_alpha
from pubflow.publish.version import parse_branch_version, parse_version

Procedure = Callable[[RepositoryPublishState], Result[None, PublishError]]


def is_allowed_transition(current: tuple[int, int], target: tuple[int, int]) -> bool:
    """A version branch may only move a repository to the next minor version."""
    return target == (current[0], current[1] + 1)


def build_publish_state(
    session: PublishSession, name: str, repository: Repository, repo_root: Path
) -> Result[RepositoryPublishState, PublishError]:
    config = session.config
    strategy = session.strategy

    config.ensure_phase_state(name, strategy.phase)

    branch = GitRepository(repo_root).current_branch()
    if isinstance(branch, Err):
        return Err(git_error(branch.error))

    manifest = load_manifest(repo_root)
    if isinstance(manifest, Err):
        return manifest
    version = parse_version(manifest.value.version)
    if isinstance(version, Err):
        return version

    state = RepositoryPublishState(
        session=session,
        name=name,
        repository=repository,
        repo_root=repo_root,
        branch=branch.value,
        manifest=manifest.value,
        version=version.value,
        phase_instant=strategy.phase_instant(repository),
    )

    if not strategy.is_valid_branch(state.branch, state.version, repository):
        return Err(
            PublishError(
                kind="invalid_branch",
                message=(
                    f"branch {state.branch or '(detached)'} "
                    f"is not valid for {strategy.phase} phase"
                ),
                hint=f"check out v{state.version.working_version}",
            )
        )

    # Helper repositories always follow the latest version branch.
    version_branch = f"v{config.latest_version}" if repository.is_helper else state.branch
    target = parse_branch_version(version_branch)
    if target is not None and target != state.version.major_minor:
        current = state.version.major_minor
        if not is_allowed_transition(current, target):
            return Err(
                PublishError(
                    kind="invalid_version_transition",
                    message=(
                        f"invalid transition from {current[0]}.{current[1]} "
                        f"to {target[0]}.{target[1]}"
                    ),
                    hint=f"branch {version_branch}",
                )
            )
        bumped = state.update_version(major=target[0], minor=target[1], patch=0, pre_release=None)
        if isinstance(bumped, Err):
            return bumped
        committed = state.commit_updated_version(MANIFEST_FILE)
        if isinstance(committed, Err):
            return committed

    config.set_working_version(name, state.version.working_version)

    resolved = resolve_dependencies(state)
    if isinstance(resolved, Err):
        return resolved
    return Ok(state)


def _procedure(session: PublishSession) -> Procedure:
    return publish_alpha if session.strategy.phase == "alpha" else publish_non_alpha


def publish_repository(
    session: PublishSession, name: str, repository: Repository, repo_root: Path
) -> Result[None, PublishError]:
    with contextlib.chdir(repo_root):
        state = build_publish_state(session, name, repository, repo_root)
        if isinstance(state, Err):
            return state
        return _procedure(session)(state.value)


def _save(session: PublishSession) -> Result[None, PublishError]:
    return save_configuration(
        session.config,
        config_dir=session.config_dir,
        console=session.console,
        dry_run=session.dry_run,
    )


def _start_pointer(session: PublishSession) -> Result[PublishPointer, PublishError]:
    config = session.config
    phase = session.strategy.phase
    pointer = config.publish_pointer
    if pointer is None:
        pointer = PublishPointer(phase=phase)
        config.publish_pointer = pointer
    elif pointer.phase != phase:
        return Err(
            internal_error(
                f"attempting to publish {phase} phase despite incomplete {pointer.phase} phase"
            )
        )
    return Ok(pointer)


def finalize(session: PublishSession) -> None:
    """Phase finalization once every repository is published."""
    for name in session.config.clear_complete_markers(session.strategy.phase):
        session.console.debug(f"Cleared stale step marker of {name}")


def publish_all(session: PublishSession) -> Result[None, PublishError]:
    config = session.config
    console = session.console
    phase = session.strategy.phase

    started = _start_pointer(session)
    if isinstance(started, Err):
        return started
    resume_at = started.value.repository

    if phase == "alpha" and not config.alpha_registry:
        return Err(
            PublishError(
                kind="config_invalid",
                message="alphaRegistry is not set",
                hint=f"add it to {LOCAL_CONFIG_FILE}",
            )
        )
    if phase != "alpha" and not session.dry_run:
        available = ensure_gh_available()
        if isinstance(available, Err):
            return available

    for name, repository in config.repositories.items():
        if resume_at is not None:
            if name != resume_at:
                console.debug(f"Skipping {name}, already published")
                continue
            console.info(f"Resuming at repository {name}")
            resume_at = None

        repo_root = session.workspace_root / repository.directory_name
        if not repo_root.is_dir():
            # Private repositories may be absent for some operators.
            if repository.dependency_type == "external":
                return Err(
                    PublishError(
                        kind="repository_not_found",
                        message=f"repository {name} not found",
                        hint=str(repo_root),
                    )
                )
            console.debug(f"Repository {name} not present, skipping")
            continue

        console.header(f"Repository {name}...")
        config.publish_pointer = PublishPointer(phase=phase, repository=name)

        try:
            result = publish_repository(session, name, repository, repo_root)
        except BaseException:
            # Keep the step marker and the pointer so the next run resumes here.
            saved = _save(session)
            if isinstance(saved, Err):
                console.error(saved.error.pretty())
            raise
        if isinstance(result, Ok):
            config.publish_pointer = PublishPointer(phase=phase)

        saved = _save(session)
        if isinstance(result, Err):
            if isinstance(saved, Err):
                console.error(saved.error.pretty())
            return result
        if isinstance(saved, Err):
            return saved

    config.publish_pointer = None
    finalize(session)

    saved = _save(session)
    if isinstance(saved, Err):
        return saved

    if phase != "alpha":
        committed = commit_modified(
            session.runner(session.publisher_root),
            f"Published {phase} release.",
            f"{session.config_dir.name}/{SHARED_CONFIG_FILE}",
        )
        if isinstance(committed, Err):
            return committed

    console.success(f"Published {phase} release")
    return Ok(None)
