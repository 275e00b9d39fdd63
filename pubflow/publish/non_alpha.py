"""Beta and production publication.

A repository enters the phase carrying the previous phase's pre-release
identifier. Its version is switched to this phase's identifier and then
pushed through the resumable steps: install, build, commit, tag, push,
release, pull request (production) and registry wait, with workflow waits
where the repository declares them.
"""

from __future__ import annotations

from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository as GitRepository
from pubflow.publish.context import RepositoryPublishState, commit_modified
from pubflow.publish.errors import PublishError, git_error
from pubflow.publish.gh import create_pull_request, create_release
from pubflow.publish.model import Step
from pubflow.publish.runner import RunOption
from pubflow.publish.steps import StepAction, StepRunner
from pubflow.publish.timeouts import NPM_REINDEX_WAIT_SECONDS
from pubflow.publish.workflow import WorkflowTriggers, detect_triggers, wait_for_workflow


def _enter_phase(state: RepositoryPublishState) -> Result[bool, PublishError]:
    """Validate the pre-release identifier; Ok(False) when already published."""
    strategy = state.session.strategy
    repository = state.repository
    previous = strategy.previous
    assert previous is not None
    pre_release = state.version.pre_release

    if pre_release == strategy.previous_pre_release:
        previous_state = repository.phase_states.get(previous)
        since = previous_state.date_time if previous_state is not None else None
        changes = state.any_changes(since, ignore_control_files=False)
        if isinstance(changes, Err):
            return changes
        if changes.value:
            return Err(
                PublishError(
                    kind="changed_since_publish",
                    message=f"repository has changed since last {previous} published",
                    hint=f"publish {previous} again first",
                )
            )

        version = state.update_version(pre_release=strategy.pre_release)
        if isinstance(version, Err):
            return version
        if repository.is_dependency:
            state.update_phase_state(version=version.value)

        if previous == "alpha":
            registry = state.runner.run(
                [
                    "npm",
                    "config",
                    "delete",
                    f"{state.session.config.at_organization}:registry",
                    "--location",
                    "project",
                ],
                option=RunOption.SKIP_ON_DRY_RUN,
            )
            if isinstance(registry, Err):
                return registry
        return Ok(True)

    if pre_release == strategy.pre_release:
        # Changes made after the publication started are not ours to judge.
        if state.phase_state.step is not None:
            return Ok(True)
        changes = state.any_changes(state.phase_instant, ignore_control_files=False)
        if isinstance(changes, Err):
            return changes
        if changes.value:
            return Err(
                PublishError(
                    kind="changed_since_publish",
                    message=f"repository has changed since last {strategy.phase} published",
                    hint=f"publish {previous} again first",
                )
            )
        state.console.info(f"{state.name} already published for {strategy.phase}")
        return Ok(False)

    expected = " or ".join(repr(p) for p in (strategy.previous_pre_release, strategy.pre_release))
    return Err(
        PublishError(
            kind="invalid_pre_release",
            message=f"pre-release identifier must be either {expected}",
            hint=f"version is {state.version}",
        )
    )


def _validate_workflow(state: RepositoryPublishState) -> Result[object, PublishError]:
    if state.session.dry_run:
        state.console.info("Dry run: Validate workflow")
        return Ok(None)

    sha = GitRepository(state.repo_root).rev_parse(state.branch)
    if isinstance(sha, Err):
        return Err(git_error(sha.error))
    return wait_for_workflow(
        repo_root=state.repo_root,
        repo_slug=state.repo_slug,
        head_sha=sha.value,
        console=state.console,
        sleep_fn=state.session.sleep_fn,
    )


def _create_release(state: RepositoryPublishState, tag: str) -> Result[object, PublishError]:
    prerelease = state.session.strategy.phase != "production"
    if state.session.dry_run:
        state.console.info(f"Dry run: Create release {tag} (prerelease: {prerelease})")
        return Ok(None)
    return create_release(
        cwd=state.repo_root,
        repo=state.repo_slug,
        tag=tag,
        name=f"Release {tag}",
        prerelease=prerelease,
    )


def _create_pull_request(state: RepositoryPublishState) -> Result[object, PublishError]:
    base = state.session.config.next_version_branch(state.branch.removeprefix("v"))
    title = f"Production version {state.manifest.version}"
    if state.session.dry_run:
        state.console.info(f"Dry run: Create pull request {state.branch} -> {base}")
        return Ok(None)
    url = create_pull_request(
        cwd=state.repo_root, repo=state.repo_slug, title=title, head=state.branch, base=base
    )
    if isinstance(url, Ok) and url.value:
        state.console.success(f"Pull request: {url.value}")
    return url


def _npm_wait(state: RepositoryPublishState) -> Result[object, PublishError]:
    if state.session.dry_run:
        state.console.info("Dry run: Wait for npm registry")
        return Ok(None)
    state.console.debug(f"Waiting {NPM_REINDEX_WAIT_SECONDS:.0f}s for the npm registry")
    state.session.sleep_fn(NPM_REINDEX_WAIT_SECONDS)
    return Ok(None)


def step_actions(
    state: RepositoryPublishState, triggers: WorkflowTriggers
) -> list[tuple[Step, StepAction]]:
    """Steps of this publication paired with their actions, in order."""
    strategy = state.session.strategy
    runner = state.runner
    tag = f"v{state.manifest.version}"
    helper = state.repository.is_helper
    push_targets = [state.branch] if helper else [state.branch, tag]

    actions: dict[Step, StepAction] = {
        "install": state.install,
        "build": lambda: runner.run(
            ["npm", "run", f"build:{strategy.phase}", "--if-present"],
            option=RunOption.SKIP_ON_DRY_RUN,
        ),
        "commit": lambda: commit_modified(runner, f"Updated to version {state.manifest.version}."),
        "tag": lambda: runner.run(["git", "tag", tag], option=RunOption.SKIP_ON_DRY_RUN),
        "push": lambda: runner.run(
            ["git", "push", "--atomic", "origin", *push_targets],
            option=RunOption.PARAMETERIZE_ON_DRY_RUN,
        ),
        "workflow (push)": lambda: _validate_workflow(state),
        "release": lambda: _create_release(state, tag),
        "workflow (release)": lambda: _validate_workflow(state),
        "pull request": lambda: _create_pull_request(state),
        "npm wait": lambda: _npm_wait(state),
    }
    return [(step, actions[step]) for step in strategy.steps(state.repository, triggers)]


def publish_non_alpha(state: RepositoryPublishState) -> Result[None, PublishError]:
    entered = _enter_phase(state)
    if isinstance(entered, Err):
        return entered
    if not entered.value:
        return Ok(None)

    marker = state.phase_state.step
    if marker is not None:
        state.console.warning(f"Repository failed at step \"{marker}\" on prior run, resuming")

    triggers = detect_triggers(state.repo_root, console=state.console)
    if isinstance(triggers, Err):
        return triggers

    steps = StepRunner(state)
    for step, action in step_actions(state, triggers.value):
        result = steps.run(step, action)
        if isinstance(result, Err):
            return result

    state.update_phase_state(date_time=state.session.clock())
    return Ok(None)
