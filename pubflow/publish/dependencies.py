"""Organization dependency resolution.

Repositories are processed in configuration order, so by the time a
repository is published every organization dependency it has was already
handled in this run. A dependency counts as updated when its phase instant
is later than the repository's own; updated manifest dependencies are
rewritten to the phase's version string for that dependency.
"""

from __future__ import annotations

from datetime import datetime

from pubflow.core.result import Err, Ok, Result
from pubflow.publish.config import Configuration
from pubflow.publish.context import RepositoryPublishState
from pubflow.publish.errors import PublishError, internal_error
from pubflow.publish.phases import PhaseStrategy


def is_dependency_updated(
    config: Configuration,
    strategy: PhaseStrategy,
    dependency_name: str,
    since: datetime | None,
    *,
    additional: bool = False,
) -> Result[bool, PublishError]:
    """True when ``dependency_name`` was published in this phase after ``since``."""
    label = "Additional dependency" if additional else "Dependency"
    dependency = config.repositories.get(dependency_name)
    if dependency is None or dependency.phase_states.get(strategy.phase) is None:
        return Err(
            internal_error(
                f"{label} {dependency_name} does not have state for {strategy.phase} phase"
            )
        )

    instant = strategy.phase_instant(dependency)
    if instant is None:
        return Err(
            internal_error(
                f"{label} {dependency_name} does not have phase date/time "
                f"for {strategy.phase} phase"
            )
        )
    return Ok(since is None or since < instant)


def resolve_dependencies(state: RepositoryPublishState) -> Result[None, PublishError]:
    """Rewrite updated organization dependencies and set the update flags."""
    session = state.session
    config = session.config
    strategy = session.strategy
    console = state.console

    for section, package, _range in state.manifest.iter_dependencies():
        dependency_name = config.dependency_repository_name(package)
        if dependency_name is None:
            continue
        dependency = config.repositories.get(dependency_name)
        if dependency is None:
            console.debug(f"Organization dependency {package} is not a configured repository")
            continue
        # A dependency on another major.minor line is developed independently.
        if dependency.working_version != state.repository.working_version:
            continue

        console.trace(f"Organization dependency {package} from package configuration")
        updated = is_dependency_updated(config, strategy, dependency_name, state.phase_instant)
        if isinstance(updated, Err):
            return updated
        if not updated.value:
            continue

        console.trace(f"Dependency repository {dependency_name} updated")
        version = strategy.dependency_version(config.organization, dependency)
        if isinstance(version, Err):
            return version
        section[package] = version.value
        state.any_dependencies_updated = True

    # Writing the manifest now would show up as a change; the procedure saves it.
    state.save_manifest_pending = state.any_dependencies_updated

    for dependency_name in state.repository.additional_dependencies:
        package = config.package_name(dependency_name)
        if state.manifest.has_dependency(package):
            console.warning(
                f"Additional dependency {dependency_name} is already a dependency of {state.name}"
            )
            continue

        console.trace(f"Organization dependency {package} from additional dependencies")
        updated = is_dependency_updated(
            config, strategy, dependency_name, state.phase_instant, additional=True
        )
        if isinstance(updated, Err):
            return updated
        if updated.value:
            console.trace(f"Dependency repository {dependency_name} updated")
            state.any_dependencies_updated = True

    return Ok(None)
