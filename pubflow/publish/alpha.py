"""Alpha publication.

Alpha builds go to a private registry configured per operator. A changed
repository is switched to a ``-alpha`` version, installed, linted, built
and tested; dependency repositories are then published under a transient
``-alpha.<timestamp>`` version and earlier alpha builds are removed.
"""

from __future__ import annotations

import json
import re

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import as_obj_list
from pubflow.publish.context import RepositoryPublishState
from pubflow.publish.errors import PublishError
from pubflow.publish.runner import RunOption
from pubflow.publish.timeouts import NPM_VIEW_TIMEOUT_SECONDS
from pubflow.publish.version import alpha_build_identifier

_ALPHA_BUILD_RE = re.compile(r"^\d+\.\d+\.\d+-alpha\.\d+$")


def check_external_updates(state: RepositoryPublishState) -> Result[None, PublishError]:
    """Report (or with ``update_all`` apply) newer releases of third-party caret ranges."""
    config = state.session.config
    update_all = state.session.update_all

    for section, package, version_range in state.manifest.iter_dependencies():
        if config.dependency_repository_name(package) is not None:
            continue
        if not version_range.startswith("^"):
            continue

        latest = state.runner.capture(
            ["npm", "view", package, "version"], timeout=NPM_VIEW_TIMEOUT_SECONDS
        )
        if isinstance(latest, Err):
            return latest
        latest_version = latest.value[0].strip() if latest.value else ""
        if not latest_version or latest_version == version_range[1:]:
            continue

        action = "updating" if update_all else "pending update"
        state.console.info(
            f"Dependency {package}@{version_range} {action} to version {latest_version}."
        )
        if update_all:
            section[package] = f"^{latest_version}"
            state.save_manifest_pending = True

    return Ok(None)


def _prior_alpha_builds(
    state: RepositoryPublishState, keep: str
) -> Result[list[str], PublishError]:
    output = state.runner.capture(
        ["npm", "view", state.manifest.name, "versions", "--json"],
        timeout=NPM_VIEW_TIMEOUT_SECONDS,
    )
    if isinstance(output, Err):
        return output

    try:
        parsed: object = json.loads("\n".join(output.value) or "[]")
    except json.JSONDecodeError as e:
        return Err(
            PublishError(kind="command_failed", message=f"npm view returned invalid JSON: {e}")
        )
    # npm prints a bare string when the package has a single version.
    versions = [parsed] if isinstance(parsed, str) else (as_obj_list(parsed) or [])
    return Ok(
        [
            v
            for v in versions
            if isinstance(v, str) and _ALPHA_BUILD_RE.match(v) is not None and v != keep
        ]
    )


def _publish_build(state: RepositoryPublishState, version: str) -> Result[None, PublishError]:
    runner = state.runner
    published = runner.run(
        ["npm", "publish", "--tag", "alpha"], option=RunOption.PARAMETERIZE_ON_DRY_RUN
    )
    if isinstance(published, Err):
        return published

    prior = _prior_alpha_builds(state, keep=version)
    if isinstance(prior, Err):
        return prior
    for old in prior.value:
        removed = runner.run(
            ["npm", "unpublish", f"{state.manifest.name}@{old}"],
            option=RunOption.PARAMETERIZE_ON_DRY_RUN,
        )
        if isinstance(removed, Err):
            return removed
    return Ok(None)


def publish_build(state: RepositoryPublishState) -> Result[None, PublishError]:
    """Publish a timestamped alpha build, then restore the plain ``-alpha`` version."""
    stamp = alpha_build_identifier(state.session.clock().strftime("%Y%m%d%H%M"))
    version = state.update_version(pre_release=stamp)
    if isinstance(version, Err):
        return version
    state.update_phase_state(version=version.value)

    result = _publish_build(state, version.value)
    restored = state.update_version(pre_release="alpha")
    if isinstance(result, Err):
        return result
    if isinstance(restored, Err):
        return restored
    return Ok(None)


def publish_alpha(state: RepositoryPublishState) -> Result[None, PublishError]:
    session = state.session
    config = session.config
    runner = state.runner

    # External updates are only tracked on the line under active development.
    if state.repository.working_version == config.latest_version:
        checked = check_external_updates(state)
        if isinstance(checked, Err):
            return checked

    if state.save_manifest_pending:
        saved = state.save_manifest()
        if isinstance(saved, Err):
            return saved

    changes = state.any_changes(state.phase_instant, ignore_control_files=True)
    if isinstance(changes, Err):
        return changes
    if not changes.value and not state.any_dependencies_updated:
        return Ok(None)

    if state.version.pre_release != "alpha":
        registry = runner.run(
            [
                "npm",
                "config",
                "set",
                f"{config.at_organization}:registry={config.alpha_registry}",
                "--location",
                "project",
            ],
            option=RunOption.SKIP_ON_DRY_RUN,
        )
        if isinstance(registry, Err):
            return registry
        bumped = state.update_version(patch=state.version.patch + 1, pre_release="alpha")
        if isinstance(bumped, Err):
            return bumped

    installed = state.install()
    if isinstance(installed, Err):
        return installed

    for cmd in (
        ["npm", "run", "lint", "--if-present"],
        ["npm", "run", "build:alpha"],
        ["npm", "run", "test", "--if-present"],
    ):
        result = runner.run(cmd, option=RunOption.SKIP_ON_DRY_RUN)
        if isinstance(result, Err):
            return result

    if state.repository.is_dependency:
        published = publish_build(state)
        if isinstance(published, Err):
            return published

    state.update_phase_state(date_time=session.clock())
    return Ok(None)
