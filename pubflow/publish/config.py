"""Publisher configuration: shared and local JSON documents.

The shared document (``config/publisher.json``) is committed with the
publisher and holds the organization, the version branches and the beta and
production state of every repository. The local document
(``config/publisher.local.json``) belongs to one operator: log level, alpha
registry, the in-progress publish pointer, working versions and alpha state.

Both are merged into a single ``Configuration`` on load and split again on
save.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Final, cast

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import (
    StrDict,
    as_str_dict,
    get_str,
    get_str_list,
    get_table,
)
from pubflow.output.console import ConsoleProtocol
from pubflow.platform.files import atomic_write_text, dump_json
from pubflow.publish.errors import PublishError
from pubflow.publish.model import (
    COMPLETE_STEP,
    DEPENDENCY_TYPES,
    LOCAL_PHASES,
    PHASES,
    SHARED_PHASES,
    DependencyType,
    Phase,
    PhaseState,
    PublishPointer,
    Repository,
)
from pubflow.publish.version import UNSET, Unset

CONFIG_DIR_NAME: Final = "config"
SHARED_CONFIG_FILE: Final = "publisher.json"
LOCAL_CONFIG_FILE: Final = "publisher.local.json"


def normalize_date_time(value: datetime) -> datetime:
    """Drop sub-second precision and round up to the next second.

    Git reports commit times with one-second resolution; recording the next
    whole second keeps "changed after publish" comparisons unambiguous.
    """
    return value.replace(microsecond=0) + timedelta(seconds=1)


def format_date_time(value: datetime) -> str:
    text = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_date_time(text: str) -> datetime | None:
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(slots=True)
class Configuration:
    """Mutable aggregate persisted as a whole after every repository."""

    organization: str
    versions: list[str]
    repositories: dict[str, Repository]
    alpha_registry: str = ""
    log_level: str | None = None
    publish_pointer: PublishPointer | None = None

    @property
    def latest_version(self) -> str:
        return self.versions[-1]

    @property
    def at_organization(self) -> str:
        return f"@{self.organization}"

    def package_name(self, repository_name: str) -> str:
        return f"{self.at_organization}/{repository_name}"

    def dependency_repository_name(self, package_name: str) -> str | None:
        """Repository name for an organization package, None for anything else."""
        parts = package_name.split("/")
        if len(parts) == 2 and parts[0] == self.at_organization:
            return parts[1]
        return None

    def ensure_phase_state(self, name: str, phase: Phase) -> PhaseState:
        """Allocate an empty phase state if the repository has none yet."""
        repository = self.repositories[name]
        state = repository.phase_states.get(phase)
        if state is None:
            state = PhaseState()
            repository.phase_states[phase] = state
        return state

    def update_phase_state(
        self,
        name: str,
        phase: Phase,
        *,
        date_time: datetime | Unset = UNSET,
        version: str | None | Unset = UNSET,
        step: str | None | Unset = UNSET,
    ) -> PhaseState:
        """Merge the provided fields over the repository's phase state.

        ``date_time`` is stored normalized (see ``normalize_date_time``).
        """
        current = self.ensure_phase_state(name, phase)
        updated = PhaseState(
            date_time=current.date_time
            if isinstance(date_time, Unset)
            else normalize_date_time(date_time),
            version=current.version if isinstance(version, Unset) else version,
            step=current.step if isinstance(step, Unset) else step,
        )
        self.repositories[name].phase_states[phase] = updated
        return updated

    def set_working_version(self, name: str, working_version: str) -> None:
        self.repositories[name].working_version = working_version

    def next_version_branch(self, version: str) -> str:
        """Branch that follows ``version`` in the configured list, or ``main``."""
        try:
            index = self.versions.index(version)
        except ValueError:
            return "main"
        if index == len(self.versions) - 1:
            return "main"
        return f"v{self.versions[index + 1]}"

    def clear_complete_markers(self, phase: Phase) -> list[str]:
        """Drop leftover ``complete`` step markers; return the repositories touched."""
        cleared: list[str] = []
        for name, repository in self.repositories.items():
            state = repository.phase_states.get(phase)
            if state is not None and state.step == COMPLETE_STEP:
                self.update_phase_state(name, phase, step=None)
                cleared.append(name)
        return cleared


def config_paths(config_dir: Path) -> tuple[Path, Path]:
    return (config_dir / SHARED_CONFIG_FILE, config_dir / LOCAL_CONFIG_FILE)


# -----------------------------------------------------------------------------
# Load
# -----------------------------------------------------------------------------


def _invalid(message: str, path: Path) -> PublishError:
    return PublishError(kind="config_invalid", message=message, hint=str(path))


def _read_json(path: Path, *, required: bool) -> Result[StrDict, PublishError]:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if not required:
            return Ok({})
        return Err(_invalid(f"configuration file not found: {path.name}", path))
    except OSError as e:
        return Err(PublishError(kind="io_failed", message=f"cannot read {path}: {e}"))

    try:
        data_obj: object = json.loads(content)
    except json.JSONDecodeError as e:
        return Err(_invalid(f"invalid JSON in {path.name}: {e}", path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(_invalid(f"{path.name} must contain a JSON object", path))
    return Ok(data)


def _parse_phase_states(
    table: Mapping[str, object] | None,
    phases: tuple[Phase, ...],
    path: Path,
) -> Result[dict[Phase, PhaseState], PublishError]:
    states: dict[Phase, PhaseState] = {}
    if table is None:
        return Ok(states)

    for phase in phases:
        raw = get_table(table, phase)
        if raw is None:
            continue
        date_time: datetime | None = None
        date_text = get_str(raw, "dateTime")
        if date_text is not None:
            date_time = parse_date_time(date_text)
            if date_time is None:
                return Err(_invalid(f"invalid dateTime {date_text!r} for {phase}", path))
        states[phase] = PhaseState(
            date_time=date_time,
            version=get_str(raw, "version"),
            step=get_str(raw, "step"),
        )
    return Ok(states)


def _parse_pointer(
    table: Mapping[str, object] | None, path: Path
) -> Result[PublishPointer | None, PublishError]:
    if table is None:
        return Ok(None)
    phase = get_str(table, "phase")
    if phase not in PHASES:
        return Err(_invalid(f"invalid publishState phase {phase!r}", path))
    return Ok(PublishPointer(phase=cast(Phase, phase), repository=get_str(table, "repositoryName")))


def load_configuration(config_dir: Path) -> Result[Configuration, PublishError]:
    """Load and merge the shared and local configuration documents.

    The shared document is required; a missing local document is treated
    as empty (first run on this machine).
    """
    shared_path, local_path = config_paths(config_dir)

    shared_result = _read_json(shared_path, required=True)
    if isinstance(shared_result, Err):
        return shared_result
    local_result = _read_json(local_path, required=False)
    if isinstance(local_result, Err):
        return local_result
    shared = shared_result.value
    local = local_result.value

    organization = get_str(shared, "organization")
    if organization is None:
        return Err(_invalid("organization is required", shared_path))

    versions = get_str_list(shared, "versions") or []
    if not versions:
        return Err(_invalid("versions must list at least one version branch", shared_path))

    shared_repositories = get_table(shared, "repositories")
    if shared_repositories is None:
        return Err(_invalid("repositories table is required", shared_path))
    local_repositories = get_table(local, "repositories") or {}

    repositories: dict[str, Repository] = {}
    for name, raw_obj in shared_repositories.items():
        raw = as_str_dict(raw_obj)
        if raw is None:
            return Err(_invalid(f"repository {name} must be an object", shared_path))

        dependency_type = get_str(raw, "dependencyType")
        if dependency_type not in DEPENDENCY_TYPES:
            return Err(
                _invalid(f"invalid dependencyType {dependency_type!r} for {name}", shared_path)
            )

        local_raw = get_table(local_repositories, name) or {}

        shared_states = _parse_phase_states(
            get_table(raw, "phaseStates"), SHARED_PHASES, shared_path
        )
        if isinstance(shared_states, Err):
            return shared_states
        local_states = _parse_phase_states(
            get_table(local_raw, "phaseStates"), LOCAL_PHASES, local_path
        )
        if isinstance(local_states, Err):
            return local_states

        repositories[name] = Repository(
            name=name,
            dependency_type=cast(DependencyType, dependency_type),
            directory=get_str(raw, "directory"),
            additional_dependencies=get_str_list(raw, "additionalDependencies") or [],
            exclude_paths=get_str_list(raw, "excludePaths") or [],
            phase_states={**shared_states.value, **local_states.value},
            working_version=get_str(local_raw, "workingVersion") or "",
        )

    for repository in repositories.values():
        for dependency in repository.additional_dependencies:
            if dependency not in repositories:
                return Err(
                    _invalid(
                        f"additional dependency {dependency} of {repository.name} "
                        "is not configured",
                        shared_path,
                    )
                )

    pointer = _parse_pointer(get_table(local, "publishState"), local_path)
    if isinstance(pointer, Err):
        return pointer

    return Ok(
        Configuration(
            organization=organization,
            versions=versions,
            repositories=repositories,
            alpha_registry=get_str(local, "alphaRegistry") or "",
            log_level=get_str(local, "logLevel"),
            publish_pointer=pointer.value,
        )
    )


# -----------------------------------------------------------------------------
# Save
# -----------------------------------------------------------------------------


def _phase_states_json(repository: Repository, phases: tuple[Phase, ...]) -> StrDict:
    states: StrDict = {}
    for phase in phases:
        state = repository.phase_states.get(phase)
        if state is None:
            continue
        entry: StrDict = {}
        if state.date_time is not None:
            entry["dateTime"] = format_date_time(state.date_time)
        if state.version is not None:
            entry["version"] = state.version
        if state.step is not None:
            entry["step"] = state.step
        states[phase] = entry
    return states


def shared_document(config: Configuration) -> StrDict:
    repositories: StrDict = {}
    for name, repository in config.repositories.items():
        entry: StrDict = {}
        if repository.directory is not None:
            entry["directory"] = repository.directory
        entry["dependencyType"] = repository.dependency_type
        if repository.additional_dependencies:
            entry["additionalDependencies"] = list(repository.additional_dependencies)
        if repository.exclude_paths:
            entry["excludePaths"] = list(repository.exclude_paths)
        entry["phaseStates"] = _phase_states_json(repository, SHARED_PHASES)
        repositories[name] = entry

    return {
        "versions": list(config.versions),
        "organization": config.organization,
        "repositories": repositories,
    }


def local_document(config: Configuration) -> StrDict:
    document: StrDict = {}
    if config.log_level is not None:
        document["logLevel"] = config.log_level
    document["alphaRegistry"] = config.alpha_registry
    if config.publish_pointer is not None:
        pointer: StrDict = {"phase": config.publish_pointer.phase}
        if config.publish_pointer.repository is not None:
            pointer["repositoryName"] = config.publish_pointer.repository
        document["publishState"] = pointer

    repositories: StrDict = {}
    for name, repository in config.repositories.items():
        repositories[name] = {
            "workingVersion": repository.working_version,
            "phaseStates": _phase_states_json(repository, LOCAL_PHASES),
        }
    document["repositories"] = repositories
    return document


def save_configuration(
    config: Configuration,
    *,
    config_dir: Path,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[None, PublishError]:
    """Persist both documents; on dry run print them instead."""
    shared_path, local_path = config_paths(config_dir)
    shared_text = dump_json(shared_document(config))
    local_text = dump_json(local_document(config))

    if dry_run:
        console.info(f"Dry run: Saving shared configuration\n{shared_text}")
        console.info(f"Dry run: Saving local configuration\n{local_text}")
        return Ok(None)

    try:
        atomic_write_text(shared_path, shared_text)
        atomic_write_text(local_path, local_text)
    except OSError as e:
        return Err(PublishError(kind="io_failed", message=f"cannot save configuration: {e}"))
    console.debug(f"Saved configuration to {config_dir}")
    return Ok(None)
