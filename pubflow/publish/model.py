from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, Literal, get_args

Phase = Literal["alpha", "beta", "production"]
DependencyType = Literal["external", "internal", "application", "helper"]
Step = Literal[
    "install",
    "build",
    "commit",
    "tag",
    "push",
    "workflow (push)",
    "release",
    "workflow (release)",
    "pull request",
    "npm wait",
]

PHASES: Final[tuple[Phase, ...]] = get_args(Phase)
DEPENDENCY_TYPES: Final[tuple[DependencyType, ...]] = get_args(DependencyType)

# Phases persisted in the shared document; alpha state is operator-local.
SHARED_PHASES: Final[tuple[Phase, ...]] = ("beta", "production")
LOCAL_PHASES: Final[tuple[Phase, ...]] = ("alpha",)

# Marker written by older publisher versions once every step had run.
COMPLETE_STEP: Final = "complete"


@dataclass(frozen=True, slots=True)
class PhaseState:
    """Publication record of one repository in one phase.

    ``step`` is a step name while a publish is in progress (or after it
    failed); None when idle.
    """

    date_time: datetime | None = None
    version: str | None = None
    step: str | None = None


def _empty_phase_states() -> dict[Phase, PhaseState]:
    return {}


def _empty_names() -> list[str]:
    return []


@dataclass(slots=True)
class Repository:
    name: str
    dependency_type: DependencyType
    directory: str | None = None
    additional_dependencies: list[str] = field(default_factory=_empty_names)
    exclude_paths: list[str] = field(default_factory=_empty_names)
    phase_states: dict[Phase, PhaseState] = field(default_factory=_empty_phase_states)
    working_version: str = ""

    @property
    def directory_name(self) -> str:
        return self.directory or self.name

    @property
    def is_helper(self) -> bool:
        return self.dependency_type == "helper"

    @property
    def is_dependency(self) -> bool:
        """True when other repositories consume a recorded version of this one."""
        return self.dependency_type in ("external", "internal")


@dataclass(frozen=True, slots=True)
class PublishPointer:
    """Phase being published and the repository in progress, if any."""

    phase: Phase
    repository: str | None = None
