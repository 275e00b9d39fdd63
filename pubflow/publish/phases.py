"""Phase strategies.

Each release phase is one ``PhaseStrategy`` value: how it resolves a
repository's reference instant, which branches it accepts, what version
string dependents receive and which steps a publication runs. The
procedures and the orchestrator only talk to the strategy.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pubflow.core.result import Err, Ok, Result
from pubflow.publish.errors import PublishError, internal_error
from pubflow.publish.model import Phase, Repository, Step
from pubflow.publish.version import Version
from pubflow.publish.workflow import WorkflowTriggers

DependencyVersion = Callable[[str, Repository, str | None], Result[str, PublishError]]


def latest_instant(repository: Repository, phases: tuple[Phase, ...]) -> datetime | None:
    """Most recent publication instant of ``repository`` across ``phases``."""
    instants = [
        state.date_time
        for phase in phases
        if (state := repository.phase_states.get(phase)) is not None and state.date_time is not None
    ]
    return max(instants, default=None)


def _alpha_dependency_version(
    organization: str, dependency: Repository, version: str | None
) -> Result[str, PublishError]:
    # Alpha builds always resolve against the registry's "alpha" dist-tag.
    return Ok("alpha")


def _released_dependency_version(*, caret: bool) -> DependencyVersion:
    def resolve(
        organization: str, dependency: Repository, version: str | None
    ) -> Result[str, PublishError]:
        if version is None:
            return Err(internal_error(f"version not set for dependency {dependency.name}"))
        match dependency.dependency_type:
            case "external":
                return Ok(f"^{version}" if caret else version)
            case "internal":
                return Ok(f"{organization}/{dependency.name}#v{version}")
            case other:
                return Err(
                    internal_error(
                        f'invalid dependency type "{other}" for dependency {dependency.name}'
                    )
                )

    return resolve


@dataclass(frozen=True, slots=True)
class PhaseStrategy:
    phase: Phase
    previous: Phase | None
    # Pre-release identifier carried by versions published in this phase.
    pre_release: str | None
    # Phases whose instants count as "published" for this phase.
    instant_phases: tuple[Phase, ...]
    resolve_dependency_version: DependencyVersion
    any_branch: bool = False

    @property
    def strict(self) -> bool:
        """Beta and production require a committed tree in sync with the remote."""
        return self.phase != "alpha"

    @property
    def previous_pre_release(self) -> str | None:
        if self.previous is None:
            return None
        return STRATEGIES[self.previous].pre_release

    def phase_instant(self, repository: Repository) -> datetime | None:
        return latest_instant(repository, self.instant_phases)

    def is_valid_branch(self, branch: str, version: Version, repository: Repository) -> bool:
        if self.any_branch or repository.is_helper:
            return True
        return branch == f"v{version.major}.{version.minor}"

    def dependency_version(
        self, organization: str, dependency: Repository
    ) -> Result[str, PublishError]:
        state = dependency.phase_states.get(self.phase)
        version = state.version if state is not None else None
        return self.resolve_dependency_version(organization, dependency, version)

    def steps(self, repository: Repository, triggers: WorkflowTriggers) -> list[Step]:
        """Ordered steps of a publication; empty for alpha, which is not resumable."""
        if self.phase == "alpha":
            return []

        steps: list[Step] = ["install", "build", "commit"]
        if not repository.is_helper:
            steps.append("tag")
        steps.append("push")
        if triggers.on_push:
            steps.append("workflow (push)")
        if not repository.is_helper:
            steps.append("release")
            if triggers.on_release:
                steps.append("workflow (release)")
            if self.phase == "production":
                steps.append("pull request")
        if repository.dependency_type == "external":
            steps.append("npm wait")
        return steps


ALPHA = PhaseStrategy(
    phase="alpha",
    previous=None,
    pre_release="alpha",
    instant_phases=("alpha", "beta", "production"),
    resolve_dependency_version=_alpha_dependency_version,
    any_branch=True,
)

BETA = PhaseStrategy(
    phase="beta",
    previous="alpha",
    pre_release="beta",
    instant_phases=("beta", "production"),
    resolve_dependency_version=_released_dependency_version(caret=False),
)

PRODUCTION = PhaseStrategy(
    phase="production",
    previous="beta",
    pre_release=None,
    instant_phases=("production",),
    resolve_dependency_version=_released_dependency_version(caret=True),
)

STRATEGIES: dict[Phase, PhaseStrategy] = {
    "alpha": ALPHA,
    "beta": BETA,
    "production": PRODUCTION,
}


def strategy_for(phase: Phase) -> PhaseStrategy:
    return STRATEGIES[phase]
