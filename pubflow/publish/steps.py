"""Resumable step pipeline.

The step marker lives in the repository's phase state and is persisted
with the configuration after every repository. A publication that fails
in step S leaves the marker on S; the next run skips every step before S
and resumes exactly there.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pubflow.core.result import Err, Ok, Result
from pubflow.publish.context import RepositoryPublishState
from pubflow.publish.errors import PublishError
from pubflow.publish.model import Step

StepAction = Callable[[], Result[object, PublishError]]


@dataclass(frozen=True, slots=True)
class StepRunner:
    state: RepositoryPublishState

    @property
    def resuming_at(self) -> str | None:
        return self.state.phase_state.step

    def run(self, step: Step, action: StepAction) -> Result[bool, PublishError]:
        """Run ``step`` unless an earlier attempt already completed it.

        Returns Ok(True) when the action ran, Ok(False) when it was skipped.
        An Err (or an exception) leaves the marker on ``step``.
        """
        console = self.state.console
        marker = self.resuming_at
        if marker is not None and marker != step:
            console.debug(f"Skipping step {step}")
            return Ok(False)

        console.debug(f"Running step {step}")
        self.state.update_phase_state(step=step)

        result = action()
        if isinstance(result, Err):
            return result

        self.state.update_phase_state(step=None)
        return Ok(True)
