"""Result type for explicit error handling.

Publishing is a long chain of external commands where every link can fail.
Instead of raising, operations return ``Ok(value)`` or ``Err(error)`` and the
caller decides whether to stop, continue or translate the error.

Usage:
    def read_branch(repo: Repository) -> Result[str, PublishError]:
        branch = repo.current_branch()
        if branch is None:
            return Err(PublishError(kind="invalid_branch", message="detached HEAD"))
        return Ok(branch)

    match read_branch(repo):
        case Ok(branch):
            console.print(branch)
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]
