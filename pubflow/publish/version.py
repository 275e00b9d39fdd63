from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from pubflow.core.result import Err, Ok, Result
from pubflow.publish.errors import PublishError

_VERSION_RE = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)(?:-(?P<pre_release>alpha|beta))?$"
)
_BRANCH_RE = re.compile(r"^v(?P<major>\d+)\.(?P<minor>\d+)")


class Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Distinguishes "leave as is" from an explicit None (drop the identifier).
UNSET: Final = Unset()


@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int
    pre_release: str | None = None

    def format(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release is None:
            return base
        return f"{base}-{self.pre_release}"

    def __str__(self) -> str:
        return self.format()

    @property
    def major_minor(self) -> tuple[int, int]:
        return (self.major, self.minor)

    @property
    def working_version(self) -> str:
        return f"{self.major}.{self.minor}"

    def apply(
        self,
        *,
        major: int | Unset = UNSET,
        minor: int | Unset = UNSET,
        patch: int | Unset = UNSET,
        pre_release: str | None | Unset = UNSET,
    ) -> Version:
        """Return a copy where every provided override replaces its field."""
        return Version(
            major=self.major if isinstance(major, Unset) else major,
            minor=self.minor if isinstance(minor, Unset) else minor,
            patch=self.patch if isinstance(patch, Unset) else patch,
            pre_release=self.pre_release if isinstance(pre_release, Unset) else pre_release,
        )


def parse_version(text: str) -> Result[Version, PublishError]:
    m = _VERSION_RE.match(text)
    if m is None:
        return Err(
            PublishError(
                kind="invalid_version",
                message=f"invalid package version {text}",
                hint="expected MAJOR.MINOR.PATCH with optional -alpha or -beta",
            )
        )
    return Ok(
        Version(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
            pre_release=m.group("pre_release"),
        )
    )



def parse_branch_version(branch: str) -> tuple[int, int] | None:
    """Major/minor of a version branch (``v1.5``, ``v1.5-hotfix``); None otherwise."""
    m = _BRANCH_RE.match(branch)
    if m is None:
        return None
    return (int(m.group("major")), int(m.group("minor")))


def alpha_build_identifier(stamp: str) -> str:
    """Transient identifier for one alpha build, e.g. ``alpha.202610191230``.

    ``stamp`` is any ISO-like timestamp; only its first twelve digits
    (YYYYMMDDHHMM) are kept.
    """
    digits = "".join(ch for ch in stamp if ch.isdigit())
    return f"alpha.{digits[:12]}"
