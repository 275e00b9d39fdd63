"""Change detection since the last publication of a phase.

Git history and the working tree are folded into a ``ChangedFileSet``;
the final verdict then checks the on-disk modification time of what is
left, so a path touched by an old commit inside the window does not count
unless the file itself is newer than the publication.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Final

from pubflow.core.result import Err, Ok, Result
from pubflow.git.repository import Repository as GitRepository
from pubflow.output.console import ConsoleProtocol
from pubflow.publish.errors import PublishError, git_error
from pubflow.publish.manifest import LOCK_FILE

CONTROL_DIR: Final = ".github/"
TEST_DIR: Final = "test/"

_STATUS_RE = re.compile(r"^[ AMDR]{1,2}$")
_COMMIT_HEADER_RE = re.compile(r"^[0-9a-f]{40} ")
_UNTRACKED = "??"


def resolve_status(status: str) -> str:
    """Collapse an index/working-tree status pair into one effective status.

    A blank half defers to the other; a working-tree delete wins, then an
    index add; anything else (modified, renamed) keeps the index status.
    """
    if len(status) == 1:
        return status
    index, work_tree = status[0], status[1]
    if index == " ":
        return work_tree
    if work_tree == " ":
        return index
    if work_tree == "D":
        return "D"
    if index == "A":
        return "A"
    return index


def _empty_files() -> dict[str, None]:
    return {}


@dataclass
class ChangedFileSet:
    """Ordered, deduplicated set of repository-relative changed paths."""

    exclude_paths: tuple[str, ...] = ()
    ignore_control_files: bool = False
    console: ConsoleProtocol | None = None
    _files: dict[str, None] = field(default_factory=_empty_files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._files))

    def __len__(self) -> int:
        return len(self._files)

    def is_included(self, path: str) -> bool:
        hidden = path.startswith(".") or "/." in path
        if hidden and (self.ignore_control_files or not path.startswith(CONTROL_DIR)):
            return False
        if path == LOCK_FILE or path.startswith(TEST_DIR):
            return False
        for pattern in self.exclude_paths:
            if path == pattern or (pattern.endswith("/") and path.startswith(pattern)):
                return False
        return True

    def apply(
        self, status: str, path: str, new_path: str | None = None
    ) -> Result[bool, PublishError]:
        """Fold one git status record into the set; Ok(True) if the set changed.

        ``status`` is a single status letter (from ``git log``) or a
        two-character porcelain pair. For a rename, ``path`` is the source
        and ``new_path`` the destination.
        """
        if status == _UNTRACKED:
            status = "A"
        if not _STATUS_RE.match(status):
            return Err(
                PublishError(
                    kind="invalid_git_output",
                    message=f'unknown status "{status}" for file {path}',
                )
            )

        resolved = resolve_status(status)
        changed = False

        if resolved in ("D", "R") and path in self._files:
            del self._files[path]
            self._debug(f"-{path}")
            changed = True

        if resolved == "R":
            added = new_path
        elif resolved == "D":
            added = None
        else:
            added = path

        if added is not None and added not in self._files:
            if self.is_included(added):
                self._files[added] = None
                self._debug(f"+{added}")
                changed = True
            else:
                self._debug(f"*{added}")

        return Ok(changed)

    def _debug(self, message: str) -> None:
        if self.console is not None:
            self.console.debug(message)


@dataclass(frozen=True, slots=True)
class ChangeDetector:
    """Answers "did anything meaningful change since ``since``?" for one repository.

    ``strict`` is set for beta and production: the remote must have nothing
    unfetched and the working tree must be committed.
    """

    repo_root: Path
    console: ConsoleProtocol
    exclude_paths: tuple[str, ...] = ()
    strict: bool = False

    def any_changes(
        self, since: datetime | None, *, ignore_control_files: bool
    ) -> Result[bool, PublishError]:
        git = GitRepository(self.repo_root)

        if self.strict:
            fetch = git.fetch_dry_run()
            if isinstance(fetch, Err):
                return Err(git_error(fetch.error))
            if fetch.value:
                return Err(
                    PublishError(
                        kind="remote_drift",
                        message="remote repository has outstanding changes",
                        hint="pull the remote changes and rerun",
                    )
                )

        if since is None:
            self.console.info("Never published")
            return Ok(True)

        changed = ChangedFileSet(
            exclude_paths=self.exclude_paths,
            ignore_control_files=ignore_control_files,
            console=self.console,
        )

        log = git.log_name_status(since)
        if isinstance(log, Err):
            return Err(git_error(log.error))
        for line in log.value:
            if _COMMIT_HEADER_RE.match(line):
                self.console.debug(f"Commit SHA {line[:40]}")
                continue
            fields = line.split("\t")
            if len(fields) < 2:
                return Err(
                    PublishError(
                        kind="invalid_git_output", message=f"unexpected git log line: {line}"
                    )
                )
            # Only the first character matters ("R100" is a rename).
            new_path = fields[2] if len(fields) > 2 else None
            applied = changed.apply(fields[0][:1], fields[1], new_path)
            if isinstance(applied, Err):
                return applied

        status = git.status()
        if isinstance(status, Err):
            return Err(git_error(status.error))
        if status.value:
            self.console.debug("Uncommitted")
        uncommitted = False
        for entry in status.value:
            applied = changed.apply(entry.xy, entry.path, entry.new_path)
            if isinstance(applied, Err):
                return applied
            uncommitted = uncommitted or applied.value

        if self.strict and uncommitted:
            return Err(
                PublishError(
                    kind="uncommitted_changes",
                    message="repository has uncommitted changes",
                    hint="commit or stash them, or add the paths to excludePaths",
                )
            )

        return self._newer_than(changed, since)

    def _newer_than(self, changed: ChangedFileSet, since: datetime) -> Result[bool, PublishError]:
        threshold = since.timestamp()
        newer: list[str] = []
        for path in changed:
            try:
                mtime = (self.repo_root / path).lstat().st_mtime
            except OSError as e:
                return Err(PublishError(kind="io_failed", message=f"cannot stat {path}: {e}"))
            if mtime > threshold:
                newer.append(path)

        if not newer:
            self.console.info("No changes")
            return Ok(False)

        self.console.info("Changes")
        for path in newer:
            self.console.info(f">{path}")
        return Ok(True)
