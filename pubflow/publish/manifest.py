"""``package.json`` access.

The manifest is read fully, only ``version`` and dependency entries are
mutated, and every other field is written back untouched.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from pubflow.core.result import Err, Ok, Result
from pubflow.core.structured import StrDict, as_str_dict, get_str, get_table
from pubflow.output.console import ConsoleProtocol
from pubflow.platform.files import atomic_write_text, dump_json
from pubflow.publish.errors import PublishError

MANIFEST_FILE: Final = "package.json"
LOCK_FILE: Final = "package-lock.json"

# Dependency sections that can reference sibling repositories.
DEPENDENCY_SECTIONS: Final = ("devDependencies", "dependencies")


@dataclass(slots=True)
class Manifest:
    data: StrDict

    @property
    def name(self) -> str:
        return get_str(self.data, "name") or ""

    @property
    def version(self) -> str:
        return get_str(self.data, "version") or ""

    @version.setter
    def version(self, value: str) -> None:
        self.data["version"] = value

    def dependency_sections(self) -> Iterator[StrDict]:
        """Dependency tables present in the manifest, dev dependencies first."""
        for section in DEPENDENCY_SECTIONS:
            table = get_table(self.data, section)
            if table is not None:
                yield table

    def iter_dependencies(self) -> Iterator[tuple[StrDict, str, str]]:
        """Yield ``(section, package name, range)`` for every string entry."""
        for section in self.dependency_sections():
            for package, version_range in list(section.items()):
                if isinstance(version_range, str):
                    yield section, package, version_range

    def has_dependency(self, package: str) -> bool:
        return any(package in section for section in self.dependency_sections())

    def preview(self) -> StrDict:
        """Fields a dry run shows instead of writing the file."""
        keys = ("name", "version", *DEPENDENCY_SECTIONS)
        return {k: self.data[k] for k in keys if k in self.data}


def load_manifest(repo_root: Path) -> Result[Manifest, PublishError]:
    path = repo_root / MANIFEST_FILE
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(PublishError(kind="io_failed", message=f"cannot read {path}: {e}"))

    try:
        data_obj: object = json.loads(content)
    except json.JSONDecodeError as e:
        return Err(PublishError(kind="io_failed", message=f"invalid JSON in {path}: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(PublishError(kind="io_failed", message=f"{path} must contain a JSON object"))
    return Ok(Manifest(data=data))


def save_manifest(
    manifest: Manifest,
    repo_root: Path,
    *,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[None, PublishError]:
    if dry_run:
        console.info(f"Dry run: Saving package configuration\n{dump_json(manifest.preview())}")
        return Ok(None)

    path = repo_root / MANIFEST_FILE
    try:
        atomic_write_text(path, dump_json(manifest.data))
    except OSError as e:
        return Err(PublishError(kind="io_failed", message=f"cannot write {path}: {e}"))
    return Ok(None)
