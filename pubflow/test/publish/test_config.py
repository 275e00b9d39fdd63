"""Tests for publish/config.py."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from pubflow.core.result import Err, Ok
from pubflow.output.console import MockConsole
from pubflow.publish.config import (
    Configuration,
    format_date_time,
    load_configuration,
    normalize_date_time,
    save_configuration,
)
from pubflow.publish.model import COMPLETE_STEP, PhaseState, PublishPointer
from pubflow.test.fakes import make_config, make_repository

SHARED = {
    "versions": ["1.4", "1.5"],
    "organization": "acme",
    "repositories": {
        "utility": {
            "dependencyType": "external",
            "phaseStates": {
                "beta": {"dateTime": "2026-10-01T10:00:01.000Z", "version": "1.5.0-beta"},
            },
        },
        "app": {
            "directory": "app-source",
            "dependencyType": "application",
            "additionalDependencies": ["utility"],
            "excludePaths": ["docs/"],
            "phaseStates": {},
        },
    },
}

LOCAL = {
    "logLevel": "debug",
    "alphaRegistry": "https://npm.acme.test",
    "publishState": {"phase": "beta", "repositoryName": "app"},
    "repositories": {
        "utility": {
            "workingVersion": "1.5",
            "phaseStates": {"alpha": {"dateTime": "2026-10-02T08:00:01.000Z", "step": "tag"}},
        },
    },
}


def _write(config_dir: Path, shared: object, local: object | None = None) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "publisher.json").write_text(json.dumps(shared), encoding="utf-8")
    if local is not None:
        (config_dir / "publisher.local.json").write_text(json.dumps(local), encoding="utf-8")


def _load(config_dir: Path) -> Configuration:
    result = load_configuration(config_dir)
    assert isinstance(result, Ok)
    return result.value


class TestDateTime:
    def test_normalize_rounds_up_to_next_second(self) -> None:
        value = datetime(2026, 10, 19, 12, 30, 45, 123000, tzinfo=UTC)
        assert normalize_date_time(value) == datetime(2026, 10, 19, 12, 30, 46, tzinfo=UTC)

    def test_normalize_whole_second_still_moves(self) -> None:
        value = datetime(2026, 10, 19, 12, 30, 45, tzinfo=UTC)
        assert normalize_date_time(value).second == 46

    def test_format_is_utc_with_milliseconds(self) -> None:
        value = datetime(2026, 10, 19, 12, 30, 46, tzinfo=UTC)
        assert format_date_time(value) == "2026-10-19T12:30:46.000Z"


class TestLoad:
    def test_merges_shared_and_local(self, tmp_path: Path) -> None:
        _write(tmp_path, SHARED, LOCAL)
        config = _load(tmp_path)

        assert config.organization == "acme"
        assert config.latest_version == "1.5"
        assert config.alpha_registry == "https://npm.acme.test"
        assert config.log_level == "debug"
        assert config.publish_pointer == PublishPointer(phase="beta", repository="app")

        utility = config.repositories["utility"]
        assert utility.working_version == "1.5"
        assert utility.phase_states["beta"].version == "1.5.0-beta"
        assert utility.phase_states["alpha"].step == "tag"
        assert utility.phase_states["alpha"].date_time == datetime(2026, 10, 2, 8, 0, 1, tzinfo=UTC)

        app = config.repositories["app"]
        assert app.directory_name == "app-source"
        assert app.additional_dependencies == ["utility"]
        assert app.exclude_paths == ["docs/"]
        assert app.working_version == ""

    def test_missing_local_is_empty(self, tmp_path: Path) -> None:
        _write(tmp_path, SHARED)
        config = _load(tmp_path)
        assert config.alpha_registry == ""
        assert config.publish_pointer is None
        assert "alpha" not in config.repositories["utility"].phase_states

    def test_missing_shared_is_config_invalid(self, tmp_path: Path) -> None:
        result = load_configuration(tmp_path)
        assert isinstance(result, Err)
        assert result.error.kind == "config_invalid"

    def test_invalid_dependency_type(self, tmp_path: Path) -> None:
        shared = {**SHARED, "repositories": {"x": {"dependencyType": "library"}}}
        _write(tmp_path, shared)
        result = load_configuration(tmp_path)
        assert isinstance(result, Err)
        assert "dependencyType" in result.error.message

    def test_unknown_additional_dependency(self, tmp_path: Path) -> None:
        shared = {
            **SHARED,
            "repositories": {"x": {"dependencyType": "helper", "additionalDependencies": ["y"]}},
        }
        _write(tmp_path, shared)
        result = load_configuration(tmp_path)
        assert isinstance(result, Err)
        assert result.error.kind == "config_invalid"

    def test_empty_versions(self, tmp_path: Path) -> None:
        _write(tmp_path, {**SHARED, "versions": []})
        assert isinstance(load_configuration(tmp_path), Err)

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "publisher.json").write_text("{", encoding="utf-8")
        result = load_configuration(tmp_path)
        assert isinstance(result, Err)
        assert result.error.kind == "config_invalid"


class TestSave:
    def test_round_trip(self, tmp_path: Path) -> None:
        _write(tmp_path, SHARED, LOCAL)
        config = _load(tmp_path)
        console = MockConsole()

        assert save_configuration(config, config_dir=tmp_path, console=console, dry_run=False) == Ok(None)
        reloaded = _load(tmp_path)

        assert reloaded == config

    def test_alpha_state_stays_local(self, tmp_path: Path) -> None:
        _write(tmp_path, SHARED, LOCAL)
        config = _load(tmp_path)
        save_configuration(config, config_dir=tmp_path, console=MockConsole(), dry_run=False)

        shared = json.loads((tmp_path / "publisher.json").read_text(encoding="utf-8"))
        local = json.loads((tmp_path / "publisher.local.json").read_text(encoding="utf-8"))
        assert "alpha" not in shared["repositories"]["utility"]["phaseStates"]
        assert "beta" not in local["repositories"]["utility"]["phaseStates"]
        assert local["publishState"] == {"phase": "beta", "repositoryName": "app"}

    def test_dry_run_prints_instead_of_writing(self, tmp_path: Path) -> None:
        config = make_config(make_repository("utility"))
        console = MockConsole()
        save_configuration(config, config_dir=tmp_path, console=console, dry_run=True)

        assert not (tmp_path / "publisher.json").exists()
        assert console.find("Dry run: Saving shared configuration")
        assert console.find("Dry run: Saving local configuration")


class TestPhaseState:
    def test_update_merges_and_normalizes(self) -> None:
        config = make_config(make_repository("utility"))
        config.update_phase_state("utility", "beta", version="1.5.0-beta")
        updated = config.update_phase_state(
            "utility", "beta", date_time=datetime(2026, 10, 19, 12, 30, 45, 123000, tzinfo=UTC)
        )
        assert updated == PhaseState(
            date_time=datetime(2026, 10, 19, 12, 30, 46, tzinfo=UTC),
            version="1.5.0-beta",
        )

    def test_explicit_none_clears_step(self) -> None:
        config = make_config(make_repository("utility", phase_states={"beta": PhaseState(step="push")}))
        assert config.update_phase_state("utility", "beta", step=None).step is None

    def test_clear_complete_markers(self) -> None:
        config = make_config(
            make_repository("a", phase_states={"beta": PhaseState(step=COMPLETE_STEP)}),
            make_repository("b", phase_states={"beta": PhaseState(step="push")}),
        )
        assert config.clear_complete_markers("beta") == ["a"]
        assert config.repositories["a"].phase_states["beta"].step is None
        assert config.repositories["b"].phase_states["beta"].step == "push"


class TestNames:
    def test_dependency_repository_name(self) -> None:
        config = make_config()
        assert config.dependency_repository_name("@acme/utility") == "utility"
        assert config.dependency_repository_name("@other/utility") is None
        assert config.dependency_repository_name("left-pad") is None
        assert config.package_name("utility") == "@acme/utility"

    def test_next_version_branch(self) -> None:
        config = make_config()
        assert config.next_version_branch("1.4") == "v1.5"
        assert config.next_version_branch("1.5") == "main"
        assert config.next_version_branch("0.9") == "main"
