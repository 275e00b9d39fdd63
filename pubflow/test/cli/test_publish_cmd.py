from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pubflow.cli.app import app
from pubflow.core.errors import ErrorCode
from pubflow.core.result import Err, Ok, Result
from pubflow.output.console import LogLevel, RichConsole
from pubflow.publish.context import PublishSession
from pubflow.publish.errors import PublishError

runner = CliRunner()


def _config_dir(tmp_path: Path, *, log_level: str | None = None) -> Path:
    config_dir = tmp_path / "publisher" / "config"
    config_dir.mkdir(parents=True)
    shared = {
        "versions": ["1.5"],
        "organization": "acme",
        "repositories": {"utility": {"dependencyType": "external"}},
    }
    (config_dir / "publisher.json").write_text(json.dumps(shared), encoding="utf-8")
    if log_level is not None:
        local = {"logLevel": log_level, "alphaRegistry": "https://npm.acme.test"}
        (config_dir / "publisher.local.json").write_text(json.dumps(local), encoding="utf-8")
    return config_dir


def _capture_sessions(
    monkeypatch: pytest.MonkeyPatch, result: Result[None, PublishError] = Ok(None)
) -> list[PublishSession]:
    import pubflow.cli.commands.publish_cmd as publish_cmd

    sessions: list[PublishSession] = []

    def fake_publish_all(session: PublishSession) -> Result[None, PublishError]:
        sessions.append(session)
        return result

    monkeypatch.setattr(publish_cmd, "publish_all", fake_publish_all)
    return sessions


def test_alpha_passes_options_to_session(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sessions = _capture_sessions(monkeypatch)
    config_dir = _config_dir(tmp_path)

    result = runner.invoke(
        app, ["alpha", "--config-dir", str(config_dir), "--dry-run", "--update-all"]
    )

    assert result.exit_code == 0, result.output
    [session] = sessions
    assert session.strategy.phase == "alpha"
    assert session.dry_run is True
    assert session.update_all is True
    assert session.config_dir == config_dir.resolve()
    assert session.workspace_root == tmp_path.resolve()


@pytest.mark.parametrize("phase", ["beta", "production"])
def test_phase_commands(phase: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sessions = _capture_sessions(monkeypatch)

    result = runner.invoke(app, [phase, "--config-dir", str(_config_dir(tmp_path))])

    assert result.exit_code == 0, result.output
    assert sessions[0].strategy.phase == phase
    assert sessions[0].dry_run is False


def test_error_kind_sets_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _capture_sessions(
        monkeypatch,
        Err(PublishError(kind="invalid_branch", message="branch main is not valid", hint="check out v1.5")),
    )

    result = runner.invoke(app, ["beta", "--config-dir", str(_config_dir(tmp_path))])

    assert result.exit_code == int(ErrorCode.STATE_ERROR)
    assert "branch main is not valid" in result.output


def test_missing_configuration(tmp_path: Path) -> None:
    result = runner.invoke(app, ["beta", "--config-dir", str(tmp_path)])
    assert result.exit_code == int(ErrorCode.USER_ERROR)


def test_log_level_option_overrides_configuration(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    sessions = _capture_sessions(monkeypatch)
    config_dir = _config_dir(tmp_path, log_level="error")

    result = runner.invoke(app, ["alpha", "--config-dir", str(config_dir), "--log-level", "trace"])

    assert result.exit_code == 0, result.output
    console = sessions[0].console
    assert isinstance(console, RichConsole)
    assert console.level is LogLevel.TRACE


def test_unknown_log_level(tmp_path: Path) -> None:
    result = runner.invoke(app, ["alpha", "--config-dir", str(_config_dir(tmp_path)), "--log-level", "loud"])
    assert result.exit_code == int(ErrorCode.USER_ERROR)


def test_no_arguments_shows_help() -> None:
    result = runner.invoke(app, [])
    assert "alpha" in result.output
    assert "production" in result.output
