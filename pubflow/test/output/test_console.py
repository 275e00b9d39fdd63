"""Tests for output/console.py."""

from __future__ import annotations

import pytest

from pubflow.output.console import LogLevel, MockConsole, RichConsole, Style, parse_log_level


class TestParseLogLevel:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("trace", LogLevel.TRACE),
            ("Debug", LogLevel.DEBUG),
            (" info ", LogLevel.INFO),
            ("WARN", LogLevel.WARN),
            ("error", LogLevel.ERROR),
        ],
    )
    def test_known_levels(self, value: str, expected: LogLevel) -> None:
        assert parse_log_level(value) is expected

    def test_unknown_level(self) -> None:
        assert parse_log_level("verbose") is None


class TestMockConsole:
    def test_records_prefixes(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("bad")
        console.warning("careful")
        console.info("note")
        assert console.messages == ["OK done", "error: bad", "warning: careful", "info: note"]
        assert console.has_error()
        assert console.has_warning()

    def test_at_level_filters_lower_levels(self) -> None:
        console = MockConsole()
        console.trace("t")
        console.debug("d")
        console.info("i")
        console.error("e")
        assert console.at_level(LogLevel.INFO) == ["info: i", "error: e"]
        assert console.at_level(LogLevel.TRACE) == ["trace: t", "debug: d", "info: i", "error: e"]

    def test_find(self) -> None:
        console = MockConsole()
        console.header("Repository foo...")
        assert [o.style for o in console.find("foo")] == [Style.HEADER]


class TestRichConsole:
    def test_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(level=LogLevel.INFO)
        console.debug("hidden")
        console.info("shown [not markup]")
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown [not markup]" in out

    def test_error_level_silences_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(level=LogLevel.ERROR)
        console.info("quiet")
        console.warning("quiet too")
        console.error("loud")
        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out
