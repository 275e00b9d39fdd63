"""Tests for core/result.py."""

from __future__ import annotations

import pytest

from pubflow.core.result import Err, Ok, Result


class TestOk:
    def test_equality_by_value(self) -> None:
        assert Ok(3) == Ok(3)
        assert Ok(3) != Err(3)

    def test_repr(self) -> None:
        assert repr(Ok("v1.5")) == "Ok('v1.5')"


class TestErr:
    def test_repr(self) -> None:
        assert repr(Err("boom")) == "Err('boom')"

    def test_pattern_matching(self) -> None:
        result: Result[int, str] = Err("boom")
        match result:
            case Ok(_):
                pytest.fail("expected Err")
            case Err(error):
                assert error == "boom"
