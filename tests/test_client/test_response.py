"""Tests for the result formatting bridge."""

from __future__ import annotations

import json

import pytest

from pinproxy.client.response import format_result
from pinproxy.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RATE_LIMITED,
    EXIT_SUCCESS,
)
from pinproxy.models import CachedResponse, ErrorKind, ErrorResult
from pinproxy.output import OutputFormat, OutputManager, set_output


@pytest.fixture(autouse=True)
def _json_output(monkeypatch):
    monkeypatch.setattr("pinproxy.output._stdout_is_terminal", lambda: False)
    set_output(OutputManager(format=OutputFormat.JSON, no_color=True))


class TestCachedResponses:
    def test_success_prints_body(self, capfd) -> None:
        code = format_result(CachedResponse(body={"result": "done"}, http_code=200))
        captured = capfd.readouterr()
        assert code == EXIT_SUCCESS
        assert json.loads(captured.out) == {"result": "done"}
        assert "HTTP 200" in captured.err

    def test_error_status_exits_non_zero(self, capfd) -> None:
        code = format_result(CachedResponse(body={"error": "oops"}, http_code=500))
        assert code == EXIT_GENERIC_FAILURE
        assert json.loads(capfd.readouterr().out) == {"error": "oops"}

    def test_empty_body_prints_nothing(self, capfd) -> None:
        assert format_result(CachedResponse(body=None, http_code=204)) == EXIT_SUCCESS
        assert capfd.readouterr().out == ""

    def test_transport_failure(self, capfd) -> None:
        code = format_result(CachedResponse(body=None, http_code=0))
        captured = capfd.readouterr()
        assert code == EXIT_CONNECTION_ERROR
        assert "transport failure" in captured.err
        assert captured.out == ""


class TestErrorResults:
    @pytest.mark.parametrize(
        "result, expected",
        [
            (ErrorResult.method_not_allowed("posts/delete"), EXIT_INVALID_USAGE),
            (ErrorResult.rate_limited(), EXIT_RATE_LIMITED),
            (
                ErrorResult(kind=ErrorKind.IO_FAILURE, error_text="disk full", error_html=""),
                EXIT_GENERIC_FAILURE,
            ),
        ],
    )
    def test_exit_codes(self, capfd, result, expected) -> None:
        assert format_result(result) == expected
        captured = capfd.readouterr()
        assert result.error_text in captured.err
        assert captured.out == ""
