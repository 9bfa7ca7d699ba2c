"""Shared test fixtures for pinproxy.

Provides reusable fixtures for isolated config environments, state
directories, fake clocks, mocked Pinboard transports, output state, and
running CLI commands. These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from pinproxy.models import ProxyConfig
from pinproxy.output import OutputFormat, OutputManager, reset_output, set_output
from pinproxy.store import StateStore


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all PINPROXY_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("pinproxy.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "PINPROXY_ENDPOINT",
        "PINPROXY_CACHE_DIR",
        "PINPROXY_CACHE_DURATION",
        "PINBOARD_API_TOKEN",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Proxy fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Directory for the request log and response cache."""
    return tmp_path / "state"


@pytest.fixture
def proxy_config(state_path: Path) -> ProxyConfig:
    """Default proxy config with caching disabled and state under tmp_path."""
    return ProxyConfig(token="user:TOKEN", cache_dir=str(state_path))


@pytest.fixture
def store(state_path: Path, proxy_config: ProxyConfig) -> StateStore:
    return StateStore(state_path, proxy_config.cooldown_categories)


class RecordingTransport:
    """Mock Pinboard transport that records requests and replays queued responses.

    Each call pops the next queued response; once the queue is exhausted
    the last response is repeated. A queued exception is raised instead
    of returned.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[Any] = [httpx.Response(200, json={"result": "done"})]

    def queue(self, *responses: Any) -> None:
        self._responses = list(responses)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    @property
    def count(self) -> int:
        return len(self.requests)


@pytest.fixture
def pinboard() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def read_state(state_path: Path) -> Callable[[str], dict[str, Any]]:
    """Read a persisted state document by name (``request_log`` or ``response_cache``)."""

    def _read(name: str) -> dict[str, Any]:
        return json.loads((state_path / f"{name}.json").read_text(encoding="utf-8"))

    return _read


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet output manager for tests that don't care about output.

    Installs a PLAIN-format, quiet OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Set up JSON output for tests that check JSON-formatted output.

    Installs a JSON-format OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
