"""Shared test fixtures for offlinekit.

Provides fake transports and sleeps for driving the offline client without a
network or a real clock, isolated config environments, output state
management, and a mocked HTTP API for driving the CLI. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.

Async code is driven with :func:`asyncio.run` from plain test functions.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from offlinekit.client import HttpxTransport
from offlinekit.models import NetworkRequest, NetworkResponse
from offlinekit.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


Outcome = Union[NetworkResponse, BaseException]


class FakeTransport:
    """Scripted transport recording every request it receives.

    Each call pops the next outcome from *script*: a response is returned,
    an exception is raised. When the script runs dry, *default* is used.
    """

    def __init__(
        self,
        script: Optional[list[Outcome]] = None,
        default: Optional[Callable[[NetworkRequest], Outcome]] = None,
    ) -> None:
        self.script: list[Outcome] = list(script or [])
        self.default = default or (lambda request: _ok({"url": request.url}))
        self.calls: list[NetworkRequest] = []

    async def request(self, request: NetworkRequest) -> NetworkResponse:
        self.calls.append(request)
        outcome = self.script.pop(0) if self.script else self.default(request)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    """Async sleep stand-in that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _ok(body: Any = None, status_code: int = 200) -> NetworkResponse:
    return NetworkResponse(status_code=status_code, body=body)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """The :class:`FakeTransport` class, for tests that script outcomes."""
    return FakeTransport


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Forces the XDG layout, points XDG_CONFIG_HOME, XDG_CACHE_HOME and
    XDG_DATA_HOME at subdirectories of tmp_path so that tests never touch
    real user config, clears all OFFLINEKIT_* environment variables, and
    changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("offlinekit.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "OFFLINEKIT_QUEUE_BACKEND",
        "OFFLINEKIT_QUEUE_PATH",
        "OFFLINEKIT_BASE_URL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Mocked HTTP API for CLI tests
# ---------------------------------------------------------------------------


class MockAPI:
    """Programmable stand-in for the remote API.

    Every request the CLI sends is recorded in :attr:`requests`. Responses
    come from :attr:`handler`, which defaults to echoing the method, path,
    query and JSON body back with a 200.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = self._echo

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @staticmethod
    def _echo(request: httpx.Request) -> httpx.Response:
        payload: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "query": dict(request.url.params),
        }
        if request.content:
            try:
                payload["body"] = json.loads(request.content)
            except ValueError:
                payload["body"] = request.content.decode()
        return httpx.Response(200, json=payload)

    def respond(self, status_code: int, body: Optional[Any] = None) -> None:
        """Answer every following request with *status_code* and *body*."""
        self.handler = lambda request: httpx.Response(status_code, json=body)


@pytest.fixture
def mock_api(monkeypatch: pytest.MonkeyPatch) -> MockAPI:
    """Route every transport the CLI builds through a :class:`MockAPI`."""
    api = MockAPI()

    class _MockedTransport(HttpxTransport):
        def __init__(self, base_url: str = "", timeout: float = 30.0, verify: bool = True) -> None:
            super().__init__(
                base_url=base_url,
                timeout=timeout,
                verify=verify,
                client=httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(api)),
            )
            self._owns_client = True

    monkeypatch.setattr("offlinekit.commands.runtime.HttpxTransport", _MockedTransport)
    return api


@pytest.fixture
def no_retries(isolated_config: Path) -> Path:
    """Project config turning retries off so failing commands return at once."""
    (isolated_config / "offlinekit.json").write_text(
        json.dumps({"retry": {"max_retries": 0}}), encoding="utf-8"
    )
    return isolated_config
