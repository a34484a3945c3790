"""
Shared fixtures for the test suite.

Centralizes the fake relay transport and configuration so individual test
files don't need to repeat connection boilerplate.  Nothing here touches the
network.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from core.errors import TransportNotOpenError
from relay.client import RelayClient

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE_CONFIG: dict[str, Any] = {
    "strength": 5,
    "pulseName": "呼吸",
    "heartbeatInterval": 10,
    "maxAddInterval": 50,
    "onDidStartDebugSession": 10,
    "onDidTerminateDebugSession": "none",
    "onDidReceiveDebugSessionCustomEvent": 20,
    "onDidChangeBreakpoints": "none",
    "onDidSaveTextDocument": 3,
    "codingMaxFrequency": 30,
    "messageSendOption": "AB一起输出",
}
"""Configuration as the host would provide it."""

ASSIGN_FRAME: dict[str, str] = {"type": "bind", "clientId": "c1", "targetId": "", "message": "targetId"}
"""First bind frame: relay assigns our client id, no device yet."""

PAIR_FRAME: dict[str, str] = {"type": "bind", "clientId": "c1", "targetId": "t1", "message": "200"}
"""Second bind frame: device app paired."""


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """In-memory :class:`relay.transport.Transport` recording sent frames.

    Args:
        on_open_frames: Frames delivered synchronously as soon as ``open`` runs.
        open_error: If set, ``open`` reports this error instead of connecting.
    """

    def __init__(
        self,
        on_open_frames: list[dict[str, Any] | str] | None = None,
        open_error: Exception | None = None,
    ) -> None:
        self.sent: list[str] = []
        self.url: str | None = None
        self.open_calls = 0
        self.close_calls = 0
        self._open = False
        self._on_open_frames = on_open_frames if on_open_frames is not None else [ASSIGN_FRAME]
        self._open_error = open_error
        self._on_message: Callable[[str], None] | None = None
        self._on_error: Callable[[Exception], None] | None = None
        self._on_close: Callable[[], None] | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, url, *, on_message, on_error, on_close) -> None:
        self.open_calls += 1
        self.url = url
        self._on_message, self._on_error, self._on_close = on_message, on_error, on_close
        if self._open_error is not None:
            on_error(self._open_error)
            return
        self._open = True
        for frame in self._on_open_frames:
            self.receive(frame)

    def send(self, text: str) -> None:
        if not self._open:
            raise TransportNotOpenError()
        self.sent.append(text)

    def close(self) -> None:
        self.close_calls += 1
        was_open, self._open = self._open, False
        if was_open and self._on_close is not None:
            self._on_close()

    def receive(self, frame: dict[str, Any] | str) -> None:
        assert self._on_message is not None, "open() must run first"
        self._on_message(frame if isinstance(frame, str) else json.dumps(frame))

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(s) for s in self.sent]

    @property
    def texts(self) -> list[str]:
        """``message`` field of every sent frame, in order."""
        return [m.get("message", "") for m in self.messages]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class SleepRecorder:
    """Replacement for ``time.sleep`` that records calls and runs a hook."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.hook: Callable[[], None] | None = None

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.hook is not None:
            self.hook()


@pytest.fixture()
def config() -> dict[str, Any]:
    return dict(BASE_CONFIG)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def client(config, transport, sleeper):
    """Unconnected client wired to the fake transport; closed on teardown."""
    c = RelayClient(config, transport=transport, sleep=sleeper)
    yield c
    c.close()


@pytest.fixture()
def paired_client(client, transport):
    """Client that has connected and been paired with device ``t1``.

    The sent-frame log is cleared so tests only see their own traffic.
    """
    client.connect(timeout=1.0)
    transport.receive(PAIR_FRAME)
    transport.sent.clear()
    return client
