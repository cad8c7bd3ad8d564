"""Shared fixtures: an in-memory transport and an event recorder."""

import asyncio
import json
from functools import partial

import pytest

from ts_remote_client.connection import Connection
from ts_remote_client.errors import TSConnectionError, TSUsageError
from ts_remote_client.transport import Transport
from ts_remote_client.types import CloseInfo


class FakeTransport(Transport):
    """Transport driven by the test: ``fire_*`` methods raise notifications."""

    def __init__(self) -> None:
        super().__init__()
        self.url: str | None = None
        self.sent: list[str] = []
        self.close_requested = False
        self.abort_requested = False
        self._open = False
        self._has_opened = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def has_opened(self) -> bool:
        return self._has_opened

    def open(self, url: str) -> None:
        self.url = url

    def send(self, data: str) -> None:
        if not self._open:
            raise TSConnectionError("not open")
        self.sent.append(data)

    def close(self) -> None:
        if not self._has_opened:
            raise TSUsageError("never opened")
        self.close_requested = True

    def abort(self) -> None:
        self.abort_requested = True
        if self._has_opened:
            self.close()

    # -- Test drivers ---------------------------------------------------------

    def fire_open(self) -> None:
        self._open = True
        self._has_opened = True
        self._notify_open()

    def fire_error(self, cause=None) -> None:
        self._notify_error(cause if cause is not None else OSError("refused"))

    def fire_close(self, code: int = 1000, reason: str = "") -> None:
        self._open = False
        self._notify_close(CloseInfo(code, reason))

    def fire_message(self, message) -> None:
        data = message if isinstance(message, (str, bytes)) else json.dumps(message)
        self._notify_message(data)

    def sent_messages(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


class EventRecorder:
    """Records ``(event, args)`` for every listened event, in delivery order."""

    def __init__(self, conn, *events: str) -> None:
        self.calls: list[tuple[str, tuple]] = []
        for event in events:
            conn.on(event, partial(self._record, event))

    def _record(self, event: str, *args) -> None:
        self.calls.append((event, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args(self, event: str) -> list[tuple]:
        return [args for name, args in self.calls if name == event]


async def flush(turns: int = 3) -> None:
    """Let deferred event deliveries run."""
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def conn(transport):
    return Connection({"api": {"key": "ABC"}}, transport=transport)


@pytest.fixture
def settle():
    return flush


@pytest.fixture
def record():
    """Factory: ``record(conn, "ready", "error")`` -> EventRecorder."""
    return EventRecorder
