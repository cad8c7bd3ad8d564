"""Integration tests: WebSocketTransport and Connection against a local server."""

import asyncio
import json
import socket

import pytest
import pytest_asyncio
import websockets.asyncio.server
from websockets.exceptions import ConnectionClosed

from ts_remote_client import connect
from ts_remote_client.connection import Connection
from ts_remote_client.errors import TSAuthError, TSConnectionError, TSUsageError
from ts_remote_client.transport import WebSocketTransport
from ts_remote_client.types import ConnectionState

TIMEOUT = 5.0


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeRemoteApps:
    """Minimal stand-in for the TS5 remote apps endpoint.

    Accepts any auth request (rotating the key to "XYZ") unless ``deny`` is
    set, in which case it closes the socket, or ``silent`` is set, in which
    case it never answers. A ``crash`` message drops the TCP connection
    without a close frame. Every other frame is recorded and echoed back.
    """

    def __init__(self, *, deny: bool = False, silent: bool = False) -> None:
        self.deny = deny
        self.silent = silent
        self.received: list[dict] = []

    async def handler(self, ws) -> None:
        try:
            await self._serve(ws)
        except ConnectionClosed:
            pass

    async def _serve(self, ws) -> None:
        async for frame in ws:
            message = json.loads(frame)
            self.received.append(message)
            if message["type"] == "auth":
                if self.deny:
                    await ws.close(1000, "denied")
                    return
                if self.silent:
                    continue
                await ws.send(json.dumps({"type": "auth", "payload": {"apiKey": "XYZ"}}))
            elif message["type"] == "crash":
                ws.transport.abort()
                return
            else:
                await ws.send(frame)


@pytest_asyncio.fixture
async def remote():
    app = FakeRemoteApps()
    async with websockets.asyncio.server.serve(app.handler, "127.0.0.1", 0) as server:
        app.port = server.sockets[0].getsockname()[1]
        yield app


def _config(port: int) -> dict:
    return {"api": {"host": "127.0.0.1", "port": port, "key": "ABC"}}


class TestWebSocketTransport:
    def test_send_before_open_raises(self):
        with pytest.raises(TSConnectionError):
            WebSocketTransport().send("{}")

    def test_close_before_open_raises(self):
        with pytest.raises(TSUsageError):
            WebSocketTransport().close()

    @pytest.mark.asyncio
    async def test_open_twice_raises(self):
        t = WebSocketTransport()
        t.open(f"ws://127.0.0.1:{_free_port()}/")
        with pytest.raises(TSUsageError):
            t.open(f"ws://127.0.0.1:{_free_port()}/")
        await asyncio.wait_for(t._run_task, TIMEOUT)

    @pytest.mark.asyncio
    async def test_abort_pending_open(self):
        # Accepts TCP but never answers the HTTP upgrade
        writers = []

        async def stall(reader, writer):
            writers.append(writer)

        server = await asyncio.start_server(stall, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        closed = []
        errors = []
        t = WebSocketTransport()
        t.set_handlers(
            on_open=lambda: None,
            on_error=errors.append,
            on_close=closed.append,
            on_message=lambda data: None,
        )
        try:
            t.open(f"ws://127.0.0.1:{port}/")
            await asyncio.sleep(0.1)
            assert t.has_opened is False
            t.abort()
            await asyncio.wait_for(t._run_task, TIMEOUT)
        finally:
            for writer in writers:
                writer.close()
            server.close()
            await server.wait_closed()
        assert errors == []
        assert len(closed) == 1
        assert closed[0].code == 1006
        assert t.has_opened is False

    def test_abort_before_open_is_noop(self):
        WebSocketTransport().abort()


class TestConnectionIntegration:
    @pytest.mark.asyncio
    async def test_handshake_and_echo(self, remote):
        conn = Connection(_config(remote.port))
        echoed = asyncio.Event()
        replies = []

        def on_echo(message):
            replies.append(message)
            echoed.set()

        conn.on("onEcho", on_echo)
        conn.send({"type": "echo", "payload": {"n": 1}})
        conn.connect()

        await asyncio.wait_for(conn.wait_ready(), TIMEOUT)
        assert conn.state == ConnectionState.AUTHENTICATED
        assert conn.api_key == "XYZ"

        await asyncio.wait_for(echoed.wait(), TIMEOUT)
        assert replies == [{"type": "echo", "payload": {"n": 1}}]
        assert remote.received[0]["type"] == "auth"
        assert remote.received[0]["payload"]["content"]["apiKey"] == "ABC"
        assert remote.received[1] == {"type": "echo", "payload": {"n": 1}}

        conn.close()
        await asyncio.wait_for(conn.wait_closed(), TIMEOUT)
        assert conn.state == ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_context_manager(self, remote):
        async with connect(_config(remote.port)) as conn:
            assert conn.is_authenticated
            for i in range(5):
                conn.send({"type": "seq", "payload": {"i": i}})
        assert conn.state == ConnectionState.CLOSED
        seq = [m["payload"]["i"] for m in remote.received if m["type"] == "seq"]
        assert seq == list(range(5))

    @pytest.mark.asyncio
    async def test_denied(self, remote):
        remote.deny = True
        conn = Connection(_config(remote.port))
        errors = []
        conn.on("error", errors.append)
        conn.connect()
        with pytest.raises(TSAuthError):
            await asyncio.wait_for(conn.wait_ready(), TIMEOUT)
        await asyncio.sleep(0.05)
        assert conn.state == ConnectionState.CLOSED
        assert any(isinstance(e.exception, TSAuthError) for e in errors)

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        conn = Connection(_config(_free_port()))
        closed = []
        conn.on("connectionClosed", closed.append)
        conn.connect()
        with pytest.raises(TSConnectionError):
            await asyncio.wait_for(conn.wait_ready(), TIMEOUT)
        await asyncio.sleep(0.05)
        assert conn.state == ConnectionState.CLOSED
        assert conn.auth_request_sent is False
        assert closed and closed[0].code == 1006

    @pytest.mark.asyncio
    async def test_entry_timeout_closes_socket(self, remote):
        remote.silent = True
        conn = connect(_config(remote.port))
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.3):
                async with conn:
                    pass
        await asyncio.wait_for(conn.wait_closed(), TIMEOUT)
        assert conn.state == ConnectionState.CLOSED
        assert conn.is_authenticated is False
        assert conn._transport.is_open is False

    @pytest.mark.asyncio
    async def test_abnormal_closure_after_auth(self, remote):
        conn = Connection(_config(remote.port))
        order = []
        errors = []
        closed = []

        def on_error(info):
            order.append("error")
            errors.append(info)

        def on_closed(info):
            order.append("connectionClosed")
            closed.append(info)

        conn.on("error", on_error)
        conn.on("connectionClosed", on_closed)
        conn.connect()
        await asyncio.wait_for(conn.wait_ready(), TIMEOUT)

        conn.send({"type": "crash"})
        await asyncio.wait_for(conn.wait_closed(), TIMEOUT)
        await asyncio.sleep(0.05)

        assert order == ["error", "connectionClosed"]
        assert isinstance(errors[0].exception, TSConnectionError)
        assert not any(isinstance(e.exception, TSAuthError) for e in errors)
        assert closed[0].code == 1006
        assert conn.state == ConnectionState.CLOSED
