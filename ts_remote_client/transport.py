# =============================================================================
# TS Remote Client -- Transport
# =============================================================================
#
# The raw socket underneath a Connection. A transport opens once, reports
# open / error / close / message notifications in the order it observes
# them, and never reconnects.
# =============================================================================

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable

import websockets.asyncio.client
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from ._logging import logger
from .constants import MAX_MESSAGE_SIZE, WS_CLOSE_ABNORMAL, WS_CLOSE_NORMAL
from .errors import TSConnectionError, TSUsageError
from .types import CloseInfo


class Transport(ABC):
    """Contract between a Connection and its socket.

    The owner installs its notification handlers with :meth:`set_handlers`
    before calling :meth:`open`.
    """

    def __init__(self) -> None:
        self._on_open: Callable[[], Any] | None = None
        self._on_error: Callable[[Any], Any] | None = None
        self._on_close: Callable[[CloseInfo], Any] | None = None
        self._on_message: Callable[[str | bytes], Any] | None = None

    def set_handlers(
        self,
        *,
        on_open: Callable[[], Any],
        on_error: Callable[[Any], Any],
        on_close: Callable[[CloseInfo], Any],
        on_message: Callable[[str | bytes], Any],
    ) -> None:
        self._on_open = on_open
        self._on_error = on_error
        self._on_close = on_close
        self._on_message = on_message

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while sends are accepted."""

    @property
    @abstractmethod
    def has_opened(self) -> bool:
        """True once the transport has reached the open state."""

    @abstractmethod
    def open(self, url: str) -> None:
        """Start connecting. Completion is reported via on_open or on_error."""

    @abstractmethod
    def send(self, data: str) -> None:
        """Queue *data* for delivery.

        Raises:
            TSConnectionError: If the transport is not open.
        """

    @abstractmethod
    def close(self) -> None:
        """Request shutdown. on_close follows asynchronously.

        Raises:
            TSUsageError: If the transport never opened.
        """

    @abstractmethod
    def abort(self) -> None:
        """Tear down without ceremony: cancel a pending open, or close.

        Never raises. on_close follows unless the transport already closed.
        """

    # -- Notification helpers -------------------------------------------------

    def _notify(self, handler: Callable[..., Any] | None, *args: Any) -> None:
        if handler is None:
            return
        try:
            handler(*args)
        except Exception:
            logger.exception("Transport notification handler %r raised", handler)

    def _notify_open(self) -> None:
        self._notify(self._on_open)

    def _notify_error(self, cause: Any) -> None:
        self._notify(self._on_error, cause)

    def _notify_close(self, info: CloseInfo) -> None:
        self._notify(self._on_close, info)

    def _notify_message(self, data: str | bytes) -> None:
        self._notify(self._on_message, data)


class WebSocketTransport(Transport):
    """Transport over a ``websockets`` asyncio client connection.

    Outgoing frames go through a queue drained by a single writer task, so
    they reach the socket in the order :meth:`send` was called, and a
    :meth:`close` only takes effect after previously queued frames.

    Args:
        open_timeout: Seconds to wait for the opening handshake. ``None``
            (the default) waits indefinitely.
        max_size: Maximum incoming frame size in bytes.
    """

    def __init__(
        self,
        *,
        open_timeout: float | None = None,
        max_size: int = MAX_MESSAGE_SIZE,
    ) -> None:
        super().__init__()
        self._open_timeout = open_timeout
        self._max_size = max_size

        self._ws: websockets.asyncio.client.ClientConnection | None = None
        self._outbox: asyncio.Queue[str | None] | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._has_opened = False
        self._closing = False
        self._aborted = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closing

    @property
    def has_opened(self) -> bool:
        return self._has_opened

    def open(self, url: str) -> None:
        if self._run_task is not None:
            raise TSUsageError("Transport has already been opened")
        self._run_task = asyncio.get_running_loop().create_task(self._run(url))

    def send(self, data: str) -> None:
        if not self.is_open or self._outbox is None:
            raise TSConnectionError("Can't send data to API. Connection not open.")
        self._outbox.put_nowait(data)

    def close(self) -> None:
        if not self._has_opened:
            raise TSUsageError("Can not close connection that never opened")
        if self._closing or self._ws is None or self._outbox is None:
            return
        self._closing = True
        self._outbox.put_nowait(None)

    def abort(self) -> None:
        if self._has_opened:
            self.close()
            return
        if self._run_task is None or self._run_task.done():
            return
        self._aborted = True
        self._run_task.add_done_callback(self._abort_done)
        self._run_task.cancel()

    # -- Internal -------------------------------------------------------------

    def _abort_done(self, task: asyncio.Task[None]) -> None:
        # Cancelled before _run got to its connect call
        if task.cancelled():
            self._notify_close(CloseInfo(WS_CLOSE_ABNORMAL, "Connect aborted"))

    async def _run(self, url: str) -> None:
        logger.debug("Connecting to %s", url)
        try:
            ws = await websockets.asyncio.client.connect(
                url,
                max_size=self._max_size,
                open_timeout=self._open_timeout,
            )
        except asyncio.CancelledError:
            if not self._aborted:
                raise
            logger.debug("Connect to %s aborted", url)
            self._notify_close(CloseInfo(WS_CLOSE_ABNORMAL, "Connect aborted"))
            return
        except Exception as exc:
            logger.debug("Connect to %s failed: %s", url, exc)
            self._notify_error(exc)
            self._notify_close(CloseInfo(WS_CLOSE_ABNORMAL, str(exc)))
            return

        self._ws = ws
        self._has_opened = True
        self._outbox = asyncio.Queue()
        self._writer_task = asyncio.create_task(self._write_loop(ws, self._outbox))
        self._notify_open()

        try:
            async for frame in ws:
                self._notify_message(frame)
        except ConnectionClosedError as exc:
            logger.debug("WebSocket closed with error: %s", exc)
            self._notify_error(exc)
        finally:
            self._ws = None
            self._closing = True
            if self._writer_task is not None:
                self._writer_task.cancel()
                self._writer_task = None

        info = CloseInfo(
            ws.close_code if ws.close_code is not None else WS_CLOSE_ABNORMAL,
            ws.close_reason or "",
        )
        logger.debug("WebSocket closed: code=%d reason=%s", info.code, info.reason)
        self._notify_close(info)

    async def _write_loop(
        self,
        ws: websockets.asyncio.client.ClientConnection,
        outbox: asyncio.Queue[str | None],
    ) -> None:
        while True:
            data = await outbox.get()
            try:
                if data is None:
                    await ws.close(WS_CLOSE_NORMAL, "Client disconnect")
                    return
                await ws.send(data)
            except ConnectionClosed:
                logger.debug("Send failed: connection closed")
                return
