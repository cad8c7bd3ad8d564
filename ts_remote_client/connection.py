# =============================================================================
# TS Remote Client -- Connection
# =============================================================================
#
# Lifecycle of one socket to the remote apps API: open, authenticate,
# flush queued messages, republish transport notifications as events.
#
# Two readiness policies are supported:
#
#   auth_before_ready=True   queued messages wait for the auth response
#   auth_before_ready=False  queued messages flush as soon as the socket opens
#
# In both cases the auth request is the first frame on the socket.
# =============================================================================

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Callable

from ._logging import logger
from .config import ClientConfig
from .constants import (
    EVENT_CONNECTION_CLOSED,
    EVENT_CONNECTION_OPEN,
    EVENT_ERROR,
    EVENT_INCOMING_MESSAGE,
    EVENT_READY,
)
from .dispatcher import EventDispatcher
from .errors import (
    TSAuthError,
    TSClosedError,
    TSConnectionError,
    TSProtocolError,
    TSRemoteError,
    TSUsageError,
)
from .handshake import AuthHandshake
from .outbound_queue import OutboundQueue
from .protocol import MessageCodec, event_name_for_type, message_type
from .transport import Transport, WebSocketTransport
from .types import CloseInfo, ConnectionState, ErrorInfo, EventCallback, Message


class Connection:
    """A single supervised connection to the remote apps API.

    A Connection is never reused: once CLOSED or FAILED it stays inert and a
    new instance must be created to try again.

    Args:
        config: A :class:`ClientConfig`, or an override mapping such as
            ``{"api": {"key": "..."}}`` applied to the defaults.
        auth_before_ready: Hold queued messages until the API accepts the
            auth request (default). When False they are flushed as soon as
            the socket opens.
        transport: Socket implementation. Defaults to
            :class:`WebSocketTransport`.
        dispatcher: Event registry. A private one is created by default.

    Example::

        conn = Connection({"api": {"key": saved_key}})
        conn.on("ready", lambda msg: save_key(conn.api_key))
        conn.on("onClientMoved", handle_move)
        conn.connect()
        conn.send({"type": "ping"})   # queued until ready
    """

    def __init__(
        self,
        config: ClientConfig | Mapping[str, Any] | None = None,
        *,
        auth_before_ready: bool = True,
        transport: Transport | None = None,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        if isinstance(config, ClientConfig):
            self._config = config
        else:
            self._config = ClientConfig(config)
        self._auth_before_ready = auth_before_ready

        self._codec = MessageCodec()
        self._events = dispatcher or EventDispatcher()
        self._queue = OutboundQueue()
        self._handshake = AuthHandshake(self._config, self._codec)

        self._transport = transport or WebSocketTransport()
        self._transport.set_handlers(
            on_open=self._handle_open,
            on_error=self._handle_error,
            on_close=self._handle_close,
            on_message=self._handle_message,
        )

        self._state = ConnectionState.CONNECTING
        self._started = False
        self._authenticated = False
        self._fault: TSRemoteError | None = None
        self._settled = asyncio.Event()
        self._closed = asyncio.Event()

        self._messages_sent = 0
        self._messages_received = 0

    # -- Context manager ------------------------------------------------------

    async def __aenter__(self) -> Connection:
        self.connect()
        try:
            await self.wait_ready()
        except BaseException:
            # Timeout or cancellation: nobody will run __aexit__
            if self._state != ConnectionState.CLOSED:
                logger.debug("Abandoning connection to %s", self.url)
                self._transport.abort()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._state == ConnectionState.CONNECTING:
            return
        self.close()
        if self._transport.has_opened:
            await self.wait_closed()

    # -- Properties -----------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state in (ConnectionState.OPEN, ConnectionState.AUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        return self._state == ConnectionState.AUTHENTICATED

    @property
    def auth_request_sent(self) -> bool:
        return self._handshake.sent

    @property
    def auth_before_ready(self) -> bool:
        return self._auth_before_ready

    @property
    def api_key(self) -> str:
        return (self._config.get("api") or {}).get("key", "")

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def pending(self) -> int:
        """Number of messages waiting in the outbound queue."""
        return self._queue.size

    # -- Lifecycle ------------------------------------------------------------

    def connect(self) -> None:
        """Start opening the socket. Must be called from a running loop.

        Raises:
            TSUsageError: If the connection was already started.
        """
        if self._started:
            raise TSUsageError("Connection has already been started")
        self._started = True
        logger.debug("Opening connection to %s", self.url)
        self._transport.open(self.url)

    def close(self) -> None:
        """Close the socket. ``connectionClosed`` follows asynchronously.

        Raises:
            TSUsageError: If the socket is still connecting.
        """
        if self._state == ConnectionState.CONNECTING:
            raise TSUsageError("Can not close connection that is still connecting")
        if self._state == ConnectionState.CLOSED:
            return
        if not self._transport.has_opened:
            # Failed before opening, the transport is already tearing down
            return
        self._transport.close()

    async def wait_ready(self) -> None:
        """Wait until the API accepts the auth request.

        Raises:
            TSAuthError: If the socket closed before authentication.
            TSConnectionError: If the connection failed or closed otherwise.
        """
        await self._settled.wait()
        if self._authenticated:
            return
        raise self._fault or TSConnectionError("Connection closed before it was ready")

    async def wait_closed(self) -> None:
        await self._closed.wait()

    # -- Send -----------------------------------------------------------------

    def send(self, message: Mapping[str, Any]) -> None:
        """Send *message*, or queue it until the connection is ready.

        Raises:
            TSUsageError: If *message* has no string ``type`` or can't be
                encoded.
            TSClosedError: If the connection is closed.
            TSConnectionError: If the connection has failed.
        """
        if self._state == ConnectionState.CLOSED:
            raise TSClosedError("Can't send data to API. Connection closed.")
        if self._state == ConnectionState.FAILED:
            raise TSConnectionError("Can't send data to API. Connection failed.")

        encoded = self._codec.encode(message)
        msg_type = message["type"]
        if self._queue.send(encoded, self._transport_send, msg_type=msg_type):
            return
        logger.debug("Queued '%s' message (%d pending)", msg_type, self._queue.size)

    # -- Events ---------------------------------------------------------------

    def on(
        self, event: str, callback: EventCallback | None = None
    ) -> EventCallback | Callable[[EventCallback], EventCallback]:
        """Register a listener. See :meth:`EventDispatcher.on`."""
        return self._events.on(event, callback)

    def off(self, event: str, callback: EventCallback) -> None:
        self._events.off(event, callback)

    # -- Stats ----------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "url": self.url,
            "auth_before_ready": self._auth_before_ready,
            "auth_request_sent": self._handshake.sent,
            "authenticated": self._authenticated,
            "messages_sent": self._messages_sent,
            "messages_received": self._messages_received,
            "outbound_queue": self._queue.get_stats(),
        }

    # -- Transport notifications ----------------------------------------------

    def _handle_open(self) -> None:
        if self._state != ConnectionState.CONNECTING:
            logger.warning("Ignoring open notification in state %s", self._state.value)
            return
        self._set_state(ConnectionState.OPEN)

        self._handshake.send(self._transport_send)
        if not self._auth_before_ready:
            self._queue.drain(self._transport_send)

        self._events.emit(EVENT_CONNECTION_OPEN)

    def _handle_error(self, cause: Any) -> None:
        if self._state == ConnectionState.CLOSED:
            logger.debug("Ignoring transport error after close: %s", cause)
            return
        exc = TSConnectionError(
            "Error connecting to TeamSpeak remote apps API. "
            "Check connection parameters and try again."
        )
        if isinstance(cause, BaseException):
            exc.__cause__ = cause
        self._fault = exc
        self._set_state(ConnectionState.FAILED)
        self._events.emit(EVENT_ERROR, ErrorInfo(cause, exc))

    def _handle_close(self, info: CloseInfo) -> None:
        if self._state == ConnectionState.CLOSED:
            return

        if self._handshake.sent and not self._authenticated:
            exc = TSAuthError(
                "Access to TS API has been denied in remote apps section of "
                "TS client or the API key is invalid."
            )
            self._fault = exc
            logger.warning("Socket closed before authentication (code %d)", info.code)
            self._events.emit(EVENT_ERROR, ErrorInfo(info, exc))

        dropped = self._queue.clear()
        if dropped:
            logger.warning("Discarding %d unsent messages", dropped)

        self._set_state(ConnectionState.CLOSED)
        self._settled.set()
        self._closed.set()
        self._events.emit(EVENT_CONNECTION_CLOSED, info)

    def _handle_message(self, data: str | bytes) -> None:
        if self._state == ConnectionState.CLOSED:
            return
        try:
            message = self._codec.decode(data)
        except TSProtocolError as exc:
            logger.warning("Dropping undecodable frame: %s", exc)
            self._events.emit(EVENT_ERROR, ErrorInfo(data, exc))
            return
        self._messages_received += 1

        if AuthHandshake.is_auth_message(message):
            self._handle_auth_response(message)

        self._events.emit(EVENT_INCOMING_MESSAGE, message)

        msg_type = message_type(message)
        if msg_type is not None:
            event = event_name_for_type(msg_type)
            if (self._config.get("api") or {}).get("event_debug"):
                logger.info("Event received: %s %r", event, message)
            self._events.emit(event, message)

    def _handle_auth_response(self, message: Message) -> None:
        if self._state != ConnectionState.OPEN or not self._handshake.sent:
            logger.warning(
                "Ignoring unsolicited auth message in state %s", self._state.value
            )
            return
        key = AuthHandshake.parse_response(message)
        if key is None:
            logger.warning("Ignoring malformed auth response")
            return

        self._config.set({"api": {"key": key}})
        self._authenticated = True
        self._set_state(ConnectionState.AUTHENTICATED)
        if not self._queue.drained:
            self._queue.drain(self._transport_send)

        self._settled.set()
        self._events.emit(EVENT_READY, message)

    # -- Internal -------------------------------------------------------------

    def _transport_send(self, encoded: str) -> None:
        self._transport.send(encoded)
        self._messages_sent += 1

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state == self._state:
            return
        old = self._state
        self._state = new_state
        logger.debug("State: %s -> %s", old.value, new_state.value)
