"""Python client for the TeamSpeak 5 remote apps WebSocket API.

Usage::

    from ts_remote_client import connect

    async with connect({"api": {"key": saved_key}}) as conn:
        save_key(conn.api_key)          # the API may rotate the key
        conn.on("onClientMoved", print)
        conn.send({"type": "someRequest", "payload": {}})
        await conn.wait_closed()

Callback style::

    conn = Connection()
    conn.on("ready", lambda message: print("authenticated"))
    conn.on("error", lambda info: print(info.exception))
    conn.connect()

Optional extras::

    pip install ts-remote-client[fast]   # orjson
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ._version import __version__
from .config import DEFAULT_CONFIG, ClientConfig, merge_config
from .connection import Connection
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
from .protocol import MessageCodec, event_name_for_type
from .transport import Transport, WebSocketTransport
from .types import CloseInfo, ConnectionState, ErrorInfo


def connect(
    config: ClientConfig | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> Connection:
    """Create a connection to the remote apps API.

    Use as an async context manager: entering opens the socket and waits
    for the API to accept the auth request, leaving closes it. Keyword
    arguments are forwarded to :class:`Connection`: ``auth_before_ready``,
    ``transport``, ``dispatcher``.

    Args:
        config: :class:`ClientConfig` or override mapping, e.g.
            ``{"api": {"port": 5899, "key": "..."}}``.

    Returns:
        A :class:`Connection` instance.

    Raises:
        TSConnectionError: On entry, if the socket cannot be opened.
        TSAuthError: On entry, if the auth request is denied.
    """
    return Connection(config, **kwargs)


__all__ = [
    "__version__",
    "connect",
    "Connection",
    "ClientConfig",
    "DEFAULT_CONFIG",
    "merge_config",
    "EventDispatcher",
    "OutboundQueue",
    "AuthHandshake",
    "MessageCodec",
    "event_name_for_type",
    "Transport",
    "WebSocketTransport",
    "ConnectionState",
    "CloseInfo",
    "ErrorInfo",
    "TSRemoteError",
    "TSConnectionError",
    "TSClosedError",
    "TSAuthError",
    "TSUsageError",
    "TSProtocolError",
]
