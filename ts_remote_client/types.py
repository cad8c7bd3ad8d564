# =============================================================================
# TS Remote Client -- Type Definitions
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .errors import TSRemoteError

# A wire message: JSON object with a mandatory "type" field
Message = dict[str, Any]

EventCallback = Callable[..., Any]


class ConnectionState(str, Enum):
    """Connection lifecycle state.

    Typical flow: CONNECTING -> OPEN -> AUTHENTICATED -> CLOSED.
    CLOSED is terminal. FAILED is terminal too, except that it moves to
    CLOSED once the transport finishes tearing down.
    """

    CONNECTING = "connecting"
    OPEN = "open"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CloseInfo:
    """Why the transport closed.

    Attributes:
        code: WebSocket close code (1006 when no close frame was received).
        reason: Close reason sent by the peer, possibly empty.
    """

    code: int
    reason: str = ""


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Payload of the ``error`` event.

    Attributes:
        socket_event: The raw transport notification that caused the fault
            (an exception, a :class:`CloseInfo`, or an undecodable frame).
        exception: The typed fault.
    """

    socket_event: Any
    exception: TSRemoteError
