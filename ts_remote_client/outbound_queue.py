# =============================================================================
# TS Remote Client -- Outbound Queue
# =============================================================================
#
# Buffers encoded messages sent before the connection is ready and hands
# them to the transport, in submission order, exactly once. After the drain
# every message bypasses the buffer.
# =============================================================================

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from ._logging import logger
from .errors import TSUsageError

Sink = Callable[[str], Any]


@dataclass(slots=True)
class QueuedMessage:
    """An encoded message waiting for the transport."""

    encoded: str
    msg_type: str
    timestamp: float


class OutboundQueue:
    """FIFO buffer of messages awaiting a ready transport."""

    def __init__(self) -> None:
        self._queue: deque[QueuedMessage] = deque()
        self._drained = False

    @property
    def size(self) -> int:
        return len(self._queue)

    @property
    def drained(self) -> bool:
        return self._drained

    def enqueue(self, encoded: str, *, msg_type: str = "") -> None:
        self._queue.append(
            QueuedMessage(encoded=encoded, msg_type=msg_type, timestamp=time.monotonic())
        )

    def send(self, encoded: str, sink: Sink, *, msg_type: str = "") -> bool:
        """Forward to *sink* if already drained, otherwise buffer.

        Returns True if the message went straight to *sink*.
        """
        if self._drained:
            sink(encoded)
            return True
        self.enqueue(encoded, msg_type=msg_type)
        return False

    def drain(self, sink: Sink) -> int:
        """Forward every buffered message to *sink* in FIFO order.

        Can only happen once. Returns the number of messages forwarded.

        Raises:
            TSUsageError: If the queue was already drained.
        """
        if self._drained:
            raise TSUsageError("Outbound queue has already been drained")
        self._drained = True
        count = 0
        while self._queue:
            sink(self._queue.popleft().encoded)
            count += 1
        if count:
            logger.debug("Flushed %d queued messages", count)
        return count

    def clear(self) -> int:
        """Discard all buffered messages. Returns how many were dropped."""
        dropped = len(self._queue)
        self._queue.clear()
        return dropped

    def get_stats(self) -> dict[str, Any]:
        oldest = self._queue[0].timestamp if self._queue else None
        return {
            "size": len(self._queue),
            "drained": self._drained,
            "oldest_age_seconds": (
                time.monotonic() - oldest if oldest is not None else None
            ),
        }
