# =============================================================================
# TS Remote Client -- Wire Protocol Codec
# =============================================================================
#
# Every frame is a JSON object with a "type" field:
#
#   {"type": "auth", "payload": {...}}
#
# Outgoing messages are encoded as compact JSON text frames.
# =============================================================================

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from .constants import TYPE_EVENT_PREFIX
from .errors import TSProtocolError, TSUsageError
from .types import Message

try:
    import orjson

    def _json_loads(data: str | bytes) -> Any:
        return orjson.loads(data)

    def _json_dumps(obj: Any) -> str:
        return orjson.dumps(obj).decode()

    _DECODE_ERRORS: tuple[type[Exception], ...] = (orjson.JSONDecodeError,)

except ImportError:

    def _json_loads(data: str | bytes) -> Any:
        return json.loads(data)

    def _json_dumps(obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))

    _DECODE_ERRORS = (json.JSONDecodeError, UnicodeDecodeError)


def event_name_for_type(message_type: str) -> str:
    """Name of the synthesized event for a message type.

    Only the first letter is upper-cased: ``"clientMoved"`` becomes
    ``"onClientMoved"``.
    """
    return TYPE_EVENT_PREFIX + message_type[:1].upper() + message_type[1:]


def message_type(message: Mapping[str, Any]) -> str | None:
    """Return the message's ``type`` if it is a non-empty string."""
    value = message.get("type")
    if isinstance(value, str) and value:
        return value
    return None


class MessageCodec:
    """Encode and decode JSON envelope frames."""

    def encode(self, message: Mapping[str, Any]) -> str:
        """Encode an outgoing message.

        Raises:
            TSUsageError: If *message* is not a mapping with a string
                ``type`` or cannot be serialized.
        """
        if not isinstance(message, Mapping):
            raise TSUsageError(
                f"Message must be a mapping, got {type(message).__name__}"
            )
        if not isinstance(message.get("type"), str):
            raise TSUsageError("Message must have a string 'type' field")
        try:
            return _json_dumps(dict(message))
        except (TypeError, ValueError) as exc:
            raise TSUsageError(f"Message is not JSON serializable: {exc}") from exc

    def decode(self, data: str | bytes) -> Message:
        """Decode an incoming frame into a message dict.

        Raises:
            TSProtocolError: If the frame is not a JSON object.
        """
        try:
            parsed = _json_loads(data)
        except _DECODE_ERRORS as exc:
            raise TSProtocolError(f"Invalid JSON frame: {exc}") from exc
        if not isinstance(parsed, dict):
            raise TSProtocolError(
                f"Expected a JSON object, got {type(parsed).__name__}"
            )
        return parsed
