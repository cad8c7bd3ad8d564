# =============================================================================
# TS Remote Client -- Authentication Handshake
# =============================================================================
#
# One "auth" request per connection. The API answers an accepted request
# with {"type": "auth", "payload": {"apiKey": "<rotated key>"}}. It never
# sends an explicit rejection: a denied request shows up as the socket
# closing before that answer arrives.
# =============================================================================

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from ._logging import logger
from .config import ClientConfig
from .constants import AUTH_MESSAGE_TYPE
from .protocol import MessageCodec
from .types import Message


class AuthHandshake:
    """Builds, sends and interprets the ``auth`` exchange.

    A second :meth:`send` is a logged no-op that returns False.

    Args:
        config: Source of the app identity and the API key.
        codec: Encoder for the outgoing payload.
    """

    def __init__(self, config: ClientConfig, codec: MessageCodec | None = None) -> None:
        self._config = config
        self._codec = codec or MessageCodec()
        self._sent = False

    @property
    def sent(self) -> bool:
        return self._sent

    def build_payload(self) -> Message:
        app = self._config.get("app") or {}
        api = self._config.get("api") or {}
        return {
            "type": AUTH_MESSAGE_TYPE,
            "payload": {
                "identifier": app.get("identifier"),
                "version": app.get("version"),
                "name": app.get("name"),
                "description": app.get("description"),
                "content": {"apiKey": api.get("key", "")},
            },
        }

    def send(self, sink: Callable[[str], Any]) -> bool:
        """Hand the auth payload to *sink*. Returns False if already sent."""
        if self._sent:
            logger.debug("Auth request already sent, ignoring")
            return False
        sink(self._codec.encode(self.build_payload()))
        self._sent = True
        logger.debug("Auth request sent")
        return True

    @staticmethod
    def is_auth_message(message: Mapping[str, Any]) -> bool:
        return message.get("type") == AUTH_MESSAGE_TYPE

    @staticmethod
    def parse_response(message: Mapping[str, Any]) -> str | None:
        """Return the rotated API key from an acceptance, else None."""
        if message.get("type") != AUTH_MESSAGE_TYPE:
            return None
        payload = message.get("payload")
        if not isinstance(payload, Mapping):
            return None
        key = payload.get("apiKey")
        if not isinstance(key, str):
            return None
        return key
