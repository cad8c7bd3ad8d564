# =============================================================================
# TS Remote Client -- Error Types
# =============================================================================


class TSRemoteError(Exception):
    """Base exception for all remote apps client errors."""


class TSConnectionError(TSRemoteError):
    """Transport faults (could not connect, socket not in the required state)."""


class TSClosedError(TSConnectionError):
    """The connection is closed and no longer accepts messages."""


class TSAuthError(TSRemoteError):
    """Authentication denied (socket closed before the handshake completed)."""


class TSUsageError(TSRemoteError):
    """The caller used the API incorrectly (bad message, wrong state)."""


class TSProtocolError(TSRemoteError):
    """Wire protocol errors (undecodable or malformed frames)."""
