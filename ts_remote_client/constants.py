# =============================================================================
# TS Remote Client -- Protocol Constants
# =============================================================================
#
# Endpoint defaults and wire values of the TeamSpeak 5 remote apps API.
# =============================================================================

# -- Endpoint ------------------------------------------------------------------

URL_SCHEME = "ws"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5899

# -- Application identity ------------------------------------------------------

DEFAULT_APP_NAME = "TS Remote Apps Wrapper"
DEFAULT_APP_IDENTIFIER = "ts5-remote-apps-wrapper"
DEFAULT_APP_VERSION = "1.0.0"
DEFAULT_APP_DESCRIPTION = (
    "An API wrapper written in Python for TeamSpeak 5's remote apps "
    "WebSocket feature."
)

# -- Messages ------------------------------------------------------------------

AUTH_MESSAGE_TYPE = "auth"
MAX_MESSAGE_SIZE = 1_048_576  # 1 MB

# Synthesized per-type events: "channels" -> "onChannels"
TYPE_EVENT_PREFIX = "on"

# -- Public events -------------------------------------------------------------

EVENT_CONNECTION_OPEN = "connectionOpen"
EVENT_CONNECTION_CLOSED = "connectionClosed"
EVENT_ERROR = "error"
EVENT_INCOMING_MESSAGE = "incomingMessage"
EVENT_READY = "ready"

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
WS_CLOSE_ABNORMAL = 1006
