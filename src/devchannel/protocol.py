"""Shared constants for bootstrap script ↔ server communication."""

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080

# Signalling endpoint
DEFAULT_SOCK_PATH = "/sockjs-node"
GREETING = "Welcome to SockJS!\n"

# REST endpoints
CLIENT_SCRIPT_PATH = "/__devchannel/client.js"
EP_CONFIG = "/__devchannel/config"
EP_EVENTS = "/__devchannel/events"
EP_STATUS = "/__devchannel/status"

# Bind-all addresses; the page's own hostname is used in their place
WILDCARD_HOSTS = ("0.0.0.0", "::")

# Compilation event types
MSG_INVALID = "invalid"
MSG_OK = "ok"
MSG_STILL_OK = "still-ok"
MSG_WARNINGS = "warnings"
MSG_ERRORS = "errors"

# Console prefix for channel-originated lines
LOG_PREFIX = "[devchannel]"

# Client reconnect backoff (seconds): initial * factor**attempt, capped
RECONNECT_INITIAL_S = 1.0
RECONNECT_FACTOR = 2.0
RECONNECT_MAX_S = 10.0
