"""Constants for the Konnected GDO blaQ integration."""

from __future__ import annotations

from typing import Final

# Domain
DOMAIN: Final = "konnected_gdo"
MANUFACTURER: Final = "Konnected"
MODEL: Final = "GDO blaQ"

# Config entry keys
CONF_HOST: Final = "host"
CONF_PORT: Final = "port"
CONF_USERNAME: Final = "username"
CONF_PASSWORD: Final = "password"
CONF_DEVICE_ID: Final = "device_id"
CONF_MAX_RETRIES: Final = "max_retries"

# Connection defaults
DEFAULT_PORT: Final = 80
DEFAULT_MAX_RETRY_COUNT: Final = 5
MAX_RETRY_COUNT_LIMIT: Final = 20
DEFAULT_RECONNECT_DELAY: Final = 3.0
STREAM_CONNECT_TIMEOUT: Final = 10.0

# Streaming endpoint and the SSE event carrying entity updates
EVENTS_PATH: Final = "/events"
STATE_EVENT: Final = "state"

PLATFORMS: Final = [
    "binary_sensor",
    "button",
    "cover",
    "light",
    "lock",
    "select",
    "sensor",
    "switch",
]

# --- Dispatcher signal helpers (stream → entities) ---


def signal_device_event(entry_id: str) -> str:
    """Signal name for decoded device events dispatched to platforms."""

    return f"{DOMAIN}_{entry_id}_event"


def signal_connection_status(entry_id: str) -> str:
    """Signal name for stream availability changes."""

    return f"{DOMAIN}_{entry_id}_status"
