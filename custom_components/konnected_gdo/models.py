"""Payload models and value types for the GDO blaQ web API."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

import aiohttp
from pydantic import BaseModel, ConfigDict

from .const import DEFAULT_PORT

# Human-readable ``state`` strings reported by the firmware
GARAGE_DOOR_OPEN: Final = "OPEN"
GARAGE_DOOR_CLOSED: Final = "CLOSED"
STATE_ON: Final = "ON"
STATE_OFF: Final = "OFF"
LOCK_LOCKED: Final = "LOCKED"
LOCK_UNLOCKED: Final = "UNLOCKED"
LOCK_UNKNOWN: Final = "UNKNOWN"


class SecurityProtocol(StrEnum):
    """Security+ protocol options accepted by the select endpoint."""

    AUTO = "auto"
    SECURITY_1 = "security+1.0"
    SECURITY_1_WITH_SMART_PANEL = "security+1.0 with smart panel"
    SECURITY_2 = "security+2.0"


class VerificationResult(StrEnum):
    """Outcome of a one-shot connection check."""

    SUCCESS = "success"
    AUTHENTICATION_REQUIRED = "authentication_required"
    INVALID_CREDENTIALS = "invalid_credentials"


@dataclass(slots=True)
class ConnectionConfig:
    """Address and credentials shared by the stream and REST calls."""

    address: str
    port: int = DEFAULT_PORT
    username: str = ""
    password: str = ""

    @property
    def base_url(self) -> str:
        """Return the HTTP base URL of the device."""

        return f"http://{self.address}:{self.port}"

    @property
    def has_credentials(self) -> bool:
        """Return True when both username and password are set."""

        return bool(self.username and self.password)

    def url(self, path: str) -> str:
        """Return the absolute URL for ``path``."""

        return f"{self.base_url}{path}"

    def auth_headers(self) -> dict[str, str]:
        """Return the Authorization header, or nothing without credentials."""

        if not self.has_credentials:
            return {}
        auth = aiohttp.BasicAuth(self.username, self.password)
        return {"Authorization": auth.encode()}

    def update(
        self,
        *,
        address: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        """Replace the identity in place so every holder sees the change."""

        if address is not None:
            self.address = address
        if port is not None:
            self.port = int(port)
        if username is not None:
            self.username = username
        if password is not None:
            self.password = password


class BasePayload(BaseModel):
    """Fields common to every entity payload (ESPHome ``object_id`` + state)."""

    model_config = ConfigDict(extra="allow")

    id: str
    state: str | None = None


class OnOffStatePayload(BasePayload):
    """Binary input; ``value`` is True for ON/open/detected."""

    value: bool = False


class GarageDoorStatePayload(BasePayload):
    """Cover payload of the garage door."""

    current_operation: str | None = None
    value: float | None = None
    position: float = 0


class GarageLightStatePayload(BasePayload):
    """Light payload; ``state`` is ON or OFF."""


class LockStatePayload(BasePayload):
    """Remote control lock; ``state`` is LOCKED, UNLOCKED or UNKNOWN."""

    value: float | None = None


class GarageOpeningsPayload(BasePayload):
    """Lifetime opening count; null (state ``NA``) when unknown."""

    value: float | None = None


class SecurityProtocolPayload(BasePayload):
    """Currently selected Security+ protocol."""

    value: str | None = None


class NumericSensorPayload(BasePayload):
    """Numeric sensor (RSSI in dBm, signal percentage, uptime seconds)."""

    value: float | None = None


class TextSensorPayload(BasePayload):
    """Text sensor such as the device id or IP address."""

    value: str | None = None


__all__ = [
    "BasePayload",
    "ConnectionConfig",
    "GARAGE_DOOR_CLOSED",
    "GARAGE_DOOR_OPEN",
    "GarageDoorStatePayload",
    "GarageLightStatePayload",
    "GarageOpeningsPayload",
    "LOCK_LOCKED",
    "LOCK_UNKNOWN",
    "LOCK_UNLOCKED",
    "LockStatePayload",
    "NumericSensorPayload",
    "OnOffStatePayload",
    "STATE_OFF",
    "STATE_ON",
    "SecurityProtocol",
    "SecurityProtocolPayload",
    "TextSensorPayload",
    "VerificationResult",
]
