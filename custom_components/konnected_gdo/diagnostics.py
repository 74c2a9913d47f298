"""Diagnostics support for the Konnected GDO blaQ integration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import fields
from enum import Enum
import logging
import platform
from typing import Any, Final

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_PASSWORD, CONF_USERNAME, DOMAIN
from .events import DeviceEvent, ErrorEvent
from .runtime import get_runtime

_LOGGER = logging.getLogger(__name__)

SENSITIVE_FIELDS: Final = {
    CONF_PASSWORD,
    CONF_USERNAME,
    "authorization",
}


def _event_snapshot(event: DeviceEvent) -> Any:
    if isinstance(event, ErrorEvent):
        return str(event.error)
    snapshot: dict[str, Any] = {}
    for item in fields(event):
        value = getattr(event, item.name)
        snapshot[item.name] = value.value if isinstance(value, Enum) else value
    return snapshot


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> Mapping[str, Any]:
    """Return a diagnostics payload for ``entry``."""

    runtime = get_runtime(hass, entry.entry_id)
    api = runtime.api
    config = api.config

    diagnostics: dict[str, Any] = {
        "integration": {"domain": DOMAIN},
        "home_assistant": {
            "version": str(getattr(hass, "version", "unknown")),
            "python_version": platform.python_version(),
        },
        "entry": {
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
        "connection": {
            "address": config.address,
            "port": config.port,
            "username": config.username,
            "password": config.password,
            "has_credentials": config.has_credentials,
            "state": str(api.connection_state),
            "connected": api.is_connected,
            "max_retries": runtime.max_retries,
            "last_error": runtime.last_error,
        },
        "last_events": {
            str(kind): _event_snapshot(event)
            for kind, event in sorted(runtime.last_events.items())
        },
    }

    _LOGGER.debug("Diagnostics collected for %s", entry.entry_id)
    return async_redact_data(diagnostics, SENSITIVE_FIELDS)


__all__ = ["SENSITIVE_FIELDS", "async_get_config_entry_diagnostics"]
