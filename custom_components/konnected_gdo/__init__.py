"""Home Assistant entry point for the Konnected GDO blaQ integration."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from aiohttp import ClientError
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers import aiohttp_client
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .api import KonnectedApi
from .const import (
    CONF_DEVICE_ID,
    CONF_HOST,
    CONF_MAX_RETRIES,
    CONF_PASSWORD,
    CONF_PORT,
    CONF_USERNAME,
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_PORT,
    DOMAIN,
    PLATFORMS,
    signal_connection_status,
    signal_device_event,
)
from .errors import ConnectionFailedError, UnauthorizedError
from .events import DeviceEvent, ErrorEvent, EventKind, LogEvent
from .models import ConnectionConfig
from .runtime import EntryRuntime, get_runtime
from .sanitize import mask_identifier, redact_text

_LOGGER = logging.getLogger(__name__)

# Kinds that carry entity state and are replayed to late subscribers
_STATE_KINDS = frozenset(EventKind) - {
    EventKind.LOG,
    EventKind.ERROR,
    EventKind.CONNECTED,
    EventKind.DISCONNECTED,
}


def connection_config_from_entry(data: Mapping[str, Any]) -> ConnectionConfig:
    """Build the device identity from config entry data."""

    return ConnectionConfig(
        address=str(data[CONF_HOST]).strip(),
        port=int(data.get(CONF_PORT, DEFAULT_PORT)),
        username=data.get(CONF_USERNAME) or "",
        password=data.get(CONF_PASSWORD) or "",
    )


def max_retries_from_entry(entry: ConfigEntry) -> int:
    """Return the configured retry ceiling, falling back to the default."""

    value = entry.options.get(CONF_MAX_RETRIES, DEFAULT_MAX_RETRY_COUNT)
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return DEFAULT_MAX_RETRY_COUNT


def _wire_events(hass: HomeAssistant, runtime: EntryRuntime) -> None:
    """Forward bus events to the dispatcher and the log."""

    entry_id = runtime.config_entry.entry_id
    event_signal = signal_device_event(entry_id)
    status_signal = signal_connection_status(entry_id)

    @callback
    def _on_state(event: DeviceEvent) -> None:
        runtime.remember(event)
        async_dispatcher_send(hass, event_signal, event)

    @callback
    def _on_log(event: LogEvent) -> None:
        _LOGGER.info("%s: %s", mask_identifier(runtime.device_id), event.message)

    @callback
    def _on_error(event: ErrorEvent) -> None:
        runtime.last_error = redact_text(str(event.error))
        _LOGGER.warning(
            "%s: %s", mask_identifier(runtime.device_id), runtime.last_error
        )
        if getattr(event.error, "status", None) == 401:
            runtime.config_entry.async_start_reauth(hass)
        async_dispatcher_send(hass, status_signal)

    @callback
    def _on_connection_change(_event: DeviceEvent) -> None:
        async_dispatcher_send(hass, status_signal)

    bus = runtime.api.bus
    for kind in _STATE_KINDS:
        runtime.unsubscribers.append(bus.subscribe(kind, _on_state))
    runtime.unsubscribers.append(bus.subscribe(EventKind.LOG, _on_log))
    runtime.unsubscribers.append(bus.subscribe(EventKind.ERROR, _on_error))
    runtime.unsubscribers.append(
        bus.subscribe(EventKind.CONNECTED, _on_connection_change)
    )
    runtime.unsubscribers.append(
        bus.subscribe(EventKind.DISCONNECTED, _on_connection_change)
    )


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Connect to the device and forward the entity platforms."""

    config = connection_config_from_entry(entry.data)
    session = aiohttp_client.async_get_clientsession(hass)
    api = KonnectedApi(session, config)
    device_id = entry.data.get(CONF_DEVICE_ID) or entry.unique_id or entry.entry_id
    runtime = EntryRuntime(
        api=api,
        config_entry=entry,
        device_id=str(device_id),
        max_retries=max_retries_from_entry(entry),
    )
    _wire_events(hass, runtime)

    try:
        await api.connect(max_retries=runtime.max_retries)
    except UnauthorizedError as err:
        runtime.release()
        api.disconnect()
        raise ConfigEntryAuthFailed("Device rejected the credentials") from err
    except (ConnectionFailedError, ClientError) as err:
        runtime.release()
        api.disconnect()
        raise ConfigEntryNotReady(
            f"Unable to connect to {redact_text(config.base_url)}: {err}"
        ) from err

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = runtime
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _LOGGER.debug("Set up %s for device %s", DOMAIN, mask_identifier(runtime.device_id))
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reconnect with the updated identity or retry ceiling."""

    try:
        runtime = get_runtime(hass, entry.entry_id)
    except LookupError:
        return

    api = runtime.api
    config = connection_config_from_entry(entry.data)
    api.disconnect()
    api.update_identity(
        address=config.address,
        port=config.port,
        username=config.username,
        password=config.password,
    )
    runtime.max_retries = max_retries_from_entry(entry)

    try:
        await api.connect(max_retries=runtime.max_retries)
    except UnauthorizedError:
        _LOGGER.warning("Device rejected the updated credentials")
        entry.async_start_reauth(hass)
    except (ConnectionFailedError, ClientError) as err:
        _LOGGER.warning(
            "Reconnect to %s failed: %s", redact_text(config.base_url), err
        )
    async_dispatcher_send(hass, signal_connection_status(entry.entry_id))


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload platforms and close the event stream."""

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        return False

    runtime = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if isinstance(runtime, EntryRuntime):
        runtime.release()
        runtime.api.disconnect()
    return True


__all__ = [
    "async_setup_entry",
    "async_unload_entry",
    "connection_config_from_entry",
    "max_retries_from_entry",
]
