"""Entity base shared across Konnected GDO platforms."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Any

from aiohttp import ClientError
from homeassistant.core import callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import CONNECTION_NETWORK_MAC, DeviceInfo
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import Entity

from .api import KonnectedApi
from .const import DOMAIN, MANUFACTURER, MODEL, signal_connection_status, signal_device_event
from .errors import KonnectedError
from .events import DeviceEvent, EventKind
from .runtime import EntryRuntime

_LOGGER = logging.getLogger(__name__)


def format_mac(device_id: str) -> str:
    """Return ``aabbccddeeff`` as ``aa:bb:cc:dd:ee:ff``; other ids unchanged."""

    raw = device_id.replace(":", "").lower()
    if len(raw) != 12 or any(ch not in "0123456789abcdef" for ch in raw):
        return device_id
    return ":".join(raw[i : i + 2] for i in range(0, 12, 2))


def build_device_info(runtime: EntryRuntime) -> DeviceInfo:
    """Return the registry entry describing the opener."""

    mac = format_mac(runtime.device_id)
    info = DeviceInfo(
        identifiers={(DOMAIN, runtime.device_id)},
        manufacturer=MANUFACTURER,
        model=MODEL,
        name=runtime.config_entry.title or MODEL,
        configuration_url=runtime.api.url,
    )
    if mac != runtime.device_id:
        info["connections"] = {(CONNECTION_NETWORK_MAC, mac)}
    return info


class KonnectedEntity(Entity):
    """Push-updated entity fed by the device event stream."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    #: kinds this entity reacts to
    event_kinds: frozenset[EventKind] = frozenset()

    def __init__(self, runtime: EntryRuntime, key: str) -> None:
        self._runtime = runtime
        self._attr_unique_id = f"{runtime.device_id}_{key}"
        self._attr_translation_key = key
        self._attr_device_info = build_device_info(runtime)

    @property
    def api(self) -> KonnectedApi:
        return self._runtime.api

    @property
    def available(self) -> bool:
        """Available while the event stream is open."""

        return self._runtime.api.is_connected

    async def async_added_to_hass(self) -> None:
        """Seed state from cached events and subscribe to updates."""

        await super().async_added_to_hass()
        for kind in self.event_kinds:
            event = self._runtime.latest(kind)
            if event is not None:
                self.apply_event(event)

        entry_id = self._runtime.config_entry.entry_id
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass, signal_device_event(entry_id), self._handle_device_event
            )
        )
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass, signal_connection_status(entry_id), self._handle_status
            )
        )

    @callback
    def _handle_device_event(self, event: DeviceEvent) -> None:
        if event.kind not in self.event_kinds:
            return
        self.apply_event(event)
        self.async_write_ha_state()

    @callback
    def _handle_status(self) -> None:
        self.async_write_ha_state()

    def apply_event(self, event: DeviceEvent) -> None:
        """Update cached attributes from ``event``."""

        raise NotImplementedError  # pragma: no cover - abstract contract

    async def _async_command(
        self, call: Callable[..., Awaitable[Any]], *args: Any
    ) -> None:
        """Run a device command, surfacing client errors to the caller."""

        try:
            await call(*args)
        except (KonnectedError, ClientError) as err:
            _LOGGER.error("Command %s failed: %s", getattr(call, "__name__", call), err)
            raise HomeAssistantError(str(err)) from err


__all__ = ["KonnectedEntity", "build_device_info", "format_mac"]
