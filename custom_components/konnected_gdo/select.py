"""Security protocol selector."""

from __future__ import annotations

import logging

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import KonnectedEntity
from .events import DeviceEvent, EventKind, IdentityEvent
from .models import SecurityProtocol
from .runtime import EntryRuntime, get_runtime

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities([SecurityProtocolSelect(runtime)])


class SecurityProtocolSelect(KonnectedEntity, SelectEntity):
    """Rolling-code protocol the opener speaks."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_options = [protocol.value for protocol in SecurityProtocol]
    event_kinds = frozenset({EventKind.SECURITY_PROTOCOL})

    def __init__(self, runtime: EntryRuntime) -> None:
        super().__init__(runtime, "security_protocol")
        self._attr_current_option = None

    def apply_event(self, event: DeviceEvent) -> None:
        if not isinstance(event, IdentityEvent):
            return
        if event.value in self._attr_options:
            self._attr_current_option = event.value
        else:
            _LOGGER.debug("Unknown security protocol %r", event.value)

    async def async_select_option(self, option: str) -> None:
        if option not in self._attr_options:
            raise HomeAssistantError(f"Unsupported security protocol: {option}")
        await self._async_command(
            self.api.set_security_protocol, SecurityProtocol(option)
        )


__all__ = ["SecurityProtocolSelect"]
