"""Garage light for the Konnected GDO blaQ."""

from __future__ import annotations

from typing import Any

from homeassistant.components.light import ColorMode, LightEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .endpoints import Switch
from .entity import KonnectedEntity
from .events import DeviceEvent, EventKind, SwitchEvent
from .runtime import EntryRuntime, get_runtime


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities([GarageLight(runtime)])


class GarageLight(KonnectedEntity, LightEntity):
    """The opener's built-in light."""

    _attr_color_mode = ColorMode.ONOFF
    _attr_supported_color_modes = {ColorMode.ONOFF}
    event_kinds = frozenset({EventKind.SWITCH_LIGHT})

    def __init__(self, runtime: EntryRuntime) -> None:
        super().__init__(runtime, "garage_light")
        self._attr_is_on = None

    def apply_event(self, event: DeviceEvent) -> None:
        if isinstance(event, SwitchEvent) and event.switch is Switch.LIGHT:
            self._attr_is_on = event.is_on

    async def async_turn_on(self, **kwargs: Any) -> None:
        await self._async_command(self.api.turn_on_garage_light)

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._async_command(self.api.turn_off_garage_light)


__all__ = ["GarageLight"]
