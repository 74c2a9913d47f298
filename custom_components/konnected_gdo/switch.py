"""Configuration switches (learn mode, toggle only)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from homeassistant.components.switch import SwitchEntity, SwitchEntityDescription
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .endpoints import Switch
from .entity import KonnectedEntity
from .events import DeviceEvent, EventKind, SwitchEvent
from .runtime import EntryRuntime, get_runtime


@dataclass(frozen=True, kw_only=True)
class KonnectedSwitchDescription(SwitchEntityDescription):
    """Switch bound to a device switch id."""

    switch: Switch


SWITCHES: Final = (
    KonnectedSwitchDescription(
        key="learn",
        translation_key="learn",
        switch=Switch.LEARN,
        entity_category=EntityCategory.CONFIG,
    ),
    KonnectedSwitchDescription(
        key="toggle_only",
        translation_key="toggle_only",
        switch=Switch.TOGGLE_ONLY,
        entity_category=EntityCategory.CONFIG,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities(KonnectedSwitch(runtime, desc) for desc in SWITCHES)


class KonnectedSwitch(KonnectedEntity, SwitchEntity):
    """Device switch toggled through its on/off endpoints."""

    entity_description: KonnectedSwitchDescription

    def __init__(
        self, runtime: EntryRuntime, description: KonnectedSwitchDescription
    ) -> None:
        super().__init__(runtime, description.key)
        self.entity_description = description
        self.event_kinds = frozenset({EventKind(description.switch.value)})
        self._attr_is_on = None

    def apply_event(self, event: DeviceEvent) -> None:
        if isinstance(event, SwitchEvent) and event.switch is self.entity_description.switch:
            self._attr_is_on = event.is_on

    async def async_turn_on(self, **kwargs: Any) -> None:
        await self._async_command(
            self.api.set_switch_state, self.entity_description.switch, True
        )

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._async_command(
            self.api.set_switch_state, self.entity_description.switch, False
        )


__all__ = ["KonnectedSwitch", "SWITCHES"]
