"""Momentary device actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from homeassistant.components.button import (
    ButtonDeviceClass,
    ButtonEntity,
    ButtonEntityDescription,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .endpoints import Button
from .entity import KonnectedEntity
from .events import DeviceEvent
from .runtime import EntryRuntime, get_runtime


@dataclass(frozen=True, kw_only=True)
class KonnectedButtonDescription(ButtonEntityDescription):
    button: Button


# No entity for factory reset.
BUTTONS: Final = (
    KonnectedButtonDescription(
        key="play_sound", translation_key="play_sound", button=Button.PLAY_SOUND
    ),
    KonnectedButtonDescription(
        key="pre_close_warning",
        translation_key="pre_close_warning",
        button=Button.PRE_CLOSE_WARNING,
    ),
    KonnectedButtonDescription(
        key="re_sync",
        translation_key="re_sync",
        button=Button.RE_SYNC,
        entity_category=EntityCategory.CONFIG,
    ),
    KonnectedButtonDescription(
        key="reset_door_timings",
        translation_key="reset_door_timings",
        button=Button.RESET_DOOR_TIMINGS,
        entity_category=EntityCategory.CONFIG,
    ),
    KonnectedButtonDescription(
        key="restart",
        button=Button.RESTART,
        device_class=ButtonDeviceClass.RESTART,
        entity_category=EntityCategory.CONFIG,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities(KonnectedButton(runtime, desc) for desc in BUTTONS)


class KonnectedButton(KonnectedEntity, ButtonEntity):
    entity_description: KonnectedButtonDescription

    def __init__(
        self, runtime: EntryRuntime, description: KonnectedButtonDescription
    ) -> None:
        super().__init__(runtime, description.key)
        self.entity_description = description
        if description.translation_key is None:
            self._attr_translation_key = None

    def apply_event(self, event: DeviceEvent) -> None:
        return

    async def async_press(self) -> None:
        await self._async_command(self.api.press_button, self.entity_description.button)


__all__ = ["BUTTONS", "KonnectedButton"]
