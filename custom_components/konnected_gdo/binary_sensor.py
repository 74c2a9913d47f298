"""Binary sensors for the opener alarms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
    BinarySensorEntityDescription,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import KonnectedEntity
from .events import Alarm, AlarmEvent, DeviceEvent, EventKind
from .runtime import EntryRuntime, get_runtime


@dataclass(frozen=True, kw_only=True)
class KonnectedBinarySensorDescription(BinarySensorEntityDescription):
    """Binary sensor fed by one alarm; ``inverted`` flips the reported value."""

    alarm: Alarm
    inverted: bool = False


BINARY_SENSORS: Final = (
    KonnectedBinarySensorDescription(
        key="motion",
        translation_key="motion",
        alarm=Alarm.MOTION_DETECTED,
        device_class=BinarySensorDeviceClass.MOTION,
    ),
    KonnectedBinarySensorDescription(
        key="obstruction",
        translation_key="obstruction",
        alarm=Alarm.OBSTRUCTION_DETECTED,
        device_class=BinarySensorDeviceClass.PROBLEM,
    ),
    KonnectedBinarySensorDescription(
        key="motor",
        translation_key="motor",
        alarm=Alarm.MOTOR,
        device_class=BinarySensorDeviceClass.RUNNING,
    ),
    KonnectedBinarySensorDescription(
        key="wall_button",
        translation_key="wall_button",
        alarm=Alarm.WALL_BUTTON_PRESSED,
    ),
    KonnectedBinarySensorDescription(
        key="not_synced",
        translation_key="not_synced",
        alarm=Alarm.SYNCED,
        inverted=True,
        device_class=BinarySensorDeviceClass.PROBLEM,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities(KonnectedBinarySensor(runtime, desc) for desc in BINARY_SENSORS)


class KonnectedBinarySensor(KonnectedEntity, BinarySensorEntity):
    entity_description: KonnectedBinarySensorDescription

    def __init__(
        self, runtime: EntryRuntime, description: KonnectedBinarySensorDescription
    ) -> None:
        super().__init__(runtime, description.key)
        self.entity_description = description
        self.event_kinds = frozenset({EventKind(description.alarm.value)})
        self._attr_is_on = None

    def apply_event(self, event: DeviceEvent) -> None:
        if not isinstance(event, AlarmEvent):
            return
        if event.alarm is not self.entity_description.alarm:
            return
        self._attr_is_on = event.active != self.entity_description.inverted


__all__ = ["BINARY_SENSORS", "KonnectedBinarySensor"]
