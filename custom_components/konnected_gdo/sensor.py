"""Sensors for counters, Wi-Fi signal and uptime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import (
    PERCENTAGE,
    SIGNAL_STRENGTH_DECIBELS_MILLIWATT,
    EntityCategory,
    UnitOfTime,
)
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import KonnectedEntity
from .events import DeviceEvent, EventKind, IdentityEvent, MeasurementEvent
from .runtime import EntryRuntime, get_runtime


@dataclass(frozen=True, kw_only=True)
class KonnectedSensorDescription(SensorEntityDescription):
    """Sensor fed by one measurement or identity event kind."""

    kind: EventKind


SENSORS: Final = (
    KonnectedSensorDescription(
        key="openings",
        translation_key="openings",
        kind=EventKind.OPENINGS,
        state_class=SensorStateClass.TOTAL_INCREASING,
    ),
    KonnectedSensorDescription(
        key="wifi_signal_rssi",
        translation_key="wifi_signal_rssi",
        kind=EventKind.WIFI_STRENGTH,
        device_class=SensorDeviceClass.SIGNAL_STRENGTH,
        native_unit_of_measurement=SIGNAL_STRENGTH_DECIBELS_MILLIWATT,
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
        entity_registry_enabled_default=False,
    ),
    KonnectedSensorDescription(
        key="wifi_signal_percent",
        translation_key="wifi_signal_percent",
        kind=EventKind.WIFI_PERCENTAGE,
        native_unit_of_measurement=PERCENTAGE,
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
    KonnectedSensorDescription(
        key="uptime",
        translation_key="uptime",
        kind=EventKind.UPTIME,
        device_class=SensorDeviceClass.DURATION,
        native_unit_of_measurement=UnitOfTime.SECONDS,
        state_class=SensorStateClass.TOTAL_INCREASING,
        entity_category=EntityCategory.DIAGNOSTIC,
        entity_registry_enabled_default=False,
    ),
    KonnectedSensorDescription(
        key="ip_address",
        translation_key="ip_address",
        kind=EventKind.IP_ADDRESS,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities(KonnectedSensor(runtime, desc) for desc in SENSORS)


class KonnectedSensor(KonnectedEntity, SensorEntity):
    entity_description: KonnectedSensorDescription

    def __init__(
        self, runtime: EntryRuntime, description: KonnectedSensorDescription
    ) -> None:
        super().__init__(runtime, description.key)
        self.entity_description = description
        self.event_kinds = frozenset({description.kind})
        self._attr_native_value = None

    def apply_event(self, event: DeviceEvent) -> None:
        if event.kind is not self.entity_description.kind:
            return
        if isinstance(event, MeasurementEvent):
            self._attr_native_value = event.value
        elif isinstance(event, IdentityEvent):
            self._attr_native_value = event.value


__all__ = ["KonnectedSensor", "SENSORS"]
