"""Garage door cover for the Konnected GDO blaQ."""

from __future__ import annotations

from typing import Any

from homeassistant.components.cover import (
    ATTR_POSITION,
    CoverDeviceClass,
    CoverEntity,
    CoverEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import KonnectedEntity
from .events import DeviceEvent, DoorEvent, EventKind
from .runtime import EntryRuntime, get_runtime


def fraction_to_percent(position: float | None) -> int | None:
    """Convert the device 0-1 position to Home Assistant's 0-100."""

    if position is None:
        return None
    return max(0, min(100, round(position * 100)))


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Create the garage door cover."""

    runtime = get_runtime(hass, entry.entry_id)
    async_add_entities([GarageDoorCover(runtime)])


class GarageDoorCover(KonnectedEntity, CoverEntity):
    """The opener's door."""

    _attr_name = None
    _attr_device_class = CoverDeviceClass.GARAGE
    _attr_supported_features = (
        CoverEntityFeature.OPEN
        | CoverEntityFeature.CLOSE
        | CoverEntityFeature.STOP
        | CoverEntityFeature.SET_POSITION
    )
    event_kinds = frozenset({EventKind.DOOR})

    def __init__(self, runtime: EntryRuntime) -> None:
        super().__init__(runtime, "garage_door")
        self._closed: bool | None = None
        self._position: float | None = None
        self._previous: float | None = None

    def apply_event(self, event: DeviceEvent) -> None:
        if not isinstance(event, DoorEvent):
            return
        self._previous = self._position
        self._closed = event.closed
        self._position = event.position

    @property
    def is_closed(self) -> bool | None:
        return self._closed

    @property
    def current_cover_position(self) -> int | None:
        return fraction_to_percent(self._position)

    @property
    def is_opening(self) -> bool:
        if self._previous is None or self._position is None:
            return False
        return 0 < self._position < 1 and self._position > self._previous

    @property
    def is_closing(self) -> bool:
        if self._previous is None or self._position is None:
            return False
        return 0 < self._position < 1 and self._position < self._previous

    async def async_open_cover(self, **kwargs: Any) -> None:
        await self._async_command(self.api.open_garage_door)

    async def async_close_cover(self, **kwargs: Any) -> None:
        await self._async_command(self.api.close_garage_door)

    async def async_stop_cover(self, **kwargs: Any) -> None:
        await self._async_command(self.api.stop_garage_door)

    async def async_set_cover_position(self, **kwargs: Any) -> None:
        position = kwargs[ATTR_POSITION] / 100
        await self._async_command(self.api.set_garage_door_position, position)


__all__ = ["GarageDoorCover", "fraction_to_percent"]
