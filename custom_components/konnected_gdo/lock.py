"""Remote lock for the Konnected GDO blaQ."""

from __future__ import annotations

from typing import Any

from homeassistant.components.lock import LockEntity
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
    async_add_entities([RemoteLock(runtime)])


class RemoteLock(KonnectedEntity, LockEntity):
    """Locks out wireless remotes while engaged."""

    event_kinds = frozenset({EventKind.SWITCH_REMOTE_LOCK})

    def __init__(self, runtime: EntryRuntime) -> None:
        super().__init__(runtime, "remote_lock")
        self._attr_is_locked = None

    def apply_event(self, event: DeviceEvent) -> None:
        if isinstance(event, SwitchEvent) and event.switch is Switch.REMOTE_LOCK:
            self._attr_is_locked = event.is_on

    async def async_lock(self, **kwargs: Any) -> None:
        await self._async_command(self.api.lock_remote)

    async def async_unlock(self, **kwargs: Any) -> None:
        await self._async_command(self.api.unlock_remote)


__all__ = ["RemoteLock"]
