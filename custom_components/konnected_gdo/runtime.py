"""Runtime container for Konnected GDO config entries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .api import KonnectedApi
from .const import DOMAIN
from .events import DeviceEvent, EventKind


@dataclass(slots=True)
class EntryRuntime:
    """Per-entry state shared between setup and the platforms."""

    api: KonnectedApi
    config_entry: ConfigEntry
    device_id: str
    max_retries: int
    last_events: dict[EventKind, DeviceEvent] = field(default_factory=dict)
    unsubscribers: list[Callable[[], None]] = field(default_factory=list)
    last_error: str | None = None

    def remember(self, event: DeviceEvent) -> None:
        """Keep the latest event per kind so late entities can seed state."""

        self.last_events[event.kind] = event

    def latest(self, kind: EventKind) -> DeviceEvent | None:
        return self.last_events.get(kind)

    def release(self) -> None:
        """Drop every bus subscription registered for the entry."""

        while self.unsubscribers:
            unsubscribe = self.unsubscribers.pop()
            unsubscribe()


def get_runtime(hass: HomeAssistant, entry_id: str) -> EntryRuntime:
    """Return the runtime stored for ``entry_id``.

    Raises ``LookupError`` when the entry is not loaded.
    """

    runtime: Any = hass.data.get(DOMAIN, {}).get(entry_id)
    if not isinstance(runtime, EntryRuntime):
        raise LookupError(f"{DOMAIN} entry {entry_id} is not loaded")
    return runtime


__all__ = ["EntryRuntime", "get_runtime"]
