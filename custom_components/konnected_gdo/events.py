"""Domain events emitted by the client and the registry that delivers them."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
import inspect
import logging
from typing import Any, TypeAlias

from .endpoints import Switch

_LOGGER = logging.getLogger(__name__)


class Alarm(StrEnum):
    """Boolean sensors; the value doubles as their event kind."""

    MOTOR = "alarm-motor"
    MOTION_DETECTED = "alarm-motion_detected"
    SYNCED = "alarm-synced"
    OBSTRUCTION_DETECTED = "alarm-obstruction_detected"
    WALL_BUTTON_PRESSED = "alarm-wall_button"


class EventKind(StrEnum):
    """Every kind of event a subscriber can register for."""

    DOOR = "door"

    SWITCH_LIGHT = Switch.LIGHT.value
    SWITCH_REMOTE_LOCK = Switch.REMOTE_LOCK.value
    SWITCH_TOGGLE_ONLY = Switch.TOGGLE_ONLY.value
    SWITCH_LEARN = Switch.LEARN.value

    ALARM_MOTOR = Alarm.MOTOR.value
    ALARM_MOTION_DETECTED = Alarm.MOTION_DETECTED.value
    ALARM_SYNCED = Alarm.SYNCED.value
    ALARM_OBSTRUCTION_DETECTED = Alarm.OBSTRUCTION_DETECTED.value
    ALARM_WALL_BUTTON_PRESSED = Alarm.WALL_BUTTON_PRESSED.value

    OPENINGS = "openings"
    WIFI_STRENGTH = "wifi_strength"
    WIFI_PERCENTAGE = "wifi_percentage"
    UPTIME = "uptime"

    DEVICE_ID = "device_id"
    IP_ADDRESS = "ip_address"
    SECURITY_PROTOCOL = "security_protocol"

    LOG = "log"
    ERROR = "error"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


MEASUREMENT_KINDS = frozenset(
    {
        EventKind.OPENINGS,
        EventKind.WIFI_STRENGTH,
        EventKind.WIFI_PERCENTAGE,
        EventKind.UPTIME,
    }
)
IDENTITY_KINDS = frozenset(
    {EventKind.DEVICE_ID, EventKind.IP_ADDRESS, EventKind.SECURITY_PROTOCOL}
)


@dataclass(frozen=True, slots=True)
class DoorEvent:
    """Garage door state and position."""

    closed: bool
    position: float

    @property
    def kind(self) -> EventKind:
        return EventKind.DOOR


@dataclass(frozen=True, slots=True)
class SwitchEvent:
    """State of a light, lock or switch."""

    switch: Switch
    is_on: bool

    @property
    def kind(self) -> EventKind:
        return EventKind(self.switch.value)


@dataclass(frozen=True, slots=True)
class AlarmEvent:
    """State of a boolean sensor."""

    alarm: Alarm
    active: bool

    @property
    def kind(self) -> EventKind:
        return EventKind(self.alarm.value)


@dataclass(frozen=True, slots=True)
class MeasurementEvent:
    """Numeric reading; ``value`` is None when the device reports NA."""

    measurement: EventKind
    value: float | None

    def __post_init__(self) -> None:
        if self.measurement not in MEASUREMENT_KINDS:
            raise ValueError(f"{self.measurement} is not a measurement kind")

    @property
    def kind(self) -> EventKind:
        return self.measurement


@dataclass(frozen=True, slots=True)
class IdentityEvent:
    """Textual device attribute (id, IP address, selected protocol)."""

    attribute: EventKind
    value: str

    def __post_init__(self) -> None:
        if self.attribute not in IDENTITY_KINDS:
            raise ValueError(f"{self.attribute} is not an identity kind")

    @property
    def kind(self) -> EventKind:
        return self.attribute


@dataclass(frozen=True, slots=True)
class LogEvent:
    """Informational message, e.g. a connect retry."""

    message: str
    attempt: int | None = None
    ceiling: int | None = None

    @property
    def kind(self) -> EventKind:
        return EventKind.LOG


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Error that must not interrupt the stream."""

    error: Exception

    @property
    def kind(self) -> EventKind:
        return EventKind.ERROR


@dataclass(frozen=True, slots=True)
class ConnectedEvent:
    """The stream handle (re)opened."""

    @property
    def kind(self) -> EventKind:
        return EventKind.CONNECTED


@dataclass(frozen=True, slots=True)
class DisconnectedEvent:
    """The stream handle was closed by ``disconnect``."""

    @property
    def kind(self) -> EventKind:
        return EventKind.DISCONNECTED


DeviceEvent: TypeAlias = (
    DoorEvent
    | SwitchEvent
    | AlarmEvent
    | MeasurementEvent
    | IdentityEvent
    | LogEvent
    | ErrorEvent
    | ConnectedEvent
    | DisconnectedEvent
)

EventCallback: TypeAlias = Callable[[Any], Any]


class EventBus:
    """Ordered per-kind subscriber lists with isolated delivery."""

    def __init__(self) -> None:
        self._subscribers: dict[EventKind, list[EventCallback]] = {}
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, kind: EventKind | str, callback: EventCallback) -> Callable[[], None]:
        """Register ``callback`` for ``kind`` and return an unsubscribe callable."""

        event_kind = EventKind(kind)
        self._subscribers.setdefault(event_kind, []).append(callback)

        def _unsubscribe() -> None:
            callbacks = self._subscribers.get(event_kind)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def subscriber_count(self, kind: EventKind | str) -> int:
        """Return the number of subscribers for ``kind``."""

        return len(self._subscribers.get(EventKind(kind), ()))

    def publish(self, event: DeviceEvent) -> None:
        """Deliver ``event`` to every subscriber of its kind."""

        for callback in list(self._subscribers.get(event.kind, ())):
            try:
                result = callback(event)
            except Exception:
                _LOGGER.exception(
                    "Subscriber %r failed handling %s event", callback, event.kind
                )
                continue
            if inspect.isawaitable(result):
                self._schedule(result, event.kind)

    def _schedule(self, awaitable: Any, kind: EventKind) -> None:
        """Run a coroutine subscriber in the background and log its failure."""

        try:
            loop = asyncio.get_running_loop()
            task = asyncio.ensure_future(awaitable, loop=loop)
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            _LOGGER.error(
                "No running event loop for async subscriber of %s event", kind
            )
            return

        self._tasks.add(task)

        def _done(done: asyncio.Task) -> None:
            self._tasks.discard(done)
            if done.cancelled():
                return
            exc = done.exception()
            if exc is not None:
                _LOGGER.error(
                    "Async subscriber failed handling %s event",
                    kind,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(_done)


__all__ = [
    "Alarm",
    "AlarmEvent",
    "ConnectedEvent",
    "DeviceEvent",
    "DisconnectedEvent",
    "DoorEvent",
    "ErrorEvent",
    "EventBus",
    "EventKind",
    "IdentityEvent",
    "LogEvent",
    "MeasurementEvent",
    "SwitchEvent",
]
