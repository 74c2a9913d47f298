"""Classify pushed state messages into typed domain events."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import json
import logging
from typing import Any, Final

from pydantic import ValidationError

from .endpoints import Switch
from .errors import MalformedMessageError
from .events import (
    Alarm,
    AlarmEvent,
    DeviceEvent,
    DoorEvent,
    EventKind,
    IdentityEvent,
    MeasurementEvent,
    SwitchEvent,
)
from .models import (
    GARAGE_DOOR_CLOSED,
    LOCK_LOCKED,
    STATE_ON,
    BasePayload,
    GarageDoorStatePayload,
    GarageLightStatePayload,
    GarageOpeningsPayload,
    LockStatePayload,
    NumericSensorPayload,
    OnOffStatePayload,
    SecurityProtocolPayload,
    TextSensorPayload,
)

_LOGGER = logging.getLogger(__name__)

# ESPHome object identifiers carried in the ``id`` field of state messages
GARAGE_DOOR_COVER: Final = "garage_door_cover"
GARAGE_LIGHT: Final = "garage_light_light"
REMOTE_LOCK: Final = "lock_lock"
MOTION_SENSOR: Final = "motion_binary_sensor"
SYNCED_SENSOR: Final = "synced_binary_sensor"
OBSTRUCTION_SENSOR: Final = "obstruction_binary_sensor"
MOTOR_SENSOR: Final = "motor_binary_sensor"
WALL_BUTTON_SENSOR: Final = "wall_button_binary_sensor"
GARAGE_OPENINGS_SENSOR: Final = "garage_openings_sensor"
SECURITY_PROTOCOL_SELECT: Final = "security__protocol_select"
LEARN_SWITCH: Final = "learn_switch"
WIFI_SIGNAL_STRENGTH: Final = "wifi_signal_rssi_sensor"
WIFI_SIGNAL_PERCENTAGE: Final = "wifi_signal_percent_sensor"
UPTIME_SENSOR: Final = "uptime_sensor"
DEVICE_ID_SENSOR: Final = "device_id_text_sensor"
IP_ADDRESS_SENSOR: Final = "ip_address_text_sensor"
TOGGLE_ONLY_SWITCH: Final = "toggle_only_switch"

Extractor = Callable[[Any], DeviceEvent | None]


def _door(payload: GarageDoorStatePayload) -> DeviceEvent:
    return DoorEvent(
        closed=payload.state == GARAGE_DOOR_CLOSED, position=payload.position
    )


def _switch_from_state(switch: Switch, on_state: str) -> Extractor:
    def _extract(payload: BasePayload) -> DeviceEvent:
        return SwitchEvent(switch=switch, is_on=payload.state == on_state)

    return _extract


def _switch_from_value(switch: Switch) -> Extractor:
    def _extract(payload: OnOffStatePayload) -> DeviceEvent:
        return SwitchEvent(switch=switch, is_on=payload.value)

    return _extract


def _alarm(alarm: Alarm) -> Extractor:
    def _extract(payload: OnOffStatePayload) -> DeviceEvent:
        return AlarmEvent(alarm=alarm, active=payload.value)

    return _extract


def _measurement(kind: EventKind) -> Extractor:
    def _extract(payload: NumericSensorPayload | GarageOpeningsPayload) -> DeviceEvent:
        return MeasurementEvent(measurement=kind, value=payload.value)

    return _extract


def _identity(kind: EventKind, *, field: str = "value") -> Extractor:
    def _extract(payload: BasePayload) -> DeviceEvent | None:
        value = getattr(payload, field, None)
        if value is None:
            return None
        return IdentityEvent(attribute=kind, value=str(value))

    return _extract


STATE_DECODERS: Final[Mapping[str, tuple[type[BasePayload], Extractor]]] = {
    GARAGE_DOOR_COVER: (GarageDoorStatePayload, _door),
    GARAGE_LIGHT: (GarageLightStatePayload, _switch_from_state(Switch.LIGHT, STATE_ON)),
    REMOTE_LOCK: (
        LockStatePayload,
        _switch_from_state(Switch.REMOTE_LOCK, LOCK_LOCKED),
    ),
    MOTION_SENSOR: (OnOffStatePayload, _alarm(Alarm.MOTION_DETECTED)),
    SYNCED_SENSOR: (OnOffStatePayload, _alarm(Alarm.SYNCED)),
    OBSTRUCTION_SENSOR: (OnOffStatePayload, _alarm(Alarm.OBSTRUCTION_DETECTED)),
    MOTOR_SENSOR: (OnOffStatePayload, _alarm(Alarm.MOTOR)),
    WALL_BUTTON_SENSOR: (OnOffStatePayload, _alarm(Alarm.WALL_BUTTON_PRESSED)),
    GARAGE_OPENINGS_SENSOR: (GarageOpeningsPayload, _measurement(EventKind.OPENINGS)),
    SECURITY_PROTOCOL_SELECT: (
        SecurityProtocolPayload,
        _identity(EventKind.SECURITY_PROTOCOL),
    ),
    LEARN_SWITCH: (OnOffStatePayload, _switch_from_value(Switch.LEARN)),
    WIFI_SIGNAL_STRENGTH: (NumericSensorPayload, _measurement(EventKind.WIFI_STRENGTH)),
    WIFI_SIGNAL_PERCENTAGE: (
        NumericSensorPayload,
        _measurement(EventKind.WIFI_PERCENTAGE),
    ),
    UPTIME_SENSOR: (NumericSensorPayload, _measurement(EventKind.UPTIME)),
    DEVICE_ID_SENSOR: (
        TextSensorPayload,
        _identity(EventKind.DEVICE_ID, field="state"),
    ),
    IP_ADDRESS_SENSOR: (TextSensorPayload, _identity(EventKind.IP_ADDRESS)),
    TOGGLE_ONLY_SWITCH: (OnOffStatePayload, _switch_from_value(Switch.TOGGLE_ONLY)),
}


def parse_state_message(data: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the JSON object carried by a state message.

    Raises ``MalformedMessageError`` when ``data`` is not a JSON object.
    """

    if isinstance(data, Mapping):
        return data
    if isinstance(data, bytes):
        data = data.decode("utf-8", "ignore")
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError) as err:
        raise MalformedMessageError(f"state message is not JSON: {err}") from err
    if not isinstance(parsed, Mapping):
        raise MalformedMessageError("state message is not a JSON object")
    return parsed


def decode_state_update(
    data: str | bytes | Mapping[str, Any] | None,
) -> DeviceEvent | None:
    """Decode one pushed state message into at most one domain event."""

    if not data:
        return None

    try:
        message = parse_state_message(data)
    except MalformedMessageError as err:
        _LOGGER.debug("Dropping state message: %s", err)
        return None

    object_id = message.get("id")
    entry = STATE_DECODERS.get(object_id) if isinstance(object_id, str) else None
    if entry is None:
        _LOGGER.debug("Ignoring state for unmodelled entity %r", object_id)
        return None

    model, extract = entry
    try:
        payload = model.model_validate(message)
    except ValidationError as err:
        _LOGGER.debug(
            "Dropping invalid %s payload: %s", object_id, err.error_count()
        )
        return None
    return extract(payload)


__all__ = [
    "GARAGE_DOOR_COVER",
    "STATE_DECODERS",
    "decode_state_update",
    "parse_state_message",
]
