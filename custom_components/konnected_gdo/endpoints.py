"""Fixed REST endpoint catalog of the GDO blaQ firmware."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Final, NamedTuple

from .models import (
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


class Endpoint(StrEnum):
    """HTTP paths relative to ``http://{address}:{port}``."""

    GARAGE_DOOR = "/cover/garage_door"
    GARAGE_DOOR_OPEN = "/cover/garage_door/open"
    GARAGE_DOOR_CLOSE = "/cover/garage_door/close"
    GARAGE_DOOR_STOP = "/cover/garage_door/stop"
    GARAGE_DOOR_TOGGLE = "/cover/garage_door/toggle"
    GARAGE_DOOR_SET = "/cover/garage_door/set"

    TOGGLE_ONLY = "/switch/toggle_only"
    TOGGLE_ONLY_ON = "/switch/toggle_only/turn_on"
    TOGGLE_ONLY_OFF = "/switch/toggle_only/turn_off"

    GARAGE_LIGHT = "/light/garage_light"
    GARAGE_LIGHT_TURN_ON = "/light/garage_light/turn_on"
    GARAGE_LIGHT_TURN_OFF = "/light/garage_light/turn_off"
    GARAGE_LIGHT_TOGGLE = "/light/garage_light/toggle"

    LOCK = "/lock/lock"
    LOCK_LOCK = "/lock/lock/lock"
    LOCK_UNLOCK = "/lock/lock/unlock"

    MOTION_SENSOR = "/binary_sensor/motion"
    ROLLING_CODE_SYNCED = "/binary_sensor/synced"
    OBSTRUCTION = "/binary_sensor/obstruction"
    MOTOR_RUNNING = "/binary_sensor/motor"
    WALL_BUTTON_PRESSED = "/binary_sensor/wall_button"
    GARAGE_OPENINGS = "/sensor/garage_openings"

    SECURITY_PROTOCOL = "/select/security__protocol"
    SECURITY_PROTOCOL_SET = "/select/security__protocol/set"

    LEARN = "/switch/learn"
    LEARN_ON = "/switch/learn/turn_on"
    LEARN_OFF = "/switch/learn/turn_off"
    LEARN_TOGGLE = "/switch/learn/toggle"

    WIFI_SIGNAL_RSSI = "/sensor/wifi_signal_rssi"
    WIFI_SIGNAL_PERCENT = "/sensor/wifi_signal__"

    UPTIME = "/sensor/uptime"
    DEVICE_ID = "/text_sensor/device_id"
    IP_ADDRESS = "/text_sensor/ip_address"

    PRE_CLOSE_WARNING_PRESS = "/button/pre-close_warning/press"
    PLAY_SOUND_PRESS = "/button/play_sound/press"
    RESTART_PRESS = "/button/restart/press"
    FACTORY_RESET_PRESS = "/button/factory_reset/press"
    RE_SYNC_PRESS = "/button/re-sync/press"
    RESET_DOOR_TIMINGS_PRESS = "/button/reset_door_timings/press"


# Status endpoints and the payload model each one returns
GET_PAYLOAD_MODELS: Final[Mapping[Endpoint, type[BasePayload]]] = {
    Endpoint.GARAGE_DOOR: GarageDoorStatePayload,
    Endpoint.GARAGE_LIGHT: GarageLightStatePayload,
    Endpoint.LOCK: LockStatePayload,
    Endpoint.MOTION_SENSOR: OnOffStatePayload,
    Endpoint.ROLLING_CODE_SYNCED: OnOffStatePayload,
    Endpoint.OBSTRUCTION: OnOffStatePayload,
    Endpoint.MOTOR_RUNNING: OnOffStatePayload,
    Endpoint.WALL_BUTTON_PRESSED: OnOffStatePayload,
    Endpoint.GARAGE_OPENINGS: GarageOpeningsPayload,
    Endpoint.SECURITY_PROTOCOL: SecurityProtocolPayload,
    Endpoint.LEARN: OnOffStatePayload,
    Endpoint.WIFI_SIGNAL_RSSI: NumericSensorPayload,
    Endpoint.WIFI_SIGNAL_PERCENT: NumericSensorPayload,
    Endpoint.UPTIME: NumericSensorPayload,
    Endpoint.DEVICE_ID: TextSensorPayload,
    Endpoint.IP_ADDRESS: TextSensorPayload,
    Endpoint.TOGGLE_ONLY: OnOffStatePayload,
}

# Action endpoints and the query parameters each one accepts
POST_PARAMETERS: Final[Mapping[Endpoint, tuple[str, ...]]] = {
    Endpoint.GARAGE_DOOR_OPEN: (),
    Endpoint.GARAGE_DOOR_CLOSE: (),
    Endpoint.GARAGE_DOOR_STOP: (),
    Endpoint.GARAGE_DOOR_TOGGLE: (),
    Endpoint.GARAGE_DOOR_SET: ("position",),
    Endpoint.TOGGLE_ONLY_ON: (),
    Endpoint.TOGGLE_ONLY_OFF: (),
    Endpoint.GARAGE_LIGHT_TURN_ON: (),
    Endpoint.GARAGE_LIGHT_TURN_OFF: (),
    Endpoint.GARAGE_LIGHT_TOGGLE: (),
    Endpoint.LOCK_LOCK: (),
    Endpoint.LOCK_UNLOCK: (),
    Endpoint.SECURITY_PROTOCOL_SET: ("option",),
    Endpoint.LEARN_ON: (),
    Endpoint.LEARN_OFF: (),
    Endpoint.LEARN_TOGGLE: (),
    Endpoint.PRE_CLOSE_WARNING_PRESS: (),
    Endpoint.PLAY_SOUND_PRESS: (),
    Endpoint.RESTART_PRESS: (),
    Endpoint.FACTORY_RESET_PRESS: (),
    Endpoint.RE_SYNC_PRESS: (),
    Endpoint.RESET_DOOR_TIMINGS_PRESS: (),
}


class Switch(StrEnum):
    """Two-state controls; the value doubles as their event kind."""

    REMOTE_LOCK = "switch-remote_lock"
    LIGHT = "switch-light"
    TOGGLE_ONLY = "switch-toggle_only"
    LEARN = "switch-learn"


class Button(StrEnum):
    """Momentary actions exposed by the firmware."""

    PLAY_SOUND = "button-play_sound"
    PRE_CLOSE_WARNING = "button-pre_close_warning"
    RE_SYNC = "button-re_sync"
    RESET_DOOR_TIMINGS = "button-reset_door_timings"
    RESTART = "button-restart"
    FACTORY_RESET = "button-factory_reset"


class SwitchEndpoints(NamedTuple):
    """Action endpoints selected by the desired switch state."""

    on: Endpoint
    off: Endpoint


SWITCH_ENDPOINTS: Final[Mapping[str, SwitchEndpoints]] = {
    Switch.LIGHT: SwitchEndpoints(
        Endpoint.GARAGE_LIGHT_TURN_ON, Endpoint.GARAGE_LIGHT_TURN_OFF
    ),
    Switch.REMOTE_LOCK: SwitchEndpoints(Endpoint.LOCK_LOCK, Endpoint.LOCK_UNLOCK),
    Switch.TOGGLE_ONLY: SwitchEndpoints(
        Endpoint.TOGGLE_ONLY_ON, Endpoint.TOGGLE_ONLY_OFF
    ),
    Switch.LEARN: SwitchEndpoints(Endpoint.LEARN_ON, Endpoint.LEARN_OFF),
}

BUTTON_ENDPOINTS: Final[Mapping[str, Endpoint]] = {
    Button.PLAY_SOUND: Endpoint.PLAY_SOUND_PRESS,
    Button.PRE_CLOSE_WARNING: Endpoint.PRE_CLOSE_WARNING_PRESS,
    Button.RE_SYNC: Endpoint.RE_SYNC_PRESS,
    Button.RESET_DOOR_TIMINGS: Endpoint.RESET_DOOR_TIMINGS_PRESS,
    Button.RESTART: Endpoint.RESTART_PRESS,
    Button.FACTORY_RESET: Endpoint.FACTORY_RESET_PRESS,
}


__all__ = [
    "BUTTON_ENDPOINTS",
    "Button",
    "Endpoint",
    "GET_PAYLOAD_MODELS",
    "POST_PARAMETERS",
    "SWITCH_ENDPOINTS",
    "Switch",
    "SwitchEndpoints",
]
