from __future__ import annotations

import json

import pytest

from custom_components.konnected_gdo.decoder import (
    decode_state_update,
    parse_state_message,
)
from custom_components.konnected_gdo.endpoints import Switch
from custom_components.konnected_gdo.errors import MalformedMessageError
from custom_components.konnected_gdo.events import (
    Alarm,
    AlarmEvent,
    DoorEvent,
    EventKind,
    IdentityEvent,
    MeasurementEvent,
    SwitchEvent,
)


def _msg(**payload) -> str:
    return json.dumps(payload)


def test_closed_door() -> None:
    event = decode_state_update(
        _msg(id="garage_door_cover", state="CLOSED", position=0, value=0)
    )
    assert event == DoorEvent(closed=True, position=0)


def test_fully_open_door() -> None:
    event = decode_state_update(_msg(id="garage_door_cover", state="OPEN", position=100))
    assert event == DoorEvent(closed=False, position=100)


def test_partially_open_door() -> None:
    event = decode_state_update(
        _msg(
            id="garage_door_cover",
            state="OPEN",
            position=0.42,
            current_operation="OPENING",
        )
    )
    assert isinstance(event, DoorEvent)
    assert event.closed is False
    assert event.position == pytest.approx(0.42)


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"id": "garage_light_light", "state": "ON"}, SwitchEvent(Switch.LIGHT, True)),
        ({"id": "garage_light_light", "state": "OFF"}, SwitchEvent(Switch.LIGHT, False)),
        ({"id": "lock_lock", "state": "LOCKED"}, SwitchEvent(Switch.REMOTE_LOCK, True)),
        (
            {"id": "lock_lock", "state": "UNLOCKED"},
            SwitchEvent(Switch.REMOTE_LOCK, False),
        ),
        (
            {"id": "learn_switch", "state": "ON", "value": True},
            SwitchEvent(Switch.LEARN, True),
        ),
        (
            {"id": "toggle_only_switch", "state": "OFF", "value": False},
            SwitchEvent(Switch.TOGGLE_ONLY, False),
        ),
    ],
)
def test_switches(payload: dict, expected: SwitchEvent) -> None:
    assert decode_state_update(json.dumps(payload)) == expected


@pytest.mark.parametrize(
    ("object_id", "alarm"),
    [
        ("motion_binary_sensor", Alarm.MOTION_DETECTED),
        ("synced_binary_sensor", Alarm.SYNCED),
        ("obstruction_binary_sensor", Alarm.OBSTRUCTION_DETECTED),
        ("motor_binary_sensor", Alarm.MOTOR),
        ("wall_button_binary_sensor", Alarm.WALL_BUTTON_PRESSED),
    ],
)
def test_alarms(object_id: str, alarm: Alarm) -> None:
    active = decode_state_update(_msg(id=object_id, state="ON", value=True))
    idle = decode_state_update(_msg(id=object_id, state="OFF", value=False))
    assert active == AlarmEvent(alarm, True)
    assert idle == AlarmEvent(alarm, False)


@pytest.mark.parametrize(
    ("object_id", "kind", "value"),
    [
        ("garage_openings_sensor", EventKind.OPENINGS, 1234),
        ("wifi_signal_rssi_sensor", EventKind.WIFI_STRENGTH, -61),
        ("wifi_signal_percent_sensor", EventKind.WIFI_PERCENTAGE, 78),
        ("uptime_sensor", EventKind.UPTIME, 3600),
    ],
)
def test_measurements(object_id: str, kind: EventKind, value: float) -> None:
    event = decode_state_update(_msg(id=object_id, state=str(value), value=value))
    assert event == MeasurementEvent(kind, float(value))


def test_measurement_without_value() -> None:
    event = decode_state_update(_msg(id="uptime_sensor", state="NA"))
    assert event == MeasurementEvent(EventKind.UPTIME, None)


def test_identity_attributes() -> None:
    assert decode_state_update(
        _msg(id="device_id_text_sensor", state="aabbccddeeff")
    ) == IdentityEvent(EventKind.DEVICE_ID, "aabbccddeeff")
    assert decode_state_update(
        _msg(id="ip_address_text_sensor", state="10.0.0.9", value="10.0.0.9")
    ) == IdentityEvent(EventKind.IP_ADDRESS, "10.0.0.9")
    assert decode_state_update(
        _msg(id="security__protocol_select", state="security+2.0", value="security+2.0")
    ) == IdentityEvent(EventKind.SECURITY_PROTOCOL, "security+2.0")


@pytest.mark.parametrize(
    "data",
    [
        "",
        None,
        "not json",
        "[1, 2, 3]",
        _msg(id="some_future_sensor", state="ON"),
        _msg(state="ON"),
        _msg(id="uptime_sensor", value="soon"),
    ],
)
def test_unusable_messages_are_dropped(data) -> None:
    assert decode_state_update(data) is None


def test_mapping_and_bytes_are_accepted() -> None:
    payload = {"id": "motor_binary_sensor", "state": "ON", "value": True}
    assert decode_state_update(payload) == AlarmEvent(Alarm.MOTOR, True)
    assert decode_state_update(json.dumps(payload).encode()) == AlarmEvent(
        Alarm.MOTOR, True
    )


def test_parse_state_message_rejects_non_objects() -> None:
    with pytest.raises(MalformedMessageError):
        parse_state_message("{")
    with pytest.raises(MalformedMessageError):
        parse_state_message('"text"')
    assert parse_state_message('{"id": "x"}') == {"id": "x"}
