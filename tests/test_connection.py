from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from conftest import FakeSession, StreamRecorder
from custom_components.konnected_gdo.connection import ConnectionManager, ConnectionState
from custom_components.konnected_gdo.errors import (
    ConnectionClosedError,
    ConnectionFailedError,
    StreamError,
    UnauthorizedError,
)
from custom_components.konnected_gdo.event_stream import CONNECTING, ServerSentEvent
from custom_components.konnected_gdo.events import (
    AlarmEvent,
    Alarm,
    ConnectedEvent,
    DisconnectedEvent,
    ErrorEvent,
    EventBus,
    EventKind,
    LogEvent,
)
from custom_components.konnected_gdo.models import ConnectionConfig


def _manager(
    streams: StreamRecorder, config: ConnectionConfig | None = None
) -> tuple[ConnectionManager, EventBus, dict[EventKind, list[Any]]]:
    bus = EventBus()
    received: dict[EventKind, list[Any]] = {}
    for kind in EventKind:
        bus.subscribe(kind, lambda event: received.setdefault(event.kind, []).append(event))
    manager = ConnectionManager(
        FakeSession(),
        config or ConnectionConfig(address="10.0.0.2"),
        bus,
        stream_factory=streams,
        reconnect_delay=0,
    )
    return manager, bus, received


async def _begin(manager: ConnectionManager, **kwargs: Any) -> asyncio.Task:
    task = asyncio.create_task(manager.connect(**kwargs))
    await asyncio.sleep(0)
    return task


def test_connect_resolves_on_open(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(
            streams, ConnectionConfig(address="10.0.0.2", username="u", password="p")
        )
        task = await _begin(manager)
        stream = streams.last
        assert stream.started
        assert stream.url == "http://10.0.0.2:80/events"
        assert stream.headers_factory()["Authorization"].startswith("Basic ")
        assert manager.state is ConnectionState.OPENING

        stream.emit("connecting")
        stream.emit("open")
        await task

        assert manager.state is ConnectionState.OPEN
        assert manager.is_connected
        assert stream.listener_count("connecting") == 0
        assert stream.listener_count("open") == 1
        assert stream.listener_count("state") == 1
        assert received[EventKind.CONNECTED] == [ConnectedEvent()]

    asyncio.run(_run())


def test_retries_until_ceiling_then_fails(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager, max_retries=2)
        stream = streams.last

        stream.emit("error", StreamError("refused"))
        stream.emit("error", StreamError("refused"))
        assert not task.done()
        assert manager.state is ConnectionState.RETRYING

        stream.emit("error", StreamError("still refused"))
        with pytest.raises(ConnectionFailedError, match="still refused"):
            await task

        logs = received[EventKind.LOG]
        assert [log.message for log in logs] == [
            "Failed to connect to device. Retrying...1 of 2",
            "Failed to connect to device. Retrying...2 of 2",
        ]
        assert logs[0] == LogEvent(logs[0].message, attempt=1, ceiling=2)
        assert stream.closed
        assert manager.state is ConnectionState.FAILED

    asyncio.run(_run())


def test_zero_retries_fails_on_first_error(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager, max_retries=0)
        streams.last.emit("error", StreamError("refused"))
        with pytest.raises(ConnectionFailedError):
            await task
        assert EventKind.LOG not in received

    asyncio.run(_run())


def test_default_ceiling_is_five(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager)
        for _ in range(5):
            streams.last.emit("error", StreamError("refused"))
        assert not task.done()
        streams.last.emit("error", StreamError("refused"))
        with pytest.raises(ConnectionFailedError):
            await task
        assert len(received[EventKind.LOG]) == 5

    asyncio.run(_run())


def test_unauthorized_fails_immediately(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager, max_retries=5)
        stream = streams.last
        stream.emit("error", StreamError("Non-200 status code (401)", status=401))

        with pytest.raises(UnauthorizedError):
            await task
        assert stream.closed
        assert EventKind.LOG not in received
        assert not manager.is_connected

    asyncio.run(_run())


def test_retries_reset_per_connect(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        first = await _begin(manager, max_retries=1)
        streams.last.emit("error", StreamError("x"))
        streams.last.emit("error", StreamError("x"))
        with pytest.raises(ConnectionFailedError):
            await first

        second = await _begin(manager, max_retries=1)
        streams.last.emit("error", StreamError("x"))
        assert not second.done()
        streams.last.emit("open")
        await second
        assert [log.attempt for log in received[EventKind.LOG]] == [1, 1]

    asyncio.run(_run())


def test_negative_ceiling_is_rejected(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, _received = _manager(streams)
        with pytest.raises(ValueError):
            await manager.connect(max_retries=-1)
        assert streams.streams == []

    asyncio.run(_run())


def test_state_messages_are_published(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager)
        stream = streams.last
        stream.emit("open")
        await task

        payload = json.dumps({"id": "motion_binary_sensor", "state": "ON", "value": True})
        stream.emit("state", ServerSentEvent(event="state", data=payload))
        stream.emit("state", ServerSentEvent(event="state", data="garbage"))
        stream.emit("state", ServerSentEvent(event="state", data='{"id": "unknown"}'))

        assert received[EventKind.ALARM_MOTION_DETECTED] == [
            AlarmEvent(Alarm.MOTION_DETECTED, True)
        ]
        assert EventKind.ERROR not in received

    asyncio.run(_run())


def test_errors_after_open_are_published_not_retried(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager, max_retries=0)
        stream = streams.last
        stream.emit("open")
        await task

        stream.emit("error", StreamError("dropped"))
        stream.emit("error", None)

        errors = received[EventKind.ERROR]
        assert [type(event) for event in errors] == [ErrorEvent, ErrorEvent]
        assert str(errors[0].error) == "dropped"
        assert str(errors[1].error) == "An unknown error occurred."
        assert EventKind.LOG not in received
        assert len(streams.streams) == 1
        assert not stream.closed

    asyncio.run(_run())


def test_reopen_after_error_publishes_connected(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager, max_retries=0)
        stream = streams.last
        stream.emit("open")
        await task

        stream.ready_state = CONNECTING
        stream.emit("error", StreamError("dropped"))
        assert not manager.is_connected

        stream.emit("open")
        assert manager.is_connected
        assert manager.state is ConnectionState.OPEN
        assert received[EventKind.CONNECTED] == [ConnectedEvent(), ConnectedEvent()]
        assert len(received[EventKind.ERROR]) == 1
        assert EventKind.LOG not in received
        assert len(streams.streams) == 1

    asyncio.run(_run())


def test_disconnect_is_idempotent(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        manager.disconnect()
        assert EventKind.DISCONNECTED not in received

        task = await _begin(manager)
        streams.last.emit("open")
        await task

        manager.disconnect()
        manager.disconnect()
        assert streams.last.closed
        assert received[EventKind.DISCONNECTED] == [DisconnectedEvent()]
        assert manager.state is ConnectionState.CLOSED
        assert not manager.is_connected

    asyncio.run(_run())


def test_reconnect_replaces_stream(streams: StreamRecorder) -> None:
    async def _run() -> None:
        config = ConnectionConfig(address="10.0.0.2")
        manager, _bus, _received = _manager(streams, config)
        first = await _begin(manager)
        streams.last.emit("open")
        await first
        old = streams.last

        config.update(address="10.0.0.3", username="u", password="p")
        second = await _begin(manager)
        assert old.closed
        new = streams.last
        assert new is not old
        assert new.url == "http://10.0.0.3:80/events"

        old.emit("state", ServerSentEvent(event="state", data="{}"))
        new.emit("open")
        await second
        assert manager.stream is new

    asyncio.run(_run())


def test_superseded_connect_is_rejected(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, _received = _manager(streams)
        first = await _begin(manager)
        second = await _begin(manager)

        with pytest.raises(ConnectionClosedError):
            await first
        streams.last.emit("open")
        await second
        assert manager.is_connected

    asyncio.run(_run())


def test_disconnect_during_opening_rejects_connect(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, received = _manager(streams)
        task = await _begin(manager)
        manager.disconnect()
        with pytest.raises(ConnectionClosedError):
            await task
        assert received[EventKind.DISCONNECTED] == [DisconnectedEvent()]

    asyncio.run(_run())


def test_cancelled_connect_closes_stream(streams: StreamRecorder) -> None:
    async def _run() -> None:
        manager, _bus, _received = _manager(streams)
        task = await _begin(manager)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert streams.last.closed
        assert manager.stream is None

    asyncio.run(_run())
