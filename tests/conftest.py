# ruff: noqa: D100,D101,D102,D103,D105,D107,INP001
from __future__ import annotations

import asyncio
import copy
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from custom_components.konnected_gdo.api import KonnectedApi
from custom_components.konnected_gdo.event_stream import CLOSED, CONNECTING, OPEN
from custom_components.konnected_gdo.models import ConnectionConfig
from custom_components.konnected_gdo.runtime import EntryRuntime


class FakeContent:
    """Async iterator over byte lines; optionally blocks after the last one."""

    def __init__(self, lines: list[bytes], *, hold_open: bool = False) -> None:
        self._lines = list(lines)
        self._hold_open = hold_open

    def __aiter__(self) -> FakeContent:
        return self

    async def __anext__(self) -> bytes:
        if self._lines:
            await asyncio.sleep(0)
            return self._lines.pop(0)
        if self._hold_open:
            await asyncio.Event().wait()
        raise StopAsyncIteration


class MockResponse:
    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        *,
        headers: dict[str, str] | None = None,
        text_data: str = "",
        lines: list[bytes] | None = None,
        hold_open: bool = False,
        reason: str | None = None,
    ) -> None:
        self.status = status
        self._json = json_data
        self._text = text_data
        self.headers = headers or {}
        self.reason = reason
        self.content = FakeContent(lines or [], hold_open=hold_open)
        self.json_calls = 0

    async def __aenter__(self) -> MockResponse:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def text(self) -> str:
        return self._text

    async def json(self, content_type: str | None = None) -> Any:
        self.json_calls += 1
        if isinstance(self._json, Exception):
            raise self._json
        return self._json


def sse_response(*lines: str, hold_open: bool = True, status: int = 200) -> MockResponse:
    """Build an event-stream response from text lines."""

    return MockResponse(
        status,
        headers={"Content-Type": "text/event-stream"},
        lines=[f"{line}\n".encode() for line in lines],
        hold_open=hold_open,
    )


class FakeSession:
    def __init__(self) -> None:
        self._get_queue: list[Any] = []
        self._post_queue: list[Any] = []
        self.get_calls: list[tuple[str, dict[str, Any]]] = []
        self.post_calls: list[tuple[str, dict[str, Any]]] = []

    def queue_get(self, *responses: Any) -> None:
        self._get_queue.extend(responses)

    def queue_post(self, *responses: Any) -> None:
        self._post_queue.extend(responses)

    @staticmethod
    def _resolve(queue: list[Any], label: str) -> Any:
        if not queue:
            raise AssertionError(f"Unexpected {label} call with no queued response")
        result = queue.pop(0)
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url: str, **kwargs: Any) -> Any:
        self.get_calls.append((url, copy.deepcopy(kwargs)))
        return self._resolve(self._get_queue, "GET")

    def post(self, url: str, **kwargs: Any) -> Any:
        self.post_calls.append((url, copy.deepcopy(kwargs)))
        return self._resolve(self._post_queue, "POST")


class FakeStream:
    """Stand-in for ``EventStream`` driven directly by tests."""

    def __init__(
        self,
        session: Any,
        url: str,
        *,
        headers_factory: Callable[[], dict[str, str]] | None = None,
        reconnect_delay: float = 0,
    ) -> None:
        self.session = session
        self.url = url
        self.headers_factory = headers_factory
        self.reconnect_delay = reconnect_delay
        self.listeners: dict[str, list[Callable[[Any], Any]]] = {}
        self.ready_state = CONNECTING
        self.started = False
        self.closed = False

    def add_listener(self, event: str, listener: Callable[[Any], Any]) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Callable[[Any], Any]) -> None:
        listeners = self.listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self.listeners.get(event, []))

    def emit(self, event: str, arg: Any = None) -> None:
        if event == "open":
            self.ready_state = OPEN
        for listener in list(self.listeners.get(event, [])):
            listener(arg)

    def start(self) -> None:
        self.started = True

    def close(self) -> None:
        self.closed = True
        self.ready_state = CLOSED


class StreamRecorder:
    """Factory that records every stream it creates."""

    def __init__(self) -> None:
        self.streams: list[FakeStream] = []

    def __call__(self, session: Any, url: str, **kwargs: Any) -> FakeStream:
        stream = FakeStream(session, url, **kwargs)
        self.streams.append(stream)
        return stream

    @property
    def last(self) -> FakeStream:
        return self.streams[-1]


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def streams() -> StreamRecorder:
    return StreamRecorder()


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig(address="192.168.1.50", port=80)


def make_runtime(
    session: Any | None = None,
    *,
    device_id: str = "aabbccddeeff",
    stream_factory: Callable[..., Any] | None = None,
    entry_id: str = "entry-1",
) -> EntryRuntime:
    """Build a runtime around a fake session without Home Assistant."""

    api = KonnectedApi(
        session or FakeSession(),
        ConnectionConfig(address="192.168.1.50"),
        stream_factory=stream_factory or StreamRecorder(),
        reconnect_delay=0,
    )
    entry = SimpleNamespace(
        entry_id=entry_id,
        title="GDO blaQ",
        data={"host": "192.168.1.50", "port": 80, "device_id": device_id},
        options={},
        unique_id=device_id,
    )
    return EntryRuntime(api=api, config_entry=entry, device_id=device_id, max_retries=5)
