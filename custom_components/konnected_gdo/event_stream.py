"""Minimal ``text/event-stream`` reader for the device ``/events`` endpoint.

Behaviour follows the browser EventSource closely enough for the firmware:
  - GET with ``Accept: text/event-stream`` and caller-supplied headers
  - ``connecting`` before every attempt, ``open`` once a 200 stream arrives
  - named events (``state``, ``log``, ``ping``) dispatched per blank-line frame
  - ``error`` on every failure, then reconnect after the retry delay
  - HTTP 401 is terminal: the stream closes instead of reconnecting
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
import logging
from typing import Any

import aiohttp

from .const import DEFAULT_RECONNECT_DELAY, STREAM_CONNECT_TIMEOUT
from .errors import StreamError
from .sanitize import redact_text

_LOGGER = logging.getLogger(__name__)

CONNECTING = 0
OPEN = 1
CLOSED = 2

STREAM_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_connect=STREAM_CONNECT_TIMEOUT)

Listener = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    """One dispatched frame."""

    event: str
    data: str
    id: str | None = None


class FrameParser:
    """Incremental line parser producing :class:`ServerSentEvent` frames."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._id: str | None = None
        self.last_event_id = ""
        self.retry_ms: int | None = None

    def feed_line(self, raw: bytes | str) -> ServerSentEvent | None:
        """Consume one line; return a frame when a blank line completes it."""

        line = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
        line = line.rstrip("\r\n")

        if not line:
            return self._flush()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._id = value
                self.last_event_id = value
        elif field == "retry":
            if value.isdigit():
                self.retry_ms = int(value)
        return None

    def _flush(self) -> ServerSentEvent | None:
        event = self._event or "message"
        data = self._data
        frame_id = self._id
        self._event = ""
        self._data = []
        self._id = None
        if not data:
            return None
        return ServerSentEvent(event=event, data="\n".join(data), id=frame_id)


class EventStream:
    """Long-lived event stream with EventSource-style listeners."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        *,
        headers_factory: Callable[[], Mapping[str, str]] | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        self._session = session
        self.url = url
        self._headers_factory = headers_factory
        self._reconnect_delay = reconnect_delay
        self._listeners: dict[str, list[Listener]] = {}
        self._task: asyncio.Task | None = None
        self._stopped = False
        self.ready_state = CONNECTING
        self.last_event_id = ""

    # ----------------- Listeners -----------------

    def add_listener(self, event: str, listener: Listener) -> None:
        """Register ``listener`` for ``event``."""

        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        """Remove ``listener`` from ``event`` if registered."""

        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def _emit(self, event: str, arg: Any) -> None:
        if self._stopped:
            return
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(arg)
            except Exception:
                _LOGGER.exception("Event stream listener for %s failed", event)

    # ----------------- Lifecycle -----------------

    def start(self) -> asyncio.Task:
        """Start the reader task; calling it again returns the same task."""

        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._runner(), name=f"event-stream {redact_text(self.url)}"
            )
        return self._task

    def close(self) -> None:
        """Stop reading and reconnecting. Safe to call repeatedly."""

        if self._stopped:
            return
        self._stopped = True
        self.ready_state = CLOSED
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    @property
    def closed(self) -> bool:
        """Return True once ``close`` was called."""

        return self._stopped

    async def wait_closed(self) -> None:
        """Wait for the reader task to finish."""

        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # ----------------- Core loop -----------------

    async def _runner(self) -> None:
        while not self._stopped:
            self.ready_state = CONNECTING
            self._emit("connecting", None)
            try:
                await self._consume()
            except asyncio.CancelledError:
                raise
            except StreamError as err:
                error = err
            except (aiohttp.ClientError, asyncio.TimeoutError) as err:
                error = StreamError(str(err) or type(err).__name__)
            except Exception as err:
                _LOGGER.debug("Event stream read failed", exc_info=True)
                error = StreamError(str(err) or type(err).__name__)
            else:
                error = StreamError("Event stream ended")

            if self._stopped:
                break

            if error.status == 401:
                _LOGGER.info("Event stream %s rejected credentials", redact_text(self.url))
                self.ready_state = CLOSED
                self._emit("error", error)
                return

            _LOGGER.debug(
                "Event stream %s error (%s); reconnecting in %.1f s",
                redact_text(self.url),
                redact_text(error.message),
                self._reconnect_delay,
            )
            self.ready_state = CONNECTING
            self._emit("error", error)
            if self._stopped:
                break
            await asyncio.sleep(self._reconnect_delay)

    async def _consume(self) -> None:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self._headers_factory is not None:
            headers.update(self._headers_factory())
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id

        _LOGGER.debug("Event stream GET %s", redact_text(self.url))
        async with self._session.get(
            self.url, headers=headers, timeout=STREAM_TIMEOUT
        ) as resp:
            if resp.status != 200:
                raise StreamError(
                    f"Non-200 status code ({resp.status})", status=resp.status
                )
            ctype = resp.headers.get("Content-Type", "")
            if not ctype.startswith("text/event-stream"):
                raise StreamError(
                    f"Invalid content type {ctype!r}", status=resp.status
                )

            self.ready_state = OPEN
            self._emit("open", None)

            parser = FrameParser()
            async for raw_line in resp.content:
                frame = parser.feed_line(raw_line)
                if parser.retry_ms is not None:
                    self._reconnect_delay = parser.retry_ms / 1000
                    parser.retry_ms = None
                if parser.last_event_id:
                    self.last_event_id = parser.last_event_id
                if frame is not None:
                    self._emit(frame.event, frame)
                if self._stopped:
                    return


__all__ = [
    "CLOSED",
    "CONNECTING",
    "EventStream",
    "FrameParser",
    "OPEN",
    "ServerSentEvent",
]
