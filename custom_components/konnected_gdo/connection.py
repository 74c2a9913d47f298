"""Lifecycle of the device event stream."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Any

import aiohttp

from .const import DEFAULT_MAX_RETRY_COUNT, DEFAULT_RECONNECT_DELAY, EVENTS_PATH, STATE_EVENT
from .decoder import decode_state_update
from .errors import (
    ConnectionClosedError,
    ConnectionFailedError,
    StreamError,
    UnauthorizedError,
)
from .event_stream import OPEN, EventStream, ServerSentEvent
from .events import ConnectedEvent, DisconnectedEvent, ErrorEvent, EventBus, LogEvent
from .models import ConnectionConfig
from .sanitize import redact_text

_LOGGER = logging.getLogger(__name__)

StreamFactory = Callable[..., EventStream]


class ConnectionState(StrEnum):
    """States of the connection manager."""

    IDLE = "idle"
    OPENING = "opening"
    RETRYING = "retrying"
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(slots=True)
class ConnectAttempt:
    """Retry bookkeeping owned by exactly one ``connect`` call."""

    ceiling: int
    future: asyncio.Future[None]
    count: int = 0
    last_error: StreamError | None = None
    handlers: dict[str, Callable[[Any], None]] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return self.future.done()

    def record_failure(self, error: StreamError) -> bool:
        """Count a transient failure; return False once the ceiling is spent."""

        self.last_error = error
        if self.count < self.ceiling:
            self.count += 1
            return True
        return False

    def succeed(self) -> None:
        if not self.future.done():
            self.future.set_result(None)

    def fail(self, error: Exception) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class ConnectionManager:
    """Open, authenticate, retry and supervise one event stream handle."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: ConnectionConfig,
        bus: EventBus,
        *,
        stream_factory: StreamFactory = EventStream,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        self._session = session
        self._config = config
        self._bus = bus
        self._stream_factory = stream_factory
        self._reconnect_delay = reconnect_delay
        self._stream: EventStream | None = None
        self._attempt: ConnectAttempt | None = None
        self._state = ConnectionState.IDLE

    @property
    def state(self) -> ConnectionState:
        """Return the current lifecycle state."""

        return self._state

    @property
    def is_connected(self) -> bool:
        """Return True while the stream handle is open."""

        stream = self._stream
        return stream is not None and stream.ready_state == OPEN

    @property
    def stream(self) -> EventStream | None:
        """Expose the live handle (diagnostics and tests)."""

        return self._stream

    async def connect(self, max_retries: int | None = None) -> None:
        """Open a new stream, replacing any existing one.

        Raises ``UnauthorizedError`` on HTTP 401 and ``ConnectionFailedError``
        once more than ``max_retries`` consecutive attempts fail.
        """

        ceiling = DEFAULT_MAX_RETRY_COUNT if max_retries is None else int(max_retries)
        if ceiling < 0:
            raise ValueError("max_retries must not be negative")

        self._close_stream()

        loop = asyncio.get_running_loop()
        attempt = ConnectAttempt(ceiling=ceiling, future=loop.create_future())
        stream = self._stream_factory(
            self._session,
            self._config.url(EVENTS_PATH),
            headers_factory=self._config.auth_headers,
            reconnect_delay=self._reconnect_delay,
        )
        self._stream = stream
        self._attempt = attempt

        attempt.handlers = {
            "connecting": lambda _arg: self._on_connecting(stream, attempt),
            "error": lambda error: self._on_connect_error(stream, attempt, error),
            "open": lambda _arg: self._on_open(stream, attempt),
        }
        for event, handler in attempt.handlers.items():
            stream.add_listener(event, handler)

        _LOGGER.info(
            "Connecting to %s (max retries %d)",
            redact_text(self._config.base_url),
            ceiling,
        )
        self._state = ConnectionState.OPENING
        stream.start()

        try:
            await attempt.future
        except asyncio.CancelledError:
            if self._stream is stream:
                self._close_stream()
            raise
        finally:
            if self._attempt is attempt:
                self._attempt = None

    def disconnect(self) -> None:
        """Close the stream handle if one exists."""

        if self._stream is None:
            return
        _LOGGER.info("Disconnecting from %s", redact_text(self._config.base_url))
        self._close_stream()
        self._bus.publish(DisconnectedEvent())

    # ----------------- Handshake handlers -----------------

    def _on_connecting(self, stream: EventStream, attempt: ConnectAttempt) -> None:
        if attempt.done or self._stream is not stream:
            return
        self._state = ConnectionState.OPENING

    def _on_connect_error(
        self, stream: EventStream, attempt: ConnectAttempt, error: Any
    ) -> None:
        if attempt.done or self._stream is not stream:
            return
        if not isinstance(error, StreamError):
            error = StreamError(str(error))

        if error.status == 401:
            _LOGGER.info("Device rejected the stream credentials")
            self._abort(stream, attempt, UnauthorizedError(error.message or "Unauthorized"))
            return

        if attempt.record_failure(error):
            message = (
                "Failed to connect to device. "
                f"Retrying...{attempt.count} of {attempt.ceiling}"
            )
            _LOGGER.info("%s (%s)", message, redact_text(error.message))
            self._state = ConnectionState.RETRYING
            self._bus.publish(
                LogEvent(message=message, attempt=attempt.count, ceiling=attempt.ceiling)
            )
            return

        _LOGGER.warning(
            "Giving up on %s after %d retries: %s",
            redact_text(self._config.base_url),
            attempt.ceiling,
            redact_text(error.message),
        )
        self._abort(stream, attempt, ConnectionFailedError(error.message))

    def _on_open(self, stream: EventStream, attempt: ConnectAttempt) -> None:
        if attempt.done or self._stream is not stream:
            return
        self._detach(stream, attempt)
        stream.add_listener(STATE_EVENT, self._on_state_message)
        stream.add_listener("error", self._on_stream_error)
        stream.add_listener("open", self._on_stream_open)
        self._state = ConnectionState.OPEN
        _LOGGER.info("Connected to %s", redact_text(self._config.base_url))
        attempt.succeed()
        self._bus.publish(ConnectedEvent())

    def _abort(
        self, stream: EventStream, attempt: ConnectAttempt, error: Exception
    ) -> None:
        self._detach(stream, attempt)
        stream.close()
        self._state = ConnectionState.FAILED
        attempt.fail(error)

    @staticmethod
    def _detach(stream: EventStream, attempt: ConnectAttempt) -> None:
        for event, handler in attempt.handlers.items():
            stream.remove_listener(event, handler)
        attempt.handlers = {}

    # ----------------- Steady-state handlers -----------------

    def _on_state_message(self, frame: ServerSentEvent | str) -> None:
        data = frame.data if isinstance(frame, ServerSentEvent) else frame
        event = decode_state_update(data)
        if event is not None:
            self._bus.publish(event)

    def _on_stream_open(self, _arg: Any) -> None:
        _LOGGER.info("Reconnected to %s", redact_text(self._config.base_url))
        self._state = ConnectionState.OPEN
        self._bus.publish(ConnectedEvent())

    def _on_stream_error(self, error: Any) -> None:
        message = getattr(error, "message", None) or str(error or "")
        wrapped = StreamError(
            message or "An unknown error occurred.",
            status=getattr(error, "status", None),
        )
        _LOGGER.debug("Event stream error after open: %s", redact_text(wrapped.message))
        self._bus.publish(ErrorEvent(error=wrapped))

    # ----------------- Helpers -----------------

    def _close_stream(self) -> None:
        stream = self._stream
        if stream is None:
            return
        self._stream = None
        stream.close()
        self._state = ConnectionState.CLOSED
        attempt = self._attempt
        if attempt is not None and not attempt.done:
            self._detach(stream, attempt)
            attempt.fail(ConnectionClosedError("Connection closed before it was established"))


__all__ = ["ConnectAttempt", "ConnectionManager", "ConnectionState"]
