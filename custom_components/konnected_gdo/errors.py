"""Exceptions raised by the Konnected GDO blaQ client."""

from __future__ import annotations


class KonnectedError(Exception):
    """Base class for all client errors."""


class UnauthorizedError(KonnectedError):
    """The device rejected the request with HTTP 401."""


class ConnectionFailedError(KonnectedError):
    """The event stream could not be opened within the retry ceiling."""


class ConnectionClosedError(ConnectionFailedError):
    """The event stream was closed before it finished opening."""


class RequestFailedError(KonnectedError):
    """The device answered a REST call with an unexpected status."""

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(message or f"Unexpected status code: {status}")
        self.status = status


class MalformedMessageError(KonnectedError):
    """A pushed state message could not be decoded."""


class UnmappedOperationError(KonnectedError):
    """A button or switch has no endpoint mapping."""


class StreamError(KonnectedError):
    """Transport-level failure reported by the event stream."""

    def __init__(self, message: str = "", *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def message(self) -> str:
        """Return the error text."""

        return str(self)


__all__ = [
    "ConnectionClosedError",
    "ConnectionFailedError",
    "KonnectedError",
    "MalformedMessageError",
    "RequestFailedError",
    "StreamError",
    "UnauthorizedError",
    "UnmappedOperationError",
]
