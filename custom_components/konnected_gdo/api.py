"""Async client for the Konnected GDO blaQ web API."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from .connection import ConnectionManager, ConnectionState, StreamFactory
from .const import DEFAULT_PORT, DEFAULT_RECONNECT_DELAY
from .endpoints import (
    BUTTON_ENDPOINTS,
    GET_PAYLOAD_MODELS,
    POST_PARAMETERS,
    SWITCH_ENDPOINTS,
    Button,
    Endpoint,
    Switch,
)
from .errors import RequestFailedError, UnauthorizedError, UnmappedOperationError
from .event_stream import EventStream
from .events import ErrorEvent, EventBus, EventCallback, EventKind
from .models import (
    GARAGE_DOOR_OPEN,
    LOCK_LOCKED,
    STATE_ON,
    BasePayload,
    ConnectionConfig,
    SecurityProtocol,
    VerificationResult,
)
from .sanitize import redact_text

_LOGGER = logging.getLogger(__name__)


def build_query(parameters: Mapping[str, Any] | None) -> str:
    """Serialise ``parameters`` as ``key=value&`` pairs with encoded values."""

    if not parameters:
        return ""
    return "".join(
        f"{key}={quote(str(value), safe='')}&" for key, value in parameters.items()
    )


class RESTClient:
    """Thin async client for the device REST endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: ConnectionConfig,
        *,
        bus: EventBus | None = None,
    ) -> None:
        """Initialise the client with a shared session and identity."""

        self._session = session
        self._config = config
        self._bus = bus or EventBus()

    @property
    def config(self) -> ConnectionConfig:
        """Return the identity consulted on every request."""

        return self._config

    @property
    def url(self) -> str:
        """Return the device base URL."""

        return self._config.base_url

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        headers.update(self._config.auth_headers())
        return headers

    async def _get(self, endpoint: Endpoint) -> BasePayload | None:
        """GET a status endpoint.

        Return ``None`` on HTTP 401, the parsed payload model on 200, and raise
        ``RequestFailedError`` for any other status.
        """

        url = self._config.url(endpoint)
        _LOGGER.debug("HTTP GET %s", redact_text(url))
        async with self._session.get(url, headers=self._headers()) as resp:
            if resp.status == 401:
                _LOGGER.debug("HTTP GET %s -> 401", redact_text(url))
                return None
            if resp.status != 200:
                body = await resp.text()
                _LOGGER.error(
                    "HTTP error GET %s -> %s; body=%s",
                    redact_text(url),
                    resp.status,
                    redact_text(body)[:200],
                )
                raise RequestFailedError(resp.status, getattr(resp, "reason", None))
            try:
                data = await resp.json(content_type=None)
            except ValueError as err:
                _LOGGER.error("Malformed JSON from %s", redact_text(url))
                raise RequestFailedError(
                    200, f"Malformed JSON from {endpoint}"
                ) from err

        model = GET_PAYLOAD_MODELS.get(endpoint, BasePayload)
        try:
            return model.model_validate(data)
        except ValidationError as err:
            _LOGGER.error(
                "Invalid payload from %s: %s", redact_text(url), err.error_count()
            )
            raise RequestFailedError(200, f"Invalid payload from {endpoint}") from err

    async def _post(
        self, endpoint: Endpoint, parameters: Mapping[str, Any] | None = None
    ) -> bool:
        """POST an action endpoint with query-string parameters.

        Return False on HTTP 401 and True on 200; raise ``RequestFailedError``
        for any other status.
        """

        unexpected = set(parameters or ()) - set(POST_PARAMETERS.get(endpoint, ()))
        if unexpected:
            raise ValueError(f"{endpoint} does not accept {sorted(unexpected)}")

        url = f"{self._config.url(endpoint)}?{build_query(parameters)}"
        _LOGGER.debug("HTTP POST %s", redact_text(url))
        async with self._session.post(url, headers=self._headers()) as resp:
            if resp.status == 401:
                _LOGGER.debug("HTTP POST %s -> 401", redact_text(url))
                return False
            if resp.status != 200:
                _LOGGER.error(
                    "HTTP error POST %s -> %s", redact_text(url), resp.status
                )
                raise RequestFailedError(resp.status, getattr(resp, "reason", None))
        return True

    async def _read(self, endpoint: Endpoint, what: str) -> Any:
        payload = await self._get(endpoint)
        if payload is None:
            raise UnauthorizedError(f"Error fetching {what}. No data returned.")
        return payload

    async def _command(
        self, endpoint: Endpoint, parameters: Mapping[str, Any] | None = None
    ) -> None:
        if not await self._post(endpoint, parameters):
            raise UnauthorizedError(f"Device rejected {endpoint}")

    # ----------------- Garage door -----------------

    async def is_garage_door_open(self) -> bool:
        payload = await self._read(Endpoint.GARAGE_DOOR, "garage door state")
        return payload.state == GARAGE_DOOR_OPEN

    async def get_garage_door_position(self) -> float:
        payload = await self._read(Endpoint.GARAGE_DOOR, "garage door position")
        return payload.position

    async def open_garage_door(self) -> None:
        await self._command(Endpoint.GARAGE_DOOR_OPEN)

    async def close_garage_door(self) -> None:
        await self._command(Endpoint.GARAGE_DOOR_CLOSE)

    async def stop_garage_door(self) -> None:
        await self._command(Endpoint.GARAGE_DOOR_STOP)

    async def toggle_garage_door(self) -> None:
        await self._command(Endpoint.GARAGE_DOOR_TOGGLE)

    async def set_garage_door_position(self, position: float) -> None:
        """Move the door to ``position`` (0 closed, 1 fully open)."""

        await self._command(Endpoint.GARAGE_DOOR_SET, {"position": position})

    # ----------------- Light -----------------

    async def is_garage_light_on(self) -> bool:
        payload = await self._read(Endpoint.GARAGE_LIGHT, "garage light state")
        return payload.state == STATE_ON

    async def turn_on_garage_light(self) -> None:
        await self._command(Endpoint.GARAGE_LIGHT_TURN_ON)

    async def turn_off_garage_light(self) -> None:
        await self._command(Endpoint.GARAGE_LIGHT_TURN_OFF)

    async def toggle_garage_light(self) -> None:
        await self._command(Endpoint.GARAGE_LIGHT_TOGGLE)

    # ----------------- Remote lock -----------------

    async def is_remote_locked(self) -> bool:
        payload = await self._read(Endpoint.LOCK, "lock state")
        return payload.state == LOCK_LOCKED

    async def lock_remote(self) -> None:
        await self._command(Endpoint.LOCK_LOCK)

    async def unlock_remote(self) -> None:
        await self._command(Endpoint.LOCK_UNLOCK)

    # ----------------- Sensors -----------------

    async def _is_on(self, endpoint: Endpoint, what: str) -> bool:
        payload = await self._read(endpoint, what)
        return payload.state == STATE_ON

    async def is_motion_detected(self) -> bool:
        return await self._is_on(Endpoint.MOTION_SENSOR, "motion sensor state")

    async def is_synced(self) -> bool:
        return await self._is_on(Endpoint.ROLLING_CODE_SYNCED, "rolling code sync state")

    async def is_obstruction_detected(self) -> bool:
        return await self._is_on(Endpoint.OBSTRUCTION, "obstruction sensor state")

    async def is_motor_running(self) -> bool:
        return await self._is_on(Endpoint.MOTOR_RUNNING, "motor state")

    async def is_wall_button_pressed(self) -> bool:
        return await self._is_on(Endpoint.WALL_BUTTON_PRESSED, "wall button state")

    async def get_garage_openings(self) -> float | None:
        payload = await self._read(Endpoint.GARAGE_OPENINGS, "garage openings")
        return payload.value

    async def get_wifi_signal_rssi(self) -> float | None:
        payload = await self._read(Endpoint.WIFI_SIGNAL_RSSI, "wifi signal strength")
        return payload.value

    async def get_wifi_signal_percent(self) -> float | None:
        payload = await self._read(Endpoint.WIFI_SIGNAL_PERCENT, "wifi signal strength")
        return payload.value

    async def get_uptime(self) -> float | None:
        payload = await self._read(Endpoint.UPTIME, "uptime")
        return payload.value

    async def get_device_id(self) -> str:
        """Return the 12-character device id (its MAC address)."""

        payload = await self._read(Endpoint.DEVICE_ID, "device id")
        return str(payload.value or payload.state or "")

    async def get_ip_address(self) -> str:
        payload = await self._read(Endpoint.IP_ADDRESS, "IP address")
        return str(payload.value or payload.state or "")

    # ----------------- Security protocol -----------------

    async def get_security_protocol(self) -> str:
        payload = await self._read(Endpoint.SECURITY_PROTOCOL, "security protocol")
        return str(payload.value or payload.state or "")

    async def set_security_protocol(self, protocol: SecurityProtocol | str) -> None:
        await self._command(Endpoint.SECURITY_PROTOCOL_SET, {"option": str(protocol)})

    # ----------------- Learn mode / toggle only -----------------

    async def is_learn_mode_enabled(self) -> bool:
        return await self._is_on(Endpoint.LEARN, "learn mode state")

    async def turn_on_learn_mode(self) -> None:
        await self._command(Endpoint.LEARN_ON)

    async def turn_off_learn_mode(self) -> None:
        await self._command(Endpoint.LEARN_OFF)

    async def toggle_learn_mode(self) -> None:
        await self._command(Endpoint.LEARN_TOGGLE)

    async def is_toggle_only_enabled(self) -> bool:
        return await self._is_on(Endpoint.TOGGLE_ONLY, "toggle only state")

    # ----------------- Buttons -----------------

    async def press_pre_close_warning_button(self) -> None:
        await self._command(Endpoint.PRE_CLOSE_WARNING_PRESS)

    async def press_play_sound_button(self) -> None:
        await self._command(Endpoint.PLAY_SOUND_PRESS)

    async def press_restart_button(self) -> None:
        await self._command(Endpoint.RESTART_PRESS)

    async def press_factory_reset_button(self) -> None:
        await self._command(Endpoint.FACTORY_RESET_PRESS)

    async def press_button(self, button: Button | str) -> None:
        """Press ``button``; an unmapped button is reported as an error event."""

        endpoint = BUTTON_ENDPOINTS.get(button)
        if endpoint is None:
            self._bus.publish(
                ErrorEvent(
                    error=UnmappedOperationError(
                        f"Button mapping not found for button: {button}"
                    )
                )
            )
            return
        await self._command(endpoint)

    async def set_switch_state(self, switch: Switch | str, state: bool) -> None:
        """Post to the on or off endpoint of ``switch``."""

        endpoints = SWITCH_ENDPOINTS.get(switch)
        if endpoints is None:
            self._bus.publish(
                ErrorEvent(
                    error=UnmappedOperationError(
                        f"Switch mapping not found for switch: {switch}"
                    )
                )
            )
            return
        await self._command(endpoints.on if state else endpoints.off)

    # ----------------- Verification -----------------

    @classmethod
    async def verify_connection(
        cls,
        session: aiohttp.ClientSession,
        address: str,
        port: int = DEFAULT_PORT,
        username: str | None = None,
        password: str | None = None,
    ) -> VerificationResult:
        """Check the device once and classify the answer.

        Raise ``RequestFailedError`` when the device answers with a status
        other than 200 or 401.
        """

        config = ConnectionConfig(
            address=address,
            port=int(port),
            username=username or "",
            password=password or "",
        )
        client = cls(session, config)
        url = config.url(Endpoint.DEVICE_ID)
        _LOGGER.debug("Verifying connection to %s", redact_text(url))
        async with session.get(url, headers=client._headers()) as resp:
            status = resp.status

        if status == 200:
            return VerificationResult.SUCCESS
        if status == 401:
            if config.has_credentials:
                return VerificationResult.INVALID_CREDENTIALS
            return VerificationResult.AUTHENTICATION_REQUIRED
        raise RequestFailedError(status)


class KonnectedApi(RESTClient):
    """One device: identity, event bus, stream lifecycle and commands."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: ConnectionConfig,
        *,
        stream_factory: StreamFactory = EventStream,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ) -> None:
        super().__init__(session, config, bus=EventBus())
        self._connection = ConnectionManager(
            session,
            config,
            self._bus,
            stream_factory=stream_factory,
            reconnect_delay=reconnect_delay,
        )

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def is_connected(self) -> bool:
        return self._connection.is_connected

    def on(self, kind: EventKind | str, callback: EventCallback) -> Callable[[], None]:
        """Subscribe to events of ``kind``; return the unsubscribe callable."""

        return self._bus.subscribe(kind, callback)

    def update_identity(
        self,
        *,
        address: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        """Replace address and credentials used by the stream and commands."""

        self._config.update(
            address=address, port=port, username=username, password=password
        )

    async def connect(
        self,
        *,
        address: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        max_retries: int | None = None,
    ) -> None:
        """Open (or replace) the event stream.

        Supplying an address replaces the whole identity; missing credentials
        then become empty. Without an address, only the given fields change.
        """

        if address is not None:
            self._config.update(
                address=address,
                port=port if port is not None else DEFAULT_PORT,
                username=username or "",
                password=password or "",
            )
        else:
            self._config.update(port=port, username=username, password=password)
        await self._connection.connect(max_retries=max_retries)

    def disconnect(self) -> None:
        """Close the event stream; safe to call repeatedly."""

        self._connection.disconnect()


__all__ = ["KonnectedApi", "RESTClient", "build_query"]
