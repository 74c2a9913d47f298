"""Config flow handlers for the Konnected GDO blaQ integration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any

from aiohttp import ClientError
from homeassistant import config_entries
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import aiohttp_client
import voluptuous as vol

from .api import RESTClient
from .const import (
    CONF_DEVICE_ID,
    CONF_HOST,
    CONF_MAX_RETRIES,
    CONF_PASSWORD,
    CONF_PORT,
    CONF_USERNAME,
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_PORT,
    DOMAIN,
    MAX_RETRY_COUNT_LIMIT,
    MODEL,
)
from .errors import KonnectedError, RequestFailedError, UnauthorizedError
from .models import ConnectionConfig, VerificationResult
from .sanitize import mask_identifier

_LOGGER = logging.getLogger(__name__)


def _host_schema(default_host: str = "", default_port: int = DEFAULT_PORT) -> vol.Schema:
    """Build the host form schema with provided defaults."""
    return vol.Schema(
        {
            vol.Required(CONF_HOST, default=default_host): str,
            vol.Required(CONF_PORT, default=default_port): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=65535)
            ),
        }
    )


def _credentials_schema(default_user: str = "") -> vol.Schema:
    """Build the credentials form schema."""
    return vol.Schema(
        {
            vol.Required(CONF_USERNAME, default=default_user): str,
            vol.Required(CONF_PASSWORD): str,
        }
    )


def _reconfigure_schema(data: Mapping[str, Any]) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_HOST, default=data.get(CONF_HOST, "")): str,
            vol.Required(CONF_PORT, default=data.get(CONF_PORT, DEFAULT_PORT)): vol.All(
                vol.Coerce(int), vol.Range(min=1, max=65535)
            ),
            vol.Optional(CONF_USERNAME, default=data.get(CONF_USERNAME) or ""): str,
            vol.Optional(CONF_PASSWORD, default=""): str,
        }
    )


def options_schema(current: int = DEFAULT_MAX_RETRY_COUNT) -> vol.Schema:
    """Build the options schema for the retry ceiling."""
    return vol.Schema(
        {
            vol.Required(CONF_MAX_RETRIES, default=current): vol.All(
                vol.Coerce(int), vol.Range(min=0, max=MAX_RETRY_COUNT_LIMIT)
            )
        }
    )


@dataclass(slots=True)
class DeviceCheck:
    """Outcome of checking a device during a flow step."""

    result: VerificationResult
    device_id: str = ""


async def async_check_device(
    hass: HomeAssistant,
    host: str,
    port: int,
    username: str | None = None,
    password: str | None = None,
) -> DeviceCheck:
    """Verify the connection and read the device id when it succeeds.

    Raises ``RequestFailedError`` or ``aiohttp.ClientError`` when the device
    cannot be reached.
    """

    session = aiohttp_client.async_get_clientsession(hass)
    result = await RESTClient.verify_connection(
        session, host, port, username=username, password=password
    )
    if result is not VerificationResult.SUCCESS:
        return DeviceCheck(result=result)

    client = RESTClient(
        session,
        ConnectionConfig(
            address=host, port=port, username=username or "", password=password or ""
        ),
    )
    device_id = await client.get_device_id()
    return DeviceCheck(result=result, device_id=device_id.strip())


def error_for_result(result: VerificationResult) -> str | None:
    """Map a verification result to a form error key."""
    if result is VerificationResult.SUCCESS:
        return None
    if result is VerificationResult.INVALID_CREDENTIALS:
        return "invalid_auth"
    return "auth_required"


class KonnectedConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Discover the device by address and optional credentials."""

    VERSION = 1

    def __init__(self) -> None:
        self._host = ""
        self._port = DEFAULT_PORT
        self._username = ""

    async def _async_try_check(
        self,
        step_id: str,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
    ) -> tuple[DeviceCheck | None, dict[str, str]]:
        """Check the device and translate failures into form errors."""

        errors: dict[str, str] = {}
        try:
            check = await async_check_device(self.hass, host, port, username, password)
        except (RequestFailedError, ClientError, TimeoutError):
            errors["base"] = "cannot_connect"
            return None, errors
        except UnauthorizedError:
            errors["base"] = "invalid_auth"
            return None, errors
        except KonnectedError:
            errors["base"] = "cannot_connect"
            return None, errors
        except Exception:
            _LOGGER.exception("Unexpected error during %s step", step_id)
            errors["base"] = "unknown"
            return None, errors
        return check, errors

    async def _async_create(
        self, check: DeviceCheck, username: str = "", password: str = ""
    ) -> FlowResult:
        device_id = check.device_id or self._host
        await self.async_set_unique_id(device_id)
        self._abort_if_unique_id_configured(
            updates={CONF_HOST: self._host, CONF_PORT: self._port}
        )
        _LOGGER.info("Adding %s %s", MODEL, mask_identifier(device_id))
        return self.async_create_entry(
            title=f"{MODEL} ({self._host})",
            data={
                CONF_HOST: self._host,
                CONF_PORT: self._port,
                CONF_USERNAME: username,
                CONF_PASSWORD: password,
                CONF_DEVICE_ID: device_id,
            },
        )

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Ask for the device address and check it."""

        if user_input is None:
            return self.async_show_form(step_id="user", data_schema=_host_schema())

        self._host = str(user_input[CONF_HOST]).strip()
        self._port = int(user_input.get(CONF_PORT, DEFAULT_PORT))

        check, errors = await self._async_try_check("user", self._host, self._port)
        if check is not None:
            if check.result is VerificationResult.SUCCESS:
                return await self._async_create(check)
            return await self.async_step_credentials()

        return self.async_show_form(
            step_id="user",
            data_schema=_host_schema(self._host, self._port),
            errors=errors,
        )

    async def async_step_credentials(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Collect the web UI credentials for a protected device."""

        if user_input is None:
            return self.async_show_form(
                step_id="credentials",
                data_schema=_credentials_schema(self._username),
                description_placeholders={"host": self._host},
            )

        username = (user_input.get(CONF_USERNAME) or "").strip()
        password = user_input.get(CONF_PASSWORD) or ""
        self._username = username

        check, errors = await self._async_try_check(
            "credentials", self._host, self._port, username, password
        )
        if check is not None:
            error = error_for_result(check.result)
            if error is None:
                return await self._async_create(check, username, password)
            errors["base"] = "invalid_auth"

        return self.async_show_form(
            step_id="credentials",
            data_schema=_credentials_schema(username),
            errors=errors,
            description_placeholders={"host": self._host},
        )

    def _flow_entry(self) -> ConfigEntry | None:
        entry_id = self.context.get("entry_id")
        return self.hass.config_entries.async_get_entry(entry_id) if entry_id else None

    async def async_step_reauth(self, entry_data: Mapping[str, Any]) -> FlowResult:
        """Start reauthentication after the device rejected the credentials."""

        self._host = str(entry_data.get(CONF_HOST, ""))
        self._port = int(entry_data.get(CONF_PORT, DEFAULT_PORT))
        self._username = entry_data.get(CONF_USERNAME) or ""
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Ask for new credentials and store them on the entry."""

        entry = self._flow_entry()
        if entry is None:
            return self.async_abort(reason="no_config_entry")

        errors: dict[str, str] = {}
        if user_input is not None:
            username = (user_input.get(CONF_USERNAME) or "").strip()
            password = user_input.get(CONF_PASSWORD) or ""
            self._username = username
            check, errors = await self._async_try_check(
                "reauth_confirm", self._host, self._port, username, password
            )
            if check is not None:
                if check.result is VerificationResult.SUCCESS:
                    new_data = dict(entry.data)
                    new_data.update({CONF_USERNAME: username, CONF_PASSWORD: password})
                    self.hass.config_entries.async_update_entry(entry, data=new_data)
                    if entry.entry_id not in self.hass.data.get(DOMAIN, {}):
                        self.hass.config_entries.async_schedule_reload(entry.entry_id)
                    return self.async_abort(reason="reauth_successful")
                errors["base"] = "invalid_auth"

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=_credentials_schema(self._username),
            errors=errors,
            description_placeholders={"host": self._host},
        )

    async def async_step_reconfigure(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Change the address, port or credentials of an existing entry."""

        entry = self._flow_entry()
        if entry is None:
            return self.async_abort(reason="no_config_entry")

        if user_input is None:
            return self.async_show_form(
                step_id="reconfigure", data_schema=_reconfigure_schema(entry.data)
            )

        host = str(user_input[CONF_HOST]).strip()
        port = int(user_input.get(CONF_PORT, DEFAULT_PORT))
        username = (user_input.get(CONF_USERNAME) or "").strip()
        password = user_input.get(CONF_PASSWORD) or ""
        if username and not password:
            password = entry.data.get(CONF_PASSWORD) or ""

        check, errors = await self._async_try_check(
            "reconfigure", host, port, username, password
        )
        if check is not None:
            error = error_for_result(check.result)
            if error is None:
                if entry.unique_id and check.device_id and check.device_id != entry.unique_id:
                    return self.async_abort(reason="wrong_device")
                new_data = dict(entry.data)
                new_data.update(
                    {
                        CONF_HOST: host,
                        CONF_PORT: port,
                        CONF_USERNAME: username,
                        CONF_PASSWORD: password,
                    }
                )
                self.hass.config_entries.async_update_entry(entry, data=new_data)
                return self.async_abort(reason="reconfigure_successful")
            errors["base"] = error

        merged = dict(entry.data)
        merged.update({CONF_HOST: host, CONF_PORT: port, CONF_USERNAME: username})
        return self.async_show_form(
            step_id="reconfigure",
            data_schema=_reconfigure_schema(merged),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> KonnectedOptionsFlow:
        """Return the options flow handler for this config entry."""
        return KonnectedOptionsFlow(config_entry)


class KonnectedOptionsFlow(config_entries.OptionsFlow):
    """Options flow for the connect retry ceiling."""

    def __init__(self, entry: ConfigEntry) -> None:
        """Store the entry being configured."""
        self.entry = entry

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Show or process the retry options form."""
        if user_input is not None:
            return self.async_create_entry(
                title="",
                data={CONF_MAX_RETRIES: int(user_input[CONF_MAX_RETRIES])},
            )

        current = self.entry.options.get(CONF_MAX_RETRIES, DEFAULT_MAX_RETRY_COUNT)
        return self.async_show_form(step_id="init", data_schema=options_schema(current))


__all__ = [
    "DeviceCheck",
    "KonnectedConfigFlow",
    "KonnectedOptionsFlow",
    "async_check_device",
    "error_for_result",
    "options_schema",
]
