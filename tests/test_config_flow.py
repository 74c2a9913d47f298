from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest
import voluptuous as vol

from conftest import FakeSession, MockResponse
from custom_components.konnected_gdo import config_flow
from custom_components.konnected_gdo.config_flow import (
    DeviceCheck,
    KonnectedConfigFlow,
    KonnectedOptionsFlow,
    async_check_device,
    error_for_result,
    options_schema,
)
from custom_components.konnected_gdo.const import DOMAIN
from custom_components.konnected_gdo.models import VerificationResult


@pytest.fixture
def session(monkeypatch: pytest.MonkeyPatch) -> FakeSession:
    fake = FakeSession()
    monkeypatch.setattr(
        config_flow.aiohttp_client, "async_get_clientsession", lambda hass: fake
    )
    return fake


def _flow() -> KonnectedConfigFlow:
    flow = KonnectedConfigFlow()
    flow.hass = SimpleNamespace(data={})
    flow.flow_id = "flow-1"
    flow.handler = DOMAIN
    flow.context = {"source": "user"}
    return flow


def _device_id_response(device_id: str = "aabbccddeeff") -> MockResponse:
    return MockResponse(200, {"id": "text_sensor-device_id", "state": device_id})


def test_options_schema_bounds() -> None:
    assert options_schema()({}) == {"max_retries": 5}
    assert options_schema(3)({"max_retries": "0"}) == {"max_retries": 0}
    assert options_schema()({"max_retries": 20}) == {"max_retries": 20}
    with pytest.raises(vol.Invalid):
        options_schema()({"max_retries": 21})
    with pytest.raises(vol.Invalid):
        options_schema()({"max_retries": -1})


def test_error_for_result() -> None:
    assert error_for_result(VerificationResult.SUCCESS) is None
    assert error_for_result(VerificationResult.INVALID_CREDENTIALS) == "invalid_auth"
    assert error_for_result(VerificationResult.AUTHENTICATION_REQUIRED) == "auth_required"


def test_device_check_reads_device_id(session: FakeSession) -> None:
    async def _run() -> None:
        session.queue_get(MockResponse(200), _device_id_response(" aabbccddeeff "))
        check = await async_check_device(object(), "10.0.0.2", 80, "admin", "pw")
        assert check == DeviceCheck(VerificationResult.SUCCESS, "aabbccddeeff")
        assert all("Authorization" in call[1]["headers"] for call in session.get_calls)

    asyncio.run(_run())


def test_device_check_reports_auth_required(session: FakeSession) -> None:
    async def _run() -> None:
        session.queue_get(MockResponse(401))
        check = await async_check_device(object(), "10.0.0.2", 80)
        assert check == DeviceCheck(VerificationResult.AUTHENTICATION_REQUIRED)
        assert len(session.get_calls) == 1

    asyncio.run(_run())


def test_user_step_shows_form() -> None:
    async def _run() -> None:
        result = await _flow().async_step_user()
        assert result["type"] == "form"
        assert result["step_id"] == "user"

    asyncio.run(_run())


def test_user_step_cannot_connect(session: FakeSession) -> None:
    async def _run() -> None:
        session.queue_get(MockResponse(500))
        result = await _flow().async_step_user({"host": "10.0.0.2", "port": 80})
        assert result["type"] == "form"
        assert result["errors"] == {"base": "cannot_connect"}

    asyncio.run(_run())


def test_protected_device_asks_for_credentials(session: FakeSession) -> None:
    async def _run() -> None:
        flow = _flow()
        session.queue_get(MockResponse(401))
        result = await flow.async_step_user({"host": "10.0.0.2", "port": 80})
        assert result["type"] == "form"
        assert result["step_id"] == "credentials"

        session.queue_get(MockResponse(401))
        result = await flow.async_step_credentials({"username": "admin", "password": "bad"})
        assert result["step_id"] == "credentials"
        assert result["errors"] == {"base": "invalid_auth"}

    asyncio.run(_run())


def test_unexpected_check_error_is_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _boom(*args: Any, **kwargs: Any) -> DeviceCheck:
        raise RuntimeError("surprise")

    monkeypatch.setattr(config_flow, "async_check_device", _boom)

    async def _run() -> None:
        result = await _flow().async_step_user({"host": "10.0.0.2", "port": 80})
        assert result["errors"] == {"base": "unknown"}

    asyncio.run(_run())


def test_options_flow() -> None:
    async def _run() -> None:
        entry = SimpleNamespace(options={"max_retries": 7}, data={})
        flow = KonnectedOptionsFlow(entry)
        flow.hass = SimpleNamespace(data={})
        flow.flow_id = "options-1"
        flow.handler = "entry-1"
        flow.context = {}

        form = await flow.async_step_init()
        assert form["type"] == "form"
        assert form["data_schema"]({}) == {"max_retries": 7}

        result = await flow.async_step_init({"max_retries": 2})
        assert result["type"] == "create_entry"
        assert result["data"] == {"max_retries": 2}

    asyncio.run(_run())
