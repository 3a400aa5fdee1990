"""Tests for the Zoho CRM connector."""

from unittest.mock import AsyncMock, patch

import pytest

from integrations.zoho import ZohoClient, ZohoTokenProvider
from scripts.lib.config import get_settings
from scripts.lib.errors import CRMAPIError, NotConfiguredError

ZOHO_ENV = {
    "ZOHO_CLIENT_ID": "id",
    "ZOHO_CLIENT_SECRET": "secret",
    "ZOHO_REFRESH_TOKEN": "refresh",
    "ZOHO_DC": "eu",
}


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _provider(clock=None):
    with patch.dict("os.environ", ZOHO_ENV, clear=False):
        settings = get_settings()
    return ZohoTokenProvider(settings, clock=clock or Clock())


class TestSettings:
    def test_urls_follow_data_centre(self):
        with patch.dict("os.environ", {**ZOHO_ENV, "ZOHO_DC": "com"}, clear=False):
            settings = get_settings()
        assert settings.zoho_token_url == "https://accounts.zoho.com/oauth/v2/token"
        assert settings.zoho_api_base == "https://www.zohoapis.com"

    def test_default_data_centre_is_eu(self):
        with patch.dict("os.environ", {**ZOHO_ENV, "ZOHO_DC": ""}, clear=False):
            assert get_settings().zoho_dc == "eu"


class TestTokenProvider:
    @pytest.mark.asyncio
    async def test_not_configured(self):
        with patch.dict("os.environ", {"ZOHO_CLIENT_ID": "", "ZOHO_REFRESH_TOKEN": ""}, clear=False):
            provider = ZohoTokenProvider()
        assert provider.is_configured is False
        with pytest.raises(NotConfiguredError) as exc:
            await provider.acquire()
        assert "ZOHO_CLIENT_ID" in exc.value.missing
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_token_is_cached_until_margin(self):
        clock = Clock()
        provider = _provider(clock)
        provider._refresh = AsyncMock(side_effect=[("tok-1", 3600), ("tok-2", 3600)])

        assert await provider.acquire() == "tok-1"
        clock.now += 3600 - 61
        assert await provider.acquire() == "tok-1"
        assert provider._refresh.await_count == 1

        clock.now += 2
        assert await provider.acquire() == "tok-2"
        assert provider._refresh.await_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self):
        provider = _provider()
        provider._refresh = AsyncMock(side_effect=[("tok-1", 3600), ("tok-2", 3600)])
        await provider.acquire()
        provider.invalidate()
        assert await provider.acquire() == "tok-2"


class TestClient:
    def _client(self, response):
        client = ZohoClient(_provider())
        client.request = AsyncMock(return_value=response)
        return client

    @pytest.mark.asyncio
    async def test_list_records_params(self):
        client = self._client({"data": [], "info": {"more_records": False}})
        await client.list_records("Contacts", page=2, per_page=50, sort_by="Modified_Time")
        client.request.assert_awaited_once_with(
            "GET", "/crm/v2/Contacts",
            params={"page": 2, "per_page": 50, "sort_by": "Modified_Time", "sort_order": "desc"},
        )

    @pytest.mark.asyncio
    async def test_get_record_empty_is_none(self):
        client = self._client({"data": []})
        assert await client.get_record("Contacts", "1") is None

    @pytest.mark.asyncio
    async def test_create_returns_new_id(self):
        client = self._client({"data": [{"status": "success", "details": {"id": "987"}}]})
        assert await client.create_record("Contacts", {"Last_Name": "X"}) == "987"
        _, kwargs = client.request.call_args
        assert kwargs["json_body"] == {"data": [{"Last_Name": "X"}], "trigger": []}

    @pytest.mark.asyncio
    async def test_record_level_error_raises(self):
        client = self._client({"data": [{"status": "error", "message": "MANDATORY_NOT_FOUND"}]})
        with pytest.raises(CRMAPIError) as exc:
            await client.update_record("Contacts", "1", {"Email": None})
        assert exc.value.status_code == 400
        assert "MANDATORY_NOT_FOUND" in exc.value.message

    def test_status(self):
        status = ZohoClient(_provider()).get_status()
        assert status["configured"] is True
        assert status["data_centre"] == "eu"

    def test_api_error_message(self):
        error = CRMAPIError(404, "INVALID_URL_PATTERN")
        assert error.message == "Zoho API error (404): INVALID_URL_PATTERN"
        assert error.status_code == 404
