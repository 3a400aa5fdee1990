"""
Zoho CRM Integration
=====================

Connects to Zoho CRM (v2 REST API) for:
- Contacts, Accounts, Properties and Units (list / get / create / update / delete)
- Contact photos

Setup:
1. Create a self-client in the Zoho API console and generate a refresh token
2. Set ZOHO_CLIENT_ID, ZOHO_CLIENT_SECRET and ZOHO_REFRESH_TOKEN in .env
3. Set ZOHO_DC if the org is not in the EU data centre (com, in, com.au, ...)

One ZohoTokenProvider is created per process and shared by reference; it
refreshes the access token once the cached one is within 60s of expiry.
"""
from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiohttp

from scripts.lib.config import TOKEN_EXPIRY_MARGIN, ZOHO_PAGE_SIZE, Settings, get_settings
from scripts.lib.errors import CRMAPIError, CRMAuthError, NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger("zoho")


class ZohoTokenProvider:
    """Refresh-token grant with an expiry-aware in-memory cache."""

    def __init__(self, settings: Settings = None, clock: Callable[[], float] = time.time):
        self.settings = settings or get_settings()
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    @property
    def is_configured(self) -> bool:
        return self.settings.zoho_configured

    async def acquire(self) -> str:
        """Return a valid access token, refreshing when the cached one is stale."""
        if not self.is_configured:
            raise NotConfiguredError("Zoho CRM", missing=self.settings.missing_zoho)

        if self._token and self._expires_at > self._clock() + TOKEN_EXPIRY_MARGIN:
            return self._token

        token, expires_in = await self._refresh()
        self._token = token
        self._expires_at = self._clock() + expires_in
        logger.info("Zoho access token refreshed (expires in %ss)", int(expires_in))
        return token

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0

    async def _refresh(self) -> Tuple[str, float]:
        form = {
            "refresh_token": self.settings.zoho_refresh_token,
            "client_id": self.settings.zoho_client_id,
            "client_secret": self.settings.zoho_client_secret,
            "grant_type": "refresh_token",
        }
        async with aiohttp.ClientSession() as session:
            async with session.post(self.settings.zoho_token_url, data=form) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise CRMAuthError(text, status_code=resp.status)

        try:
            data = json.loads(text)
        except ValueError:
            raise CRMAuthError(text[:200], status_code=502)

        # Zoho reports grant errors with a 200 and an "error" key
        if not isinstance(data, dict) or "access_token" not in data:
            raise CRMAuthError(text[:200])

        return data["access_token"], float(data.get("expires_in") or 3600)


class ZohoClient:
    """Zoho CRM connector."""

    def __init__(self, token_provider: ZohoTokenProvider = None, settings: Settings = None):
        self.settings = settings or (token_provider.settings if token_provider else get_settings())
        self.tokens = token_provider or ZohoTokenProvider(self.settings)

    @property
    def is_configured(self) -> bool:
        return self.tokens.is_configured

    async def _headers(self) -> Dict[str, str]:
        token = await self.tokens.acquire()
        return {"Authorization": f"Zoho-oauthtoken {token}"}

    async def request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] = None,
        json_body: Dict[str, Any] = None,
    ) -> Dict[str, Any]:
        """
        Make an authenticated request to the Zoho API.

        204 and empty bodies come back as {"data": []}. Non-2xx responses
        raise CRMAPIError carrying the upstream status; no retries.
        """
        headers = await self._headers()
        url = f"{self.settings.zoho_api_base}{path}"

        async with aiohttp.ClientSession() as session:
            async with session.request(
                method, url, headers=headers, params=params, json=json_body
            ) as resp:
                if resp.status == 204:
                    return {"data": []}
                text = await resp.text()
                if resp.status >= 400:
                    logger.error("Zoho API %s %s returned %s: %s", method, path, resp.status, text[:500])
                    raise CRMAPIError(resp.status, text, url=url)

        if not text.strip():
            return {"data": []}
        try:
            return json.loads(text)
        except ValueError:
            raise CRMAPIError(502, f"Invalid JSON response from Zoho: {text[:100]}", url=url)

    async def request_bytes(self, path: str) -> Optional[Tuple[bytes, str]]:
        """GET a binary resource; None on 204."""
        headers = await self._headers()
        url = f"{self.settings.zoho_api_base}{path}"

        async with aiohttp.ClientSession() as session:
            async with session.get(url, headers=headers) as resp:
                if resp.status == 204:
                    return None
                if resp.status >= 400:
                    text = await resp.text()
                    raise CRMAPIError(resp.status, text, url=url)
                body = await resp.read()
                content_type = resp.headers.get("Content-Type", "image/jpeg")
        return body, content_type

    # ─── Records ────────────────────────────────────────────

    async def list_records(
        self,
        module: str,
        page: int = 1,
        per_page: int = ZOHO_PAGE_SIZE,
        sort_by: str = None,
        sort_order: str = None,
    ) -> Dict[str, Any]:
        """One page of a module: {"data": [...], "info": {"more_records": bool, ...}}."""
        params: Dict[str, Any] = {"page": page, "per_page": per_page}
        if sort_by:
            params["sort_by"] = sort_by
            params["sort_order"] = sort_order or "desc"
        return await self.request("GET", f"/crm/v2/{module}", params=params)

    async def get_record(self, module: str, record_id: str) -> Optional[Dict[str, Any]]:
        response = await self.request("GET", f"/crm/v2/{module}/{record_id}")
        records = response.get("data") or []
        return records[0] if records else None

    async def create_record(self, module: str, fields: Dict[str, Any]) -> str:
        """Create a record; returns the new CRM id."""
        response = await self.request(
            "POST", f"/crm/v2/{module}", json_body={"data": [fields], "trigger": []}
        )
        result = self._first_result(response, "create")
        return (result.get("details") or {}).get("id")

    async def update_record(self, module: str, record_id: str, fields: Dict[str, Any]) -> None:
        response = await self.request(
            "PUT",
            f"/crm/v2/{module}",
            json_body={"data": [{"id": record_id, **fields}], "trigger": []},
        )
        self._first_result(response, "update")

    async def delete_record(self, module: str, record_id: str) -> None:
        response = await self.request("DELETE", f"/crm/v2/{module}", params={"ids": record_id})
        self._first_result(response, "delete")

    async def fetch_photo(self, contact_id: str) -> Optional[Tuple[bytes, str]]:
        """Contact photo bytes and content type; None when the contact has no photo."""
        return await self.request_bytes(f"/crm/v2/Contacts/{contact_id}/photo")

    @staticmethod
    def _first_result(response: Dict[str, Any], action: str) -> Dict[str, Any]:
        results: List[Dict[str, Any]] = response.get("data") or []
        result = results[0] if results else {}
        if result.get("status") == "error":
            raise CRMAPIError(400, result.get("message") or f"Failed to {action} record in Zoho")
        return result

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": "Zoho CRM",
            "configured": self.is_configured,
            "data_centre": self.settings.zoho_dc,
            "features": ["contacts", "accounts", "properties", "units", "photos"],
        }
