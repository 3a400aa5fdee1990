"""
Brokerage Hub — API Dependencies
==================================
Request-scoped dependencies shared by the routers:

  require_sync_key  - X-API-Key header (or apiKey query) must equal SYNC_API_KEY
                      when that variable is set; otherwise the check is open
  get_db            - Supabase client (503 when not configured)
  get_zoho          - the process-wide CRM client from app state
  require_zoho      - as get_zoho, but 503 when CRM credentials are missing
"""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import HTTPException, Query, Request, Security
from fastapi.security import APIKeyHeader

from integrations.zoho import ZohoClient
from scripts.lib.config import get_settings
from scripts.lib.errors import NotConfiguredError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import get_client

logger = setup_logger("api_middleware")

# Header-based API key
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_sync_key(
    request: Request,
    header_key: Optional[str] = Security(API_KEY_HEADER),
    query_key: Optional[str] = Query(None, alias="apiKey"),
) -> None:
    """Guard for the sync trigger. Open when SYNC_API_KEY is unset."""
    expected = get_settings().sync_api_key
    if not expected:
        return

    provided = header_key or query_key or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Rejected sync request from %s: bad API key",
                       request.client.host if request.client else "unknown")
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_db():
    return get_client()


def get_zoho(request: Request) -> ZohoClient:
    zoho = getattr(request.app.state, "zoho", None)
    if zoho is None:
        zoho = ZohoClient()
        request.app.state.zoho = zoho
    return zoho


def require_zoho(request: Request) -> ZohoClient:
    zoho = get_zoho(request)
    if not zoho.is_configured:
        raise NotConfiguredError("Zoho CRM", missing=zoho.settings.missing_zoho)
    return zoho
