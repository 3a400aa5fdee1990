"""
Brokerage Hub — Sync Router
=============================
Full-refresh sync of the CRM mirror.

Endpoints:
  GET  /api/sync   - Latest ledger row and row count per entity type
  POST /api/sync   - Run a sync: {"entity": "contacts|accounts|properties|units|all"}

Both require X-API-Key (or ?apiKey=) when SYNC_API_KEY is set.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from dashboard.api.middleware import get_db, require_sync_key, require_zoho
from models.api_models import SyncRequest
from scripts.lib.data_sync import get_sync_status, sync_entities
from scripts.lib.errors import APIError, HubError, NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger("sync_router")

router = APIRouter(prefix="/api/sync", tags=["sync"], dependencies=[Depends(require_sync_key)])


@router.get("")
async def sync_status(db=Depends(get_db)):
    """Sync ledger status per entity type."""
    try:
        return get_sync_status(db)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Sync status failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch sync status")


@router.post("")
async def run_sync(
    body: Optional[SyncRequest] = None,
    db=Depends(get_db),
    zoho=Depends(require_zoho),
):
    """Run a full refresh for one entity type or all of them."""
    entity = body.entity if body else "all"
    try:
        results = await sync_entities(entity, zoho, db)
    except (HTTPException, NotConfiguredError, APIError):
        raise
    except Exception as e:
        logger.error("Sync error: %s", e)
        return JSONResponse(status_code=500, content={
            "error": "Sync failed",
            "message": getattr(e, "message", None) or str(e),
        })

    return {
        "success": True,
        "results": results,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
