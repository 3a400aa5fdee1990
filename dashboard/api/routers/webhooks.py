"""
Brokerage Hub — Webhooks Router
=================================
Zoho workflow notifications that keep the mirror current between full syncs.

Endpoints:
  POST /api/webhooks/zoho  - {"module": "Contacts", "operation": "update", "ids": [...]}
"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from dashboard.api.middleware import get_db, get_zoho
from models.api_models import WebhookPayload
from scripts.lib.data_sync import apply_webhook
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger

logger = setup_logger("webhooks_router")

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/zoho")
async def zoho_webhook(payload: WebhookPayload, db=Depends(get_db), zoho=Depends(get_zoho)):
    """Apply a CRM change notification to the mirror."""
    logger.info("Received Zoho webhook: %s %s (%s)",
                payload.module, payload.operation, payload.ids)
    try:
        result = await apply_webhook(payload.model_dump(), zoho, db)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Webhook processing error: %s", e)
        return JSONResponse(status_code=500, content={
            "error": "Webhook processing failed",
            "message": str(e),
        })

    return {
        "success": True,
        "message": "Webhook processed",
        **result,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
