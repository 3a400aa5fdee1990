"""
Brokerage Hub — Submarkets Router
===================================

Endpoints:
  GET /api/submarkets  - [{"submarket": "City", "count": 5}, ...] most common first
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from dashboard.api.middleware import get_db
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger
from scripts.lib.submarkets import load_submarket_stats

logger = setup_logger("submarkets_router")

router = APIRouter(prefix="/api/submarkets", tags=["properties"])


@router.get("")
async def list_submarkets(db=Depends(get_db)):
    """Cleaned submarket counts across all mirrored properties."""
    try:
        return load_submarket_stats(db)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Error fetching properties for submarkets: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch submarkets")
