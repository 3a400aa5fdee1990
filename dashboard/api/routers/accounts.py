"""
Brokerage Hub — Accounts Router
=================================
Mirrored CRM accounts.

Endpoints:
  GET /api/accounts  - List accounts (search, type, page, pageSize)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dashboard.api.middleware import get_db
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger
from scripts.lib.normalizers import account_row_to_dto
from scripts.lib.supabase_client import ilike_any, search_table

logger = setup_logger("accounts_router")

router = APIRouter(prefix="/api/accounts", tags=["accounts"])

SEARCH_COLUMNS = ("name", "city", "industry")


@router.get("")
async def list_accounts(
    search: Optional[str] = Query(None, description="Name, city or industry (partial match)"),
    type: Optional[str] = Query(None, description="Filter by account type"),
    page: int = Query(1, ge=1),
    pageSize: int = Query(50, ge=1, le=200),
    db=Depends(get_db),
):
    """List mirrored accounts, most recently modified first."""
    try:
        filters = {"account_type": type} if type else None
        or_filters = []
        term = (search or "").strip()
        if len(term) >= 2:
            or_filters.append(ilike_any(SEARCH_COLUMNS, term))

        rows, total = search_table(
            "accounts",
            filters=filters,
            or_filters=or_filters,
            order_by="zoho_modified_at",
            limit=pageSize,
            offset=(page - 1) * pageSize,
            client=db,
        )
        return {
            "items": [account_row_to_dto(row) for row in rows],
            "page": page,
            "pageSize": pageSize,
            "total": total,
            "moreRecords": page * pageSize < total,
        }
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("List accounts failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch accounts")
