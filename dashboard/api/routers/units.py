"""
Brokerage Hub — Units Router
==============================
Mirrored units with their parent property.

Endpoints:
  GET /api/units  - List units (search, status, pipelineStage, fitOut, propertyId)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dashboard.api.middleware import get_db
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger
from scripts.lib.normalizers import unit_row_to_dto
from scripts.lib.supabase_client import get_row, ilike_any, search_table

logger = setup_logger("units_router")

router = APIRouter(prefix="/api/units", tags=["units"])

UNIT_SELECT = (
    "*, property:properties!units_property_zoho_id_fkey("
    "id, zoho_id, name, address_line, city, postcode, country)"
)
SEARCH_COLUMNS = ("code", "floor")
SORT_ALIASES = {"updatedAt": "updated_at", "sizeSqFt": "size_sqft", "pricePsf": "price_psf"}


@router.get("")
async def list_units(
    search: Optional[str] = Query(None, description="Unit code or floor (partial match)"),
    status: Optional[str] = Query(None),
    pipelineStage: Optional[str] = Query(None),
    fitOut: Optional[str] = Query(None),
    propertyId: Optional[str] = Query(None, description="Mirror id of the parent property"),
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=200),
    sortBy: str = Query("updated_at"),
    sortOrder: str = Query("desc"),
    db=Depends(get_db),
):
    """List mirrored units with their parent property embedded."""
    try:
        filters = {}
        if status:
            filters["status"] = status
        if pipelineStage:
            filters["pipeline_stage"] = pipelineStage
        if fitOut:
            filters["fit_out"] = fitOut
        if propertyId:
            parent = get_row("properties", "id", propertyId, select="zoho_id", client=db)
            if not parent:
                return {"units": [], "total": 0, "page": page, "limit": limit}
            filters["property_zoho_id"] = parent["zoho_id"]

        term = (search or "").strip()
        or_filters = [ilike_any(SEARCH_COLUMNS, term)] if term else []

        rows, total = search_table(
            "units",
            select=UNIT_SELECT,
            filters=filters,
            or_filters=or_filters,
            order_by=SORT_ALIASES.get(sortBy, sortBy),
            desc=sortOrder.lower() != "asc",
            limit=limit,
            offset=(page - 1) * limit,
            client=db,
        )
        return {"units": [unit_row_to_dto(row) for row in rows], "total": total, "page": page, "limit": limit}
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Error fetching units: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch units")
