"""
Brokerage Hub — Properties Router
===================================
Mirrored properties with their units, and brochure extraction.

Endpoints:
  GET  /api/properties                        - List with filters + submarketStats
  GET  /api/properties/{id}                   - Single property with units
  POST /api/properties/{id}/extract-brochure  - {"documentUrl": "..."} → fields extracted
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dashboard.api.middleware import get_db, get_zoho
from models.api_models import BrochureRequest
from scripts.lib.brochure_extractor import extract_brochure
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger
from scripts.lib.normalizers import property_row_to_dto
from scripts.lib.submarkets import load_submarket_stats
from scripts.lib.supabase_client import get_row, ilike_any, search_table

logger = setup_logger("properties_router")

router = APIRouter(prefix="/api/properties", tags=["properties"])

SEARCH_COLUMNS = ("name", "address_line", "city", "submarket", "postcode")
SORT_ALIASES = {"updatedAt": "updated_at", "name": "name", "totalSizeSqFt": "total_size_sqft"}


def _csv(value: Optional[str]):
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@router.get("")
async def list_properties(
    search: Optional[str] = Query(None, description="Name, address, city, submarket or postcode"),
    marketingStatus: Optional[str] = Query(None),
    visibility: Optional[str] = Query(None),
    submarkets: Optional[str] = Query(None, description="Comma-separated submarket names"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    sortBy: str = Query("updated_at"),
    sortOrder: str = Query("desc", description="asc or desc"),
    db=Depends(get_db),
):
    """List mirrored properties (units embedded) plus submarket counts for the filter panel."""
    try:
        filters = {}
        if marketingStatus:
            filters["marketing_status"] = marketingStatus
        if visibility:
            filters["marketing_visibility"] = visibility

        or_filters = []
        term = (search or "").strip()
        if term:
            or_filters.append(ilike_any(SEARCH_COLUMNS, term))
        # Stored values may still be JSON-array text, so match by substring
        wanted = _csv(submarkets)
        if wanted:
            or_filters.append(",".join(ilike_any(["submarket"], name) for name in wanted))

        rows, total = search_table(
            "properties",
            select="*, units(*)",
            filters=filters,
            or_filters=or_filters,
            order_by=SORT_ALIASES.get(sortBy, sortBy),
            desc=sortOrder.lower() != "asc",
            limit=limit,
            offset=(page - 1) * limit,
            client=db,
        )
        return {
            "properties": [property_row_to_dto(row) for row in rows],
            "total": total,
            "submarketStats": load_submarket_stats(db),
            "page": page,
            "limit": limit,
        }
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Error fetching properties: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch properties")


@router.get("/{property_id}")
async def get_property(property_id: str, db=Depends(get_db)):
    try:
        row = get_row("properties", "id", property_id, select="*, units(*)", client=db)
        if not row:
            raise HTTPException(status_code=404, detail="Property not found")
        return property_row_to_dto(row)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Get property %s failed: %s", property_id, e)
        raise HTTPException(status_code=500, detail="Failed to fetch property")


@router.post("/{property_id}/extract-brochure")
async def extract_property_brochure(
    property_id: str,
    body: BrochureRequest,
    db=Depends(get_db),
    zoho=Depends(get_zoho),
):
    """Read a brochure PDF and fill in the property's building facts."""
    if not body.documentUrl:
        raise HTTPException(status_code=400, detail="documentUrl is required")
    try:
        return await extract_brochure(property_id, body.documentUrl, db, zoho)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Brochure extraction failed for %s: %s", property_id, e)
        raise HTTPException(status_code=500, detail="Brochure extraction failed")
