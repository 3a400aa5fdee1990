"""
Brokerage Hub — Leads Router
==============================
BANT-scored demo lead book.

Endpoints:
  GET /api/leads  - Scored leads (optional grade filter) + stats + grade scale
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from scripts.lib.lead_scoring import GRADE_SCALE, lead_stats, load_demo_leads
from scripts.lib.logger import setup_logger

logger = setup_logger("leads_router")

router = APIRouter(prefix="/api/leads", tags=["leads"])


@router.get("")
async def list_leads(grade: Optional[str] = Query(None, description="A, B, C, D or U")):
    """Demo leads with their BANT scores. Stats always cover the whole book."""
    try:
        leads = load_demo_leads()
        stats = lead_stats(leads)
        if grade:
            leads = [lead for lead in leads if lead["grade"] == grade.upper()]
        return {"leads": leads, "stats": stats, "gradeScale": GRADE_SCALE}
    except Exception as e:
        logger.error("Load leads failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to load leads")
