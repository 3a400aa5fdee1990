"""
Brokerage Hub — Brochure Extractor
====================================

Pulls building facts out of a marketing brochure PDF:
  1. Download the PDF
  2. Extract text with pdfplumber (first 100,000 characters)
  3. Ask the AI provider (JSON mode) for the known property fields
  4. Update the mirrored property with every non-null value
  5. Push the same values to the CRM record (failure is logged, not fatal)

Usage:
    from scripts.lib.brochure_extractor import extract_brochure
    result = await extract_brochure(property_id, "https://.../brochure.pdf", db, zoho)
"""
from __future__ import annotations

import io
import json
from typing import Any, Dict

import aiohttp
import pdfplumber

from scripts.lib.ai_provider import ai_complete, require_provider
from scripts.lib.config import BROCHURE_TEXT_LIMIT, Settings, get_settings
from scripts.lib.errors import APIError, DataError, HubError, NotFoundError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import get_row, update_rows

logger = setup_logger("brochure_extractor")

# Mirror column → CRM API name
BROCHURE_FIELDS = {
    "total_size_sqft": "Total_Size_Sq_Ft",
    "floor_count": "Floor_Count",
    "lifts": "Lifts",
    "built_year": "Built_Year",
    "refurbished_year": "Refurbished_Year",
    "parking": "Parking",
    "epc_rating": "EPC_Rating",
    "breeam_rating": "BREEAM_Rating",
    "marketing_fit_out": "Marketing_Fit_Out",
}

SYSTEM_PROMPT = "You are a real estate data extraction assistant."

EXTRACTION_PROMPT = """Extract the following property details from the text below.
Return ONLY a valid JSON object with these keys (use null if not found):
- total_size_sqft (number, remove commas)
- floor_count (number)
- lifts (string description)
- built_year (number)
- refurbished_year (number)
- parking (string description)
- epc_rating (string, e.g. "A", "B")
- breeam_rating (string, e.g. "Excellent")
- marketing_fit_out (string: "Shell", "Cat A", or "Cat A+")

Text:
{text}
"""


async def download_document(url: str) -> bytes:
    async with aiohttp.ClientSession() as session:
        async with session.get(url) as resp:
            if resp.status >= 400:
                raise APIError(
                    f"Failed to download document: {resp.reason}",
                    code="DOWNLOAD_FAILED", status_code=502, url=url,
                )
            return await resp.read()


def extract_pdf_text(data: bytes, limit: int = BROCHURE_TEXT_LIMIT) -> str:
    """Concatenated page text, truncated to `limit` characters."""
    parts = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    parts.append(page_text)
    except Exception as e:
        raise DataError("Failed to parse PDF text", code="PDF_PARSE_FAILED",
                        details={"error": str(e)}) from e

    text = "\n\n".join(parts)
    return text[:limit]


async def extract_fields(text: str, settings: Settings, client=None) -> Dict[str, Any]:
    """Ask the model for the brochure fields; returns its JSON object."""
    response = await ai_complete(
        task="brochure_extraction",
        system_prompt=SYSTEM_PROMPT,
        user_prompt=EXTRACTION_PROMPT.format(text=text),
        json_mode=True,
        settings=settings,
        client=client,
    )
    if not response.content:
        raise DataError(f"No content from {response.provider}", code="EXTRACTION_EMPTY")
    try:
        data = json.loads(response.content)
    except ValueError as e:
        raise DataError(f"{response.provider} returned invalid JSON", code="EXTRACTION_INVALID") from e
    return data if isinstance(data, dict) else {}


def clean_extraction(data: Dict[str, Any]) -> Dict[str, Any]:
    """Known fields only, nulls dropped so existing values are not wiped."""
    return {key: data[key] for key in BROCHURE_FIELDS if data.get(key) is not None}


def to_crm_fields(update: Dict[str, Any]) -> Dict[str, Any]:
    return {BROCHURE_FIELDS[key]: value for key, value in update.items() if value}


async def extract_brochure(
    property_id: str,
    document_url: str,
    db,
    zoho,
    settings: Settings = None,
    ai_client=None,
) -> Dict[str, Any]:
    """Run the full extraction for one mirrored property (by mirror id)."""
    settings = settings or get_settings()
    require_provider("Brochure extraction", settings)

    prop = get_row("properties", "id", property_id, select="id, zoho_id", client=db)
    if not prop:
        raise NotFoundError("Property", property_id)

    logger.info("Extracting data from brochure for property %s: %s", property_id, document_url)
    pdf_bytes = await download_document(document_url)
    text = extract_pdf_text(pdf_bytes)
    update = clean_extraction(await extract_fields(text, settings, ai_client))
    logger.info("Extracted %d fields for property %s", len(update), property_id)

    crm_updated = False
    if update:
        update_rows("properties", update, "id", property_id, client=db)

        crm_fields = to_crm_fields(update)
        if crm_fields and prop.get("zoho_id"):
            try:
                await zoho.update_record("Properties", prop["zoho_id"], crm_fields)
                crm_updated = True
            except (HubError, aiohttp.ClientError) as e:
                logger.warning("Zoho update failed for property %s: %s", prop["zoho_id"], e)

    return {"success": True, "data": update, "crmUpdated": crm_updated}
