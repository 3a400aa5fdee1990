"""
Brokerage Hub — Contact Enrichment
====================================
Best-effort LinkedIn profile lookup for mirrored contacts.

RapidAPI people search runs first; when it finds nothing and Google Custom
Search is configured, the best Google candidate scoring at least 40 is used.
Provider failures are logged and treated as "not found". The outcome is
written back to the contact row (linkedin_url, enrichment_status, enriched_at).

Usage:
    from scripts.lib.enrichment import enrich_contact
    result = await enrich_contact("123456000000", db)
    result["status"]   # "enriched" | "not_found" | "already_enriched"
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from integrations.google_cse import GoogleCSESearch
from integrations.linkedin import LinkedInSearch
from scripts.lib.errors import EnrichmentAPIError, NotConfiguredError, NotFoundError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import get_row, update_rows

logger = setup_logger("enrichment")

MIN_MATCH_SCORE = 40

CONTACT_COLUMNS = "zoho_id, first_name, last_name, company_name, linkedin_url, role, account_id"

# Failures that degrade to "not found" instead of failing the request
PROVIDER_ERRORS = (EnrichmentAPIError, aiohttp.ClientError)


async def _search_rapidapi(linkedin: LinkedInSearch, contact: Dict[str, Any]) -> Optional[str]:
    try:
        return await linkedin.find_profile_url(
            contact.get("first_name") or "",
            contact.get("last_name") or "",
            contact.get("company_name") or None,
        )
    except PROVIDER_ERRORS as e:
        logger.warning("RapidAPI search failed for %s, treating as not found: %s", contact["zoho_id"], e)
        return None


async def _search_google(google: GoogleCSESearch, contact: Dict[str, Any], db) -> Optional[str]:
    city = None
    if contact.get("account_id"):
        account = get_row("accounts", "zoho_id", contact["account_id"], select="city", client=db)
        city = (account or {}).get("city")

    try:
        candidates = await google.find_candidates(
            contact.get("first_name") or "",
            contact.get("last_name") or "",
            company=contact.get("company_name") or None,
            city=city,
            role=contact.get("role") or None,
        )
    except PROVIDER_ERRORS as e:
        logger.warning("Google search failed for %s, treating as not found: %s", contact["zoho_id"], e)
        return None

    if candidates and candidates[0]["matchScore"] >= MIN_MATCH_SCORE:
        return candidates[0]["url"]
    return None


async def enrich_contact(
    zoho_id: str,
    db,
    linkedin: LinkedInSearch = None,
    google: GoogleCSESearch = None,
) -> Dict[str, Any]:
    """Look up and store a contact's LinkedIn URL."""
    linkedin = linkedin or LinkedInSearch()
    if not linkedin.is_configured:
        raise NotConfiguredError("LinkedIn enrichment", missing=["RAPIDAPI_KEY"])

    contact = get_row("contacts", "zoho_id", zoho_id, select=CONTACT_COLUMNS, client=db)
    if not contact:
        raise NotFoundError("Contact", zoho_id)

    if contact.get("linkedin_url"):
        return {
            "success": True,
            "linkedinUrl": contact["linkedin_url"],
            "status": "already_enriched",
            "message": "Contact already has LinkedIn URL",
        }

    logger.info(
        "Searching LinkedIn for: %s %s, %s",
        contact.get("first_name"), contact.get("last_name"), contact.get("company_name"),
    )
    url = await _search_rapidapi(linkedin, contact)
    source = "rapidapi"

    if not url:
        google = google or GoogleCSESearch(linkedin.settings)
        if google.is_configured:
            url = await _search_google(google, contact, db)
            source = "google_cse"

    status = "enriched" if url else "not_found"
    update_rows("contacts", {
        "linkedin_url": url,
        "enrichment_status": status,
        "enriched_at": datetime.now(timezone.utc).isoformat(),
    }, "zoho_id", zoho_id, client=db)

    if url:
        logger.info("Enriched %s from %s: %s", zoho_id, source, url)
        return {
            "success": True,
            "linkedinUrl": url,
            "status": status,
            "source": source,
            "message": "LinkedIn profile found",
        }
    return {
        "success": False,
        "linkedinUrl": None,
        "status": status,
        "message": "No LinkedIn profile found",
    }
