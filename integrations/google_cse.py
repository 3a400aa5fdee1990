"""
Google Custom Search — LinkedIn Profile Lookup
================================================

Finds LinkedIn profiles through a Programmable Search Engine and ranks
candidates with a simple match score:

  +50  title name equals "first last"     (else +40 both parts, else +20 last name)
  +30  company (full, suffix-stripped or first word) in snippet/headline
  +15  city in snippet/headline
  +15  role in snippet/headline
  +5   professional headline (Director, Manager, Partner, ...)

Setup:
1. Create a search engine restricted to linkedin.com
2. Set GOOGLE_CSE_API_KEY and GOOGLE_CSE_ID in .env
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import aiohttp

from scripts.lib.config import Settings, get_settings
from scripts.lib.errors import EnrichmentAPIError, NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger("google_cse")

CSE_URL = "https://www.googleapis.com/customsearch/v1"

GOOD_MATCH_SCORE = 60
MAX_CANDIDATES = 5

PROFESSIONAL_TITLES = ("Director", "Manager", "Partner", "Associate", "MRICS", "Surveyor")

_COMPANY_SUFFIXES = re.compile(
    r",?\s*(inc|ltd|llc|ip|plc|corp|corporation|limited|company)\.?$", re.IGNORECASE
)
_SCORE_SUFFIXES = re.compile(r",?\s*(inc\.?|ltd\.?|llc\.?|ip\.?|plc\.?)$", re.IGNORECASE)
_TITLE_SITE = re.compile(r"\s*[|-]\s*LinkedIn.*$", re.IGNORECASE)


def clean_company_name(name: str) -> str:
    """Strip trailing legal suffixes (Ltd, Inc, PLC, ...) until none remain."""
    cleaned = name
    while True:
        stripped = _COMPANY_SUFFIXES.sub("", cleaned).strip()
        if stripped == cleaned:
            return cleaned
        cleaned = stripped


def _image_url(item: Dict[str, Any]) -> Optional[str]:
    pagemap = item.get("pagemap") or {}
    metatags = pagemap.get("metatags") or [{}]
    if metatags[0].get("og:image"):
        return metatags[0]["og:image"]
    for key in ("cse_image", "cse_thumbnail"):
        images = pagemap.get(key) or []
        if images and images[0].get("src"):
            return images[0]["src"]
    return None


def extract_candidate(
    item: Dict[str, Any],
    first_name: str,
    last_name: str,
    company: str = None,
    city: str = None,
    role: str = None,
) -> Optional[Dict[str, Any]]:
    """Scored candidate for one search item; None when it is not a profile page."""
    link = item.get("link") or ""
    if "linkedin.com/in/" not in link:
        return None

    title = item.get("title") or ""
    snippet = item.get("snippet") or ""
    name = _TITLE_SITE.sub("", title).strip()

    title_parts = title.split(" - ")
    headline = ""
    if len(title_parts) > 1:
        headline = re.sub(r"\s*\|.*$", "", " - ".join(title_parts[1:])).strip()
    if not headline and snippet:
        headline = snippet.split("·")[0].strip()

    name_lower = name.lower()
    snippet_lower = snippet.lower()
    headline_lower = headline.lower()
    first, last = first_name.lower(), last_name.lower()

    score = 0
    if name_lower == f"{first} {last}":
        score += 50
    elif first in name_lower and last in name_lower:
        score += 40
    elif last in name_lower:
        score += 20

    if company:
        company_lower = company.lower()
        variations = (
            company_lower,
            _SCORE_SUFFIXES.sub("", company_lower).strip(),
            company_lower.split(" ")[0],
        )
        for variation in variations:
            if len(variation) > 2 and (variation in snippet_lower or variation in headline_lower):
                score += 30
                break

    if city and (city.lower() in snippet_lower or city.lower() in headline_lower):
        score += 15
    if role and (role.lower() in headline_lower or role.lower() in snippet_lower):
        score += 15
    if headline and any(word in headline for word in PROFESSIONAL_TITLES):
        score += 5

    return {
        "name": name,
        "headline": headline,
        "url": link,
        "imageUrl": _image_url(item),
        "matchScore": score,
    }


def build_queries(first_name: str, last_name: str, company: str = None,
                  city: str = None, role: str = None) -> List[Dict[str, str]]:
    """Search strategies, most specific first."""
    person = f'"{first_name} {last_name}"'
    queries = []
    if company:
        queries.append({"type": "company_strict", "query": f'{person} "{company}" site:linkedin.com/in/'})
        cleaned = clean_company_name(company)
        if cleaned != company and len(cleaned) > 2:
            queries.append({"type": "company_cleaned", "query": f'{person} "{cleaned}" site:linkedin.com/in/'})
    if city:
        queries.append({"type": "city_match", "query": f'{person} "{city}" site:linkedin.com/in/'})
    if role:
        queries.append({"type": "role_match", "query": f'{person} "{role}" site:linkedin.com/in/'})
    queries.append({"type": "industry_real_estate", "query": f'{person} "Real Estate" site:linkedin.com/in/'})
    queries.append({"type": "industry_property", "query": f'{person} "Property" site:linkedin.com/in/'})
    queries.append({"type": "name_only_fallback", "query": f"{person} site:linkedin.com/in/"})
    queries.append({"type": "broad_fallback", "query": f"{person} LinkedIn"})
    return queries


class GoogleCSESearch:
    """Google Programmable Search connector."""

    def __init__(self, settings: Settings = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self.settings.google_cse_configured

    async def search(self, query: str) -> Dict[str, Any]:
        if not self.is_configured:
            raise NotConfiguredError("Google search", missing=["GOOGLE_CSE_API_KEY", "GOOGLE_CSE_ID"])

        params = {
            "key": self.settings.google_cse_api_key,
            "cx": self.settings.google_cse_id,
            "q": query,
        }
        async with aiohttp.ClientSession() as session:
            async with session.get(CSE_URL, params=params) as resp:
                data = await resp.json(content_type=None)
                status = resp.status

        if status >= 400 or (isinstance(data, dict) and data.get("error")):
            message = ((data or {}).get("error") or {}).get("message", "") if isinstance(data, dict) else ""
            raise EnrichmentAPIError("Google CSE", status if status >= 400 else 502, message)
        return data or {}

    async def find_candidates(self, first_name: str, last_name: str, company: str = None,
                              city: str = None, role: str = None) -> List[Dict[str, Any]]:
        """
        Run the query strategies in order and return the best candidates.

        Stops early once a candidate reaches GOOD_MATCH_SCORE, and skips the
        fallback queries once three candidates are in hand. A failing query is
        logged and the next one is tried.
        """
        candidates: List[Dict[str, Any]] = []
        seen = set()

        for strategy in build_queries(first_name, last_name, company, city, role):
            if len(candidates) >= 3 and "fallback" in strategy["type"]:
                break
            try:
                results = await self.search(strategy["query"])
            except EnrichmentAPIError as e:
                logger.warning("Google CSE %s query failed: %s", strategy["type"], e.message)
                continue

            fresh = []
            for item in results.get("items") or []:
                candidate = extract_candidate(item, first_name, last_name, company, city, role)
                if candidate and candidate["url"] not in seen:
                    seen.add(candidate["url"])
                    fresh.append(candidate)
            candidates.extend(fresh)

            if any(c["matchScore"] >= GOOD_MATCH_SCORE for c in fresh):
                logger.info("High confidence match from %s, stopping search", strategy["type"])
                break

        candidates.sort(key=lambda c: c["matchScore"], reverse=True)
        return candidates[:MAX_CANDIDATES]

    def get_status(self) -> Dict[str, Any]:
        return {"name": "Google Custom Search", "configured": self.is_configured}
