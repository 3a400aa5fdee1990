"""
LinkedIn People Search (RapidAPI)
==================================

Looks up a contact's LinkedIn profile URL through a RapidAPI people-search
provider.

Strategy:
- Search "first last company", then "first last" if that returns nothing
- Prefer an item whose first/last name matches exactly, else the first item

Setup:
1. Subscribe to a people-search API on RapidAPI
2. Set RAPIDAPI_KEY (and RAPIDAPI_HOST if not the default provider) in .env
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import aiohttp

from scripts.lib.config import Settings, get_settings
from scripts.lib.errors import EnrichmentAPIError, NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger("linkedin")

PROFILE_URL_BASE = "https://www.linkedin.com/in/"


def extract_items(response: Any) -> List[Dict[str, Any]]:
    """People list from any of the provider's response shapes."""
    if not isinstance(response, dict):
        return []
    data = response.get("data")
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    for candidate in (data, response.get("results"), response.get("items")):
        if isinstance(candidate, list):
            return candidate
    return []


def profile_url(item: Dict[str, Any]) -> Optional[str]:
    for key in ("linkedin_url", "profile_url", "profileURL", "url"):
        if item.get(key):
            return item[key]
    identifier = item.get("public_identifier") or item.get("username")
    return f"{PROFILE_URL_BASE}{identifier}" if identifier else None


def _name_parts(item: Dict[str, Any]):
    full = (item.get("full_name") or item.get("fullName") or "").split(" ")
    first = item.get("first_name") or item.get("firstName") or full[0]
    last = item.get("last_name") or item.get("lastName") or " ".join(full[1:])
    return first.lower(), last.lower()


def find_best_match(items: List[Dict[str, Any]], first_name: str, last_name: str) -> Optional[str]:
    """Exact first/last name match wins; otherwise the first result's URL."""
    target = (first_name.lower(), last_name.lower())
    for item in items:
        if _name_parts(item) == target:
            url = profile_url(item)
            if url:
                logger.info("Found exact match: %s", url)
                return url
            break
    return profile_url(items[0]) if items else None


class LinkedInSearch:
    """RapidAPI people-search connector."""

    def __init__(self, settings: Settings = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self.settings.rapidapi_configured

    def _headers(self) -> Dict[str, str]:
        return {
            "x-rapidapi-key": self.settings.rapidapi_key,
            "x-rapidapi-host": self.settings.rapidapi_host,
        }

    async def search_people(self, keywords: str) -> Dict[str, Any]:
        """Raw provider response for one keyword search."""
        if not self.is_configured:
            raise NotConfiguredError("LinkedIn enrichment", missing=["RAPIDAPI_KEY"])

        url = f"https://{self.settings.rapidapi_host}/search-people"
        params = {"keywords": keywords, "start": "0"}
        async with aiohttp.ClientSession() as session:
            async with session.get(url, headers=self._headers(), params=params) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise EnrichmentAPIError("LinkedIn", resp.status, text[:500])

        try:
            return json.loads(text)
        except ValueError:
            raise EnrichmentAPIError("LinkedIn", 502, f"Invalid RapidAPI response: {text[:200]}")

    async def find_profile_url(self, first_name: str, last_name: str, company: str = None) -> Optional[str]:
        """Profile URL for a person, or None when no search returns anyone."""
        name = f"{first_name} {last_name}".strip()
        queries = [f"{name} {company}", name] if company else [name]

        for keywords in queries:
            items = extract_items(await self.search_people(keywords))
            if items:
                logger.info("Found %d results for %r", len(items), keywords)
                return find_best_match(items, first_name, last_name)

        logger.info("No LinkedIn results for %s", name)
        return None

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": "LinkedIn (RapidAPI)",
            "configured": self.is_configured,
            "host": self.settings.rapidapi_host,
        }
