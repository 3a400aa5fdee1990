"""
Brokerage Hub — Configuration
===============================
Environment-backed settings for the CRM, database and enrichment providers.

Values are read at call time (not import time) so that tests and long-running
processes see the current environment.

Usage:
    from scripts.lib.config import get_settings
    settings = get_settings()
    if settings.zoho_configured:
        ...
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Project root: Brokerage Hub/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

# ─── Fixed constants ────────────────────────────────────────

ZOHO_PAGE_SIZE = 200
ZOHO_MAX_PAGES = 100          # 20,000 records per module
UPSERT_CHUNK_SIZE = 100
TOKEN_EXPIRY_MARGIN = 60      # seconds
BROCHURE_TEXT_LIMIT = 100_000

ZOHO_REQUIRED_VARS = ("ZOHO_CLIENT_ID", "ZOHO_CLIENT_SECRET", "ZOHO_REFRESH_TOKEN")


@dataclass(frozen=True)
class Settings:
    """Snapshot of the environment."""
    zoho_client_id: str = ""
    zoho_client_secret: str = ""
    zoho_refresh_token: str = ""
    zoho_dc: str = "eu"
    supabase_url: str = ""
    supabase_key: str = ""
    sync_api_key: str = ""
    rapidapi_key: str = ""
    rapidapi_host: str = "professional-network-data.p.rapidapi.com"
    google_cse_api_key: str = ""
    google_cse_id: str = ""
    ai_provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    groq_api_key: str = ""
    anthropic_api_key: str = ""
    photo_bucket: str = "contact-photos"
    log_level: str = "INFO"
    port: int = 8001
    debug: bool = False
    environment: str = "development"
    missing_zoho: List[str] = field(default_factory=list)

    @property
    def zoho_token_url(self) -> str:
        return f"https://accounts.zoho.{self.zoho_dc}/oauth/v2/token"

    @property
    def zoho_api_base(self) -> str:
        return f"https://www.zohoapis.{self.zoho_dc}"

    @property
    def zoho_configured(self) -> bool:
        return not self.missing_zoho

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def rapidapi_configured(self) -> bool:
        return bool(self.rapidapi_key)

    @property
    def google_cse_configured(self) -> bool:
        return bool(self.google_cse_api_key and self.google_cse_id)

    @property
    def ai_configured(self) -> bool:
        """Key present for the provider AI_PROVIDER selects."""
        return bool({
            "openai": self.openai_api_key,
            "groq": self.groq_api_key,
            "claude": self.anthropic_api_key,
        }.get(self.ai_provider))


def get_settings() -> Settings:
    """Build settings from the current environment."""
    env = os.environ
    return Settings(
        zoho_client_id=env.get("ZOHO_CLIENT_ID", ""),
        zoho_client_secret=env.get("ZOHO_CLIENT_SECRET", ""),
        zoho_refresh_token=env.get("ZOHO_REFRESH_TOKEN", ""),
        zoho_dc=env.get("ZOHO_DC", "") or "eu",
        supabase_url=env.get("SUPABASE_URL", ""),
        supabase_key=(
            env.get("SUPABASE_SERVICE_KEY", "")
            or env.get("SUPABASE_SERVICE_ROLE_KEY", "")
        ),
        sync_api_key=env.get("SYNC_API_KEY", ""),
        rapidapi_key=env.get("RAPIDAPI_KEY", ""),
        rapidapi_host=env.get("RAPIDAPI_HOST", "") or "professional-network-data.p.rapidapi.com",
        google_cse_api_key=env.get("GOOGLE_CSE_API_KEY", ""),
        google_cse_id=env.get("GOOGLE_CSE_ID", ""),
        ai_provider=(env.get("AI_PROVIDER", "") or "openai").lower(),
        openai_api_key=env.get("OPENAI_API_KEY", ""),
        openai_model=env.get("OPENAI_MODEL", "") or "gpt-4o",
        groq_api_key=env.get("GROQ_API_KEY", ""),
        anthropic_api_key=env.get("ANTHROPIC_API_KEY", ""),
        photo_bucket=env.get("PHOTO_BUCKET", "") or "contact-photos",
        log_level=env.get("LOG_LEVEL", "INFO"),
        port=int(env.get("DASHBOARD_PORT", "8001")),
        debug=env.get("DEBUG", "false").lower() == "true",
        environment=env.get("ENVIRONMENT", "development"),
        missing_zoho=[key for key in ZOHO_REQUIRED_VARS if not env.get(key)],
    )
