"""
Brokerage Hub — API Server
============================

Back-office API for the brokerage dashboard. Live CRM calls go through the
Zoho connector; everything else is served from the Supabase mirror.

Route groups:
  /api/health              - Health check + integration status
  /api/sync                - Sync ledger status / trigger a full refresh
  /api/webhooks/zoho       - CRM webhook reconciliation
  /api/submarkets          - Cleaned submarket counts
  /api/contacts/*          - Live CRM contacts, enrichment, photos
  /api/accounts            - Mirrored accounts
  /api/properties/*        - Mirrored properties, brochure extraction
  /api/units               - Mirrored units
  /api/leads               - BANT-scored demo leads
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from integrations.google_cse import GoogleCSESearch
from integrations.linkedin import LinkedInSearch
from integrations.zoho import ZohoClient, ZohoTokenProvider
from scripts.lib.config import get_settings
from scripts.lib.errors import HubError, NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger("api")

VERSION = "1.0.0"


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting Brokerage Hub...")

    settings = get_settings()
    app.state.zoho = ZohoClient(ZohoTokenProvider(settings))
    status = "configured" if app.state.zoho.is_configured else "not configured"
    logger.info("Zoho CRM integration: %s", status)
    if not settings.supabase_configured:
        logger.warning("Supabase not configured; mirror endpoints will return 503")

    logger.info("Brokerage Hub ready")
    yield
    logger.info("Shutting down Brokerage Hub...")


# ─── App Setup ────────────────────────────────────────────────

app = FastAPI(
    title="Brokerage Hub",
    version=VERSION,
    description="Commercial real-estate back office: CRM mirror, enrichment and lead scoring",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error Handlers ───────────────────────────────────────────

@app.exception_handler(NotConfiguredError)
async def not_configured_handler(request: Request, exc: NotConfiguredError):
    logger.warning("%s %s: %s not configured", request.method, request.url.path, exc.feature)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": f"{exc.feature} not configured", "message": exc.message},
    )


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message},
    )


# ─── Include Routers ──────────────────────────────────────────

from dashboard.api.routers.sync import router as sync_router
from dashboard.api.routers.webhooks import router as webhooks_router
from dashboard.api.routers.submarkets import router as submarkets_router
from dashboard.api.routers.contacts import router as contacts_router
from dashboard.api.routers.accounts import router as accounts_router
from dashboard.api.routers.properties import router as properties_router
from dashboard.api.routers.units import router as units_router
from dashboard.api.routers.leads import router as leads_router

app.include_router(sync_router)
app.include_router(webhooks_router)
app.include_router(submarkets_router)
app.include_router(contacts_router)
app.include_router(accounts_router)
app.include_router(properties_router)
app.include_router(units_router)
app.include_router(leads_router)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
async def health():
    """Health check with integration status."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "Brokerage Hub",
        "version": VERSION,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": {
            "zoho": ZohoClient(settings=settings).get_status(),
            "supabase": {"name": "Supabase", "configured": settings.supabase_configured},
            "linkedin": LinkedInSearch(settings).get_status(),
            "google_cse": GoogleCSESearch(settings).get_status(),
            "ai": {"name": "AI provider", "provider": settings.ai_provider, "configured": settings.ai_configured},
        },
    }
