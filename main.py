"""
Brokerage Hub — Entry Point
=============================

Run: python main.py
"""

import uvicorn

from scripts.lib.config import get_settings
from scripts.lib.logger import setup_logger

logger = setup_logger("brokerage-hub")

if __name__ == "__main__":
    settings = get_settings()

    logger.info("=" * 60)
    logger.info("  BROKERAGE HUB — CRM Mirror & Enrichment API")
    logger.info("=" * 60)
    logger.info("  Environment : %s", settings.environment)
    logger.info("  Server      : http://0.0.0.0:%s", settings.port)
    logger.info("  API Docs    : http://localhost:%s/docs", settings.port)
    logger.info("  Zoho DC     : %s", settings.zoho_dc)
    logger.info("  Debug       : %s", settings.debug)
    logger.info("=" * 60)

    uvicorn.run(
        "dashboard.api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )
