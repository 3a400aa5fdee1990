"""
Brokerage Hub — Sync Runner
=============================

Runs a full CRM → Supabase refresh outside the API (cron, manual backfill).
Each entity type writes its own sync_status ledger rows, exactly as
POST /api/sync does.

Usage:
    python scripts/run_sync.py                      # all entity types
    python scripts/run_sync.py --entity contacts
    python scripts/run_sync.py --status             # print the ledger, no sync
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Path setup for standalone execution
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

from integrations.zoho import ZohoClient
from scripts.lib.data_sync import ENTITY_TYPES, get_sync_status, sync_entities
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import get_client

logger = setup_logger("run_sync")


async def run(entity: str) -> dict:
    zoho = ZohoClient()
    db = get_client()

    logger.info("=" * 50)
    logger.info("  Sync: %s", entity)
    logger.info("=" * 50)
    return await sync_entities(entity, zoho, db)


def main() -> int:
    parser = argparse.ArgumentParser(description="Brokerage Hub — CRM Sync")
    parser.add_argument(
        "--entity",
        choices=list(ENTITY_TYPES) + ["all"],
        default="all",
        help="Entity type to sync (default: all)",
    )
    parser.add_argument("--status", action="store_true", help="Print sync status and exit")
    args = parser.parse_args()

    try:
        if args.status:
            print(json.dumps(get_sync_status(get_client()), indent=2, default=str))
            return 0
        results = asyncio.run(run(args.entity))
    except HubError as e:
        logger.error("Sync failed: %s", e.message)
        return 1

    logger.info("Results: %s", results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
