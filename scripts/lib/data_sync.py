"""
Brokerage Hub — Data Sync Module
==================================
Full-refresh mirror of Zoho CRM modules into Supabase tables, plus
webhook-driven single-record reconciliation.

Each run appends to the `sync_status` ledger: an `in_progress` row at the
start, then a `success` row with the upserted count or an `error` row with
the captured message. Rows are never updated in place.

Usage:
    from scripts.lib.data_sync import sync_entities, get_sync_status

    results = await sync_entities("all", zoho, db)   # {"contacts": {"synced": n}, ...}
    status = get_sync_status(db)                     # latest ledger row per entity
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from scripts.lib.config import UPSERT_CHUNK_SIZE, ZOHO_MAX_PAGES, ZOHO_PAGE_SIZE
from scripts.lib.errors import SyncChunkError, SyncError
from scripts.lib.logger import setup_logger
from scripts.lib.normalizers import (
    account_to_row,
    contact_to_row,
    has_parent_property,
    property_to_row,
    unit_to_row,
)
from scripts.lib.supabase_client import (
    count_rows,
    delete_rows,
    insert_row,
    latest_row,
    upsert_rows,
)

logger = setup_logger("data_sync")

CONFLICT_COLUMN = "zoho_id"


@dataclass(frozen=True)
class SyncEntity:
    """One mirrored CRM module."""
    entity_type: str
    module: str
    table: str
    transform: Callable[[Any], Dict[str, Any]]
    row_filter: Optional[Callable[[Dict[str, Any]], bool]] = None


SYNC_ENTITIES: Dict[str, SyncEntity] = {
    "contacts": SyncEntity("contacts", "Contacts", "contacts", contact_to_row),
    "accounts": SyncEntity("accounts", "Accounts", "accounts", account_to_row),
    "properties": SyncEntity("properties", "Properties", "properties", property_to_row),
    "units": SyncEntity("units", "Units", "units", unit_to_row, row_filter=has_parent_property),
}

ENTITY_TYPES = tuple(SYNC_ENTITIES)

# Webhook payloads name the CRM module, not the entity type
_BY_MODULE = {entity.module.lower(): entity for entity in SYNC_ENTITIES.values()}


# ---------------------------------------------------------------------------
# Fetch / chunk / load
# ---------------------------------------------------------------------------

async def fetch_all_records(
    zoho,
    module: str,
    page_size: int = ZOHO_PAGE_SIZE,
    max_pages: int = ZOHO_MAX_PAGES,
) -> List[Dict[str, Any]]:
    """Page through a CRM module while `info.more_records` holds, up to `max_pages`."""
    records: List[Dict[str, Any]] = []
    for page in range(1, max_pages + 1):
        response = await zoho.list_records(module, page=page, per_page=page_size)
        records.extend(response.get("data") or [])
        if not (response.get("info") or {}).get("more_records"):
            break
    else:
        logger.warning(
            "%s: stopped at the %d-page safety cap with more records reported",
            module, max_pages,
        )
    return records


def chunked(rows: List[Dict[str, Any]], size: int = UPSERT_CHUNK_SIZE) -> Iterator[List[Dict[str, Any]]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def upsert_in_chunks(db, table: str, rows: List[Dict[str, Any]], size: int = UPSERT_CHUNK_SIZE) -> int:
    """
    Upsert rows in fixed-size chunks keyed on zoho_id.

    The first failing chunk raises SyncChunkError; chunks before it stay
    committed and later chunks are not attempted.
    """
    total = 0
    for index, chunk in enumerate(chunked(rows, size)):
        try:
            upsert_rows(table, chunk, on_conflict=CONFLICT_COLUMN, client=db)
        except Exception as e:
            logger.error("Chunk %d of %s failed after %d rows: %s", index, table, total, e)
            raise SyncChunkError(table, index, e) from e
        total += len(chunk)
    return total


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

def _record_run(db, entity_type: str, status: str, records_synced: int = 0, error_message: str = None) -> None:
    row = {
        "entity_type": entity_type,
        "status": status,
        "records_synced": records_synced,
    }
    if error_message is not None:
        row["error_message"] = error_message
    insert_row("sync_status", row, client=db)


def _error_text(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or error.__class__.__name__


def get_entity(entity_type: str) -> SyncEntity:
    entity = SYNC_ENTITIES.get(entity_type)
    if entity is None:
        raise SyncError(entity_type, f"Unknown entity type: {entity_type}", code="UNKNOWN_ENTITY")
    return entity


# ---------------------------------------------------------------------------
# Sync runs
# ---------------------------------------------------------------------------

async def sync_entity(entity_type: str, zoho, db) -> Dict[str, int]:
    """Full refresh of one entity type. Re-raises after writing the error ledger row."""
    entity = get_entity(entity_type)
    _record_run(db, entity_type, "in_progress")

    try:
        records = await fetch_all_records(zoho, entity.module)
        logger.info("Fetched %d %s from Zoho", len(records), entity.entity_type)

        rows = [entity.transform(record) for record in records]
        if entity.row_filter:
            kept = [row for row in rows if entity.row_filter(row)]
            if len(kept) != len(rows):
                logger.info("Skipped %d %s without a parent link", len(rows) - len(kept), entity.entity_type)
            rows = kept

        synced = upsert_in_chunks(db, entity.table, rows)
    except Exception as e:
        logger.error("Sync of %s failed: %s", entity_type, e)
        _record_run(db, entity_type, "error", error_message=_error_text(e))
        raise

    _record_run(db, entity_type, "success", records_synced=synced)
    logger.info("Synced %d %s", synced, entity_type)
    return {"synced": synced}


async def sync_entities(entity: str, zoho, db) -> Dict[str, Dict[str, int]]:
    """Sync one entity type, or all of them in order when `entity` is "all"."""
    targets = ENTITY_TYPES if entity == "all" else (get_entity(entity).entity_type,)
    results = {}
    for entity_type in targets:
        logger.info("Starting %s sync...", entity_type)
        results[entity_type] = await sync_entity(entity_type, zoho, db)
    return results


def get_sync_status(db) -> Dict[str, Dict[str, Any]]:
    """Latest ledger row and current mirror size per entity type."""
    status = {}
    for entity_type, entity in SYNC_ENTITIES.items():
        last = latest_row(
            "sync_status", {"entity_type": entity_type}, order_by="last_sync_at", client=db
        ) or {}
        status[entity_type] = {
            "lastSync": last.get("last_sync_at"),
            "status": last.get("status"),
            "recordsSynced": last.get("records_synced"),
            "errorMessage": last.get("error_message"),
            "recordsInDb": count_rows(entity.table, client=db),
        }
    return status


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------

def _log_webhook(db, module: str, event_type: str, zoho_id: str, payload: Dict,
                 status: str, error_message: str = None) -> None:
    insert_row("webhook_logs", {
        "module": module,
        "event_type": event_type,
        "zoho_id": zoho_id,
        "payload": payload,
        "status": status,
        "error_message": error_message,
    }, client=db)


async def _reconcile_one(entity: SyncEntity, operation: str, record_id: str, zoho, db) -> None:
    if operation == "delete":
        delete_rows(entity.table, CONFLICT_COLUMN, record_id, client=db)
        return

    record = await zoho.get_record(entity.module, record_id)
    if record is None:
        raise SyncError(entity.entity_type, f"{entity.module} record {record_id} not found in Zoho")

    row = entity.transform(record)
    if entity.row_filter and not entity.row_filter(row):
        raise SyncError(entity.entity_type, f"{entity.module} record {record_id} has no parent link")
    upsert_rows(entity.table, [row], on_conflict=CONFLICT_COLUMN, client=db)


async def apply_webhook(payload: Dict[str, Any], zoho, db) -> Dict[str, Any]:
    """
    Reconcile the records named by a CRM webhook.

    `delete` removes mirror rows; anything else re-fetches each record from
    the CRM and upserts it. Every id gets a webhook_logs row; a failing id
    does not stop the rest. Modules that are not mirrored are ignored.
    """
    module = (payload.get("module") or "").lower()
    operation = (payload.get("operation") or "").lower()
    ids = payload.get("ids") or []
    if isinstance(ids, str):
        ids = [ids]

    entity = _BY_MODULE.get(module)
    if entity is None:
        logger.info("Ignoring webhook for module: %s", module or "<none>")
        return {"module": module, "ignored": True, "processed": 0, "failed": 0}

    event_type = "delete" if operation == "delete" else (operation or "update")
    processed = failed = 0
    for record_id in ids:
        record_id = str(record_id)
        try:
            await _reconcile_one(entity, operation, record_id, zoho, db)
        except Exception as e:
            failed += 1
            logger.error("Webhook %s %s %s failed: %s", entity.module, event_type, record_id, e)
            _log_webhook(db, entity.module, event_type, record_id, payload, "error", _error_text(e))
            continue
        processed += 1
        _log_webhook(db, entity.module, event_type, record_id, payload, "success")

    logger.info("Webhook %s %s: %d processed, %d failed", entity.module, event_type, processed, failed)
    return {"module": entity.module, "ignored": False, "processed": processed, "failed": failed}
