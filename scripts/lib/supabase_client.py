"""
Supabase Client Helper for Brokerage Hub.
Provides the connection plus the small set of table operations the mirror uses.

Unlike a best-effort cache, failures here propagate: the sync ledger and the
HTTP layer decide how to report them.

Usage:
    from scripts.lib.supabase_client import get_client, upsert_rows, search_table

    client = get_client()
    upsert_rows("contacts", rows, on_conflict="zoho_id")
    rows, total = search_table("units", filters={"status": "Available"}, limit=50)
"""
from typing import Any, Dict, List, Optional, Tuple

from supabase import create_client

from scripts.lib.config import get_settings
from scripts.lib.errors import NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

_client = None

# PostgREST caps a single response at this many rows by default
SELECT_PAGE_SIZE = 1000


def get_client():
    """Create and return a Supabase client (singleton)."""
    global _client
    if _client is not None:
        return _client

    settings = get_settings()
    if not settings.supabase_configured:
        raise NotConfiguredError(
            "Database",
            missing=["SUPABASE_URL", "SUPABASE_SERVICE_KEY"],
        )

    _client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info("Supabase client connected to %s", settings.supabase_url)
    return _client


def reset_client() -> None:
    """Drop the cached client (used after configuration changes)."""
    global _client
    _client = None


def insert_row(table: str, row: Dict, client=None) -> List[Dict]:
    """Insert a single row; returns the inserted rows."""
    client = client or get_client()
    result = client.table(table).insert(row).execute()
    return result.data or []


def upsert_rows(table: str, rows: List[Dict], on_conflict: str = None, client=None) -> int:
    """
    Upsert multiple rows into a table.

    Args:
        table: Table name.
        rows: List of row dicts.
        on_conflict: Conflict resolution column(s).

    Returns:
        Number of rows sent.
    """
    if not rows:
        return 0

    client = client or get_client()
    query = client.table(table)
    if on_conflict:
        query.upsert(rows, on_conflict=on_conflict).execute()
    else:
        query.insert(rows).execute()
    logger.info("Upserted %d rows into %s", len(rows), table)
    return len(rows)


def update_rows(table: str, values: Dict, column: str, value: Any, client=None) -> List[Dict]:
    """Update rows where `column` equals `value`; returns the updated rows."""
    client = client or get_client()
    result = client.table(table).update(values).eq(column, value).execute()
    return result.data or []


def delete_rows(table: str, column: str, value: Any, client=None) -> None:
    client = client or get_client()
    client.table(table).delete().eq(column, value).execute()


def count_rows(table: str, client=None) -> int:
    """Exact row count for a table."""
    client = client or get_client()
    result = client.table(table).select("id", count="exact").limit(1).execute()
    return result.count or 0


def get_row(table: str, column: str, value: Any, select: str = "*", client=None) -> Optional[Dict]:
    """First row where `column` equals `value`, or None."""
    client = client or get_client()
    result = client.table(table).select(select).eq(column, value).limit(1).execute()
    return result.data[0] if result.data else None


def latest_row(
    table: str,
    filters: Dict[str, Any],
    order_by: str,
    select: str = "*",
    client=None,
) -> Optional[Dict]:
    """Most recent row matching equality filters, ordered by `order_by` desc."""
    client = client or get_client()
    query = client.table(table).select(select)
    for col, val in filters.items():
        query = query.eq(col, val)
    result = query.order(order_by, desc=True).limit(1).execute()
    return result.data[0] if result.data else None


def call_rpc(name: str, params: dict = None, client=None) -> Any:
    """Call a Postgres function exposed through PostgREST."""
    client = client or get_client()
    result = client.rpc(name, params or {}).execute()
    return result.data


def select_column(table: str, column: str, page_size: int = SELECT_PAGE_SIZE, client=None) -> List[Dict]:
    """Every row's value for one column, read page by page past the server row cap."""
    client = client or get_client()
    rows: List[Dict] = []
    offset = 0
    while True:
        result = client.table(table).select(column).range(offset, offset + page_size - 1).execute()
        page = result.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size


def quote_filter_value(value: str) -> str:
    """Double-quote a value for a PostgREST filter so `,` `(` `)` stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def ilike_any(columns, term: str) -> str:
    """`or` expression matching `term` as a substring of any of `columns`."""
    pattern = quote_filter_value(f"%{term}%")
    return ",".join(f"{col}.ilike.{pattern}" for col in columns)


def search_table(
    table: str,
    select: str = "*",
    filters: Dict[str, Any] = None,
    or_filters: List[str] = None,
    order_by: str = None,
    desc: bool = True,
    limit: int = 25,
    offset: int = 0,
    client=None,
) -> Tuple[List[Dict], int]:
    """
    Paged query that also returns the exact total match count.

    Args:
        filters: Column=value equality filters.
        or_filters: PostgREST `or` expressions, each applied as its own group,
            e.g. [ilike_any(("name", "city"), "kings")].

    Returns:
        (rows, total)
    """
    client = client or get_client()
    query = client.table(table).select(select, count="exact")

    for col, val in (filters or {}).items():
        query = query.eq(col, val)
    for expression in or_filters or []:
        query = query.or_(expression)
    if order_by:
        query = query.order(order_by, desc=desc)

    result = query.range(offset, offset + limit - 1).execute()
    return result.data or [], result.count or 0
