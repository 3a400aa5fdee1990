"""Shared fixtures: in-memory Supabase and Zoho stand-ins."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest


class FakeResult:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Just enough of the PostgREST builder for the helpers in supabase_client."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[tuple] = []
        self.or_filters: List[str] = []
        self.order_by: Optional[tuple] = None
        self.window: Optional[tuple] = None
        self.want_count = False

    # builders
    def select(self, columns="*", count=None):
        self.action = "select"
        self.want_count = count == "exact"
        return self

    def insert(self, rows):
        self.action, self.payload = "insert", rows
        return self

    def upsert(self, rows, on_conflict=None):
        self.action, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def update(self, values):
        self.action, self.payload = "update", values
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def or_(self, expression):
        self.or_filters.append(expression)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.window = (0, n - 1)
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    # execution
    def _matches(self, row):
        return all(row.get(col) == val for col, val in self.filters)

    def execute(self):
        self.db.queries.append(self)
        return getattr(self, f"_run_{self.action}")()

    def _run_select(self):
        rows = [dict(r) for r in self.db.tables.get(self.table, []) if self._matches(r)]
        if self.order_by:
            col, desc = self.order_by
            rows.sort(key=lambda r: r.get(col) or "", reverse=desc)
        total = len(rows)
        if self.window:
            start, end = self.window
            rows = rows[start:end + 1]
        return FakeResult(rows, total if self.want_count else None)

    def _run_insert(self):
        rows = self.payload if isinstance(self.payload, list) else [self.payload]
        stored = [self.db.store(self.table, row) for row in rows]
        return FakeResult(stored)

    def _run_upsert(self):
        self.db.upsert_calls.append((self.table, list(self.payload)))
        if self.db.fail_upsert_on == len(self.db.upsert_calls):
            raise RuntimeError("duplicate key value violates unique constraint")
        stored = []
        table = self.db.tables.setdefault(self.table, [])
        for row in self.payload:
            existing = next((r for r in table if r.get(self.on_conflict) == row.get(self.on_conflict)), None)
            if existing is not None:
                existing.update(row)
                stored.append(dict(existing))
            else:
                stored.append(self.db.store(self.table, row))
        return FakeResult(stored)

    def _run_update(self):
        updated = []
        for row in self.db.tables.get(self.table, []):
            if self._matches(row):
                row.update(self.payload)
                updated.append(dict(row))
        return FakeResult(updated)

    def _run_delete(self):
        table = self.db.tables.get(self.table, [])
        removed = [r for r in table if self._matches(r)]
        self.db.tables[self.table] = [r for r in table if not self._matches(r)]
        return FakeResult(removed)


class FakeRpc:
    def __init__(self, result):
        self.result = result

    def execute(self):
        if isinstance(self.result, Exception):
            raise self.result
        return FakeResult(self.result)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def list(self, folder, options=None):
        if self.storage.fail_reads:
            raise RuntimeError("storage unavailable")
        search = (options or {}).get("search", "")
        prefix = f"{folder}/"
        items = []
        for path, obj in self.storage.objects.items():
            if path.startswith(prefix) and search in path[len(prefix):]:
                items.append({
                    "name": path[len(prefix):],
                    "updated_at": obj["updated_at"],
                    "metadata": {"mimetype": obj["content_type"]},
                })
        return items

    def download(self, path):
        return self.storage.objects[path]["content"]

    def upload(self, path, content, file_options=None):
        if self.storage.fail_writes:
            raise RuntimeError("storage unavailable")
        self.storage.uploads.append((self.name, path, file_options))
        self.storage.put(path, content, (file_options or {}).get("content-type", "image/jpeg"))


class FakeStorage:
    def __init__(self):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.uploads: List[tuple] = []
        self.fail_reads = False
        self.fail_writes = False

    def from_(self, bucket):
        return FakeBucket(self, bucket)

    def put(self, path, content, content_type="image/jpeg", updated_at=None):
        self.objects[path] = {
            "content": content,
            "content_type": content_type,
            "updated_at": updated_at or datetime.now(timezone.utc).isoformat(),
        }


class FakeSupabase:
    """In-memory stand-in for the supabase-py client."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.queries: List[FakeQuery] = []
        self.upsert_calls: List[tuple] = []
        self.fail_upsert_on: Optional[int] = None
        self.rpc_results: Dict[str, Any] = {}
        self.storage = FakeStorage()
        self._seq = 0

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRpc(self.rpc_results.get(name, []))

    def store(self, table, row):
        self._seq += 1
        stored = {"id": f"{table}-{self._seq}", **row}
        if table == "sync_status":
            minutes, seconds = divmod(self._seq, 60)
            stored.setdefault("last_sync_at", f"2026-01-01T00:{minutes:02d}:{seconds:02d}+00:00")
        self.tables.setdefault(table, []).append(stored)
        return dict(stored)

    def rows(self, table):
        return self.tables.get(table, [])


class FakeZoho:
    """CRM client stand-in serving canned pages and records."""

    def __init__(self, pages: Dict[str, List[Dict]] = None, records: Dict[str, Dict] = None):
        self.pages = pages or {}
        self.records = records or {}
        self.list_calls: List[tuple] = []
        self.updates: List[tuple] = []
        self.is_configured = True

    async def list_records(self, module, page=1, per_page=200, sort_by=None, sort_order=None):
        self.list_calls.append((module, page, per_page))
        pages = self.pages.get(module, [])
        if page > len(pages):
            return {"data": [], "info": {"more_records": False}}
        return pages[page - 1]

    async def get_record(self, module, record_id):
        return self.records.get(record_id)

    async def update_record(self, module, record_id, fields):
        self.updates.append((module, record_id, fields))


def make_pages(records: List[Dict], per_page: int = 200) -> List[Dict]:
    """Split records into CRM list responses with more_records set."""
    pages = []
    for start in range(0, len(records), per_page):
        chunk = records[start:start + per_page]
        pages.append({"data": chunk, "info": {"more_records": start + per_page < len(records)}})
    return pages or [{"data": [], "info": {"more_records": False}}]


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def zoho():
    return FakeZoho()
