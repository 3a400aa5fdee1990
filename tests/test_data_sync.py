"""Tests for the sync pipeline, the ledger and webhook reconciliation."""

import pytest

from scripts.lib.data_sync import (
    apply_webhook,
    chunked,
    fetch_all_records,
    get_sync_status,
    sync_entities,
    sync_entity,
    upsert_in_chunks,
)
from scripts.lib.errors import SyncChunkError, SyncError
from tests.conftest import FakeZoho, make_pages


def _contacts(n):
    return [{"id": f"c{i}", "Last_Name": f"Person {i}"} for i in range(n)]


class TestFetch:
    @pytest.mark.asyncio
    async def test_follows_more_records(self):
        zoho = FakeZoho(pages={"Contacts": make_pages(_contacts(450))})
        records = await fetch_all_records(zoho, "Contacts")
        assert len(records) == 450
        assert [call[1] for call in zoho.list_calls] == [1, 2, 3]
        assert all(call[2] == 200 for call in zoho.list_calls)

    @pytest.mark.asyncio
    async def test_stops_at_page_cap(self):
        class Endless(FakeZoho):
            async def list_records(self, module, page=1, per_page=200, **kwargs):
                self.list_calls.append((module, page, per_page))
                return {"data": [{"id": f"{page}"}], "info": {"more_records": True}}

        zoho = Endless()
        records = await fetch_all_records(zoho, "Contacts")
        assert len(zoho.list_calls) == 100
        assert len(records) == 100


class TestChunks:
    def test_chunk_sizes(self):
        rows = [{"zoho_id": str(i)} for i in range(250)]
        assert [len(c) for c in chunked(rows)] == [100, 100, 50]

    def test_upserts_in_chunks(self, db):
        rows = [{"zoho_id": str(i)} for i in range(250)]
        assert upsert_in_chunks(db, "contacts", rows) == 250
        assert [len(call[1]) for call in db.upsert_calls] == [100, 100, 50]
        assert len(db.rows("contacts")) == 250

    def test_failing_chunk_keeps_earlier_chunks(self, db):
        db.fail_upsert_on = 2
        rows = [{"zoho_id": str(i)} for i in range(250)]
        with pytest.raises(SyncChunkError) as exc:
            upsert_in_chunks(db, "contacts", rows)
        assert exc.value.chunk_index == 1
        assert len(db.rows("contacts")) == 100
        assert len(db.upsert_calls) == 2


class TestSyncEntity:
    @pytest.mark.asyncio
    async def test_success_ledger(self, db):
        zoho = FakeZoho(pages={"Contacts": make_pages(_contacts(3))})
        assert await sync_entity("contacts", zoho, db) == {"synced": 3}
        ledger = db.rows("sync_status")
        assert [r["status"] for r in ledger] == ["in_progress", "success"]
        assert ledger[-1]["records_synced"] == 3
        assert {r["zoho_id"] for r in db.rows("contacts")} == {"c0", "c1", "c2"}

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, db):
        zoho = FakeZoho(pages={"Contacts": make_pages(_contacts(3))})
        await sync_entity("contacts", zoho, db)
        await sync_entity("contacts", zoho, db)
        assert len(db.rows("contacts")) == 3

    @pytest.mark.asyncio
    async def test_chunk_failure_writes_error_row(self, db):
        db.fail_upsert_on = 2
        zoho = FakeZoho(pages={"Contacts": make_pages(_contacts(250))})
        with pytest.raises(SyncChunkError):
            await sync_entity("contacts", zoho, db)
        ledger = db.rows("sync_status")
        assert [r["status"] for r in ledger] == ["in_progress", "error"]
        assert "chunk 1" in ledger[-1]["error_message"]
        assert len(db.rows("contacts")) == 100

    @pytest.mark.asyncio
    async def test_units_without_parent_are_skipped(self, db):
        units = [
            {"id": "u1", "Name": "G", "Property": {"id": "p1"}},
            {"id": "u2", "Name": "1"},
            {"id": "u3", "Name": "2", "Property": {"id": "p2"}},
        ]
        zoho = FakeZoho(pages={"Units": make_pages(units)})
        assert await sync_entity("units", zoho, db) == {"synced": 2}
        assert {r["zoho_id"] for r in db.rows("units")} == {"u1", "u3"}
        assert db.rows("sync_status")[-1]["records_synced"] == 2

    @pytest.mark.asyncio
    async def test_multi_select_text_field_does_not_fail_the_sync(self, db):
        contacts = [{"id": "c1", "Last_Name": "A"}, {"id": "c2", "Last_Name": "B", "Contact_Type": ["Landlord"]}]
        zoho = FakeZoho(pages={"Contacts": make_pages(contacts)})
        assert await sync_entity("contacts", zoho, db) == {"synced": 2}
        assert db.rows("sync_status")[-1]["status"] == "success"
        row = next(r for r in db.rows("contacts") if r["zoho_id"] == "c2")
        assert row["contact_type"] == "Landlord"

    @pytest.mark.asyncio
    async def test_flag_in_text_field_is_dropped(self, db):
        zoho = FakeZoho(pages={"Properties": make_pages([{"id": "p1", "Name": "Tower", "Parking": True, "Lifts": 4}])})
        assert await sync_entity("properties", zoho, db) == {"synced": 1}
        row = db.rows("properties")[0]
        assert row["parking"] is None
        assert row["lifts"] == "4"

    @pytest.mark.asyncio
    async def test_unknown_entity(self, db, zoho):
        with pytest.raises(SyncError):
            await sync_entity("deals", zoho, db)
        assert db.rows("sync_status") == []

    @pytest.mark.asyncio
    async def test_sync_all_runs_every_entity(self, db):
        zoho = FakeZoho(pages={"Contacts": make_pages(_contacts(2))})
        results = await sync_entities("all", zoho, db)
        assert results == {
            "contacts": {"synced": 2},
            "accounts": {"synced": 0},
            "properties": {"synced": 0},
            "units": {"synced": 0},
        }


class TestSyncStatus:
    @pytest.mark.asyncio
    async def test_latest_row_per_entity(self, db):
        zoho = FakeZoho(pages={"Contacts": make_pages(_contacts(2))})
        await sync_entity("contacts", zoho, db)
        status = get_sync_status(db)
        assert status["contacts"]["status"] == "success"
        assert status["contacts"]["recordsSynced"] == 2
        assert status["contacts"]["recordsInDb"] == 2
        assert status["accounts"]["status"] is None
        assert status["accounts"]["recordsInDb"] == 0


class TestWebhook:
    @pytest.mark.asyncio
    async def test_update_refetches_and_upserts(self, db):
        zoho = FakeZoho(records={"c1": {"id": "c1", "Last_Name": "Fresh", "Tag": [{"name": "Tenant"}]}})
        result = await apply_webhook({"module": "Contacts", "operation": "update", "ids": ["c1"]}, zoho, db)
        assert result == {"module": "Contacts", "ignored": False, "processed": 1, "failed": 0}
        assert db.rows("contacts")[0]["contact_type"] == "Tenant"
        assert db.rows("webhook_logs")[0]["status"] == "success"

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, db, zoho):
        db.tables["accounts"] = [{"id": "1", "zoho_id": "a1"}, {"id": "2", "zoho_id": "a2"}]
        await apply_webhook({"module": "accounts", "operation": "delete", "ids": "a1"}, zoho, db)
        assert [r["zoho_id"] for r in db.rows("accounts")] == ["a2"]
        assert db.rows("webhook_logs")[0]["event_type"] == "delete"

    @pytest.mark.asyncio
    async def test_missing_record_is_logged_and_others_continue(self, db):
        zoho = FakeZoho(records={"c2": {"id": "c2", "Last_Name": "Here"}})
        result = await apply_webhook({"module": "Contacts", "operation": "create", "ids": ["c1", "c2"]}, zoho, db)
        assert result["processed"] == 1
        assert result["failed"] == 1
        logs = db.rows("webhook_logs")
        assert [log["status"] for log in logs] == ["error", "success"]
        assert "not found in Zoho" in logs[0]["error_message"]

    @pytest.mark.asyncio
    async def test_unknown_module_ignored(self, db, zoho):
        result = await apply_webhook({"module": "Deals", "operation": "update", "ids": ["d1"]}, zoho, db)
        assert result["ignored"] is True
        assert db.rows("webhook_logs") == []
