"""HTTP-level tests for the dashboard API."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from dashboard.api.main import app
from dashboard.api.middleware import get_db, get_zoho, require_zoho
from integrations.zoho import ZohoClient
from scripts.lib.config import Settings
from scripts.lib.supabase_client import reset_client
from tests.conftest import FakeSupabase, FakeZoho, make_pages


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def fake_zoho():
    return FakeZoho()


@pytest.fixture
def client(fake_db, fake_zoho):
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_zoho] = lambda: fake_zoho
    app.dependency_overrides[require_zoho] = lambda: fake_zoho
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert set(body["integrations"]) == {"zoho", "supabase", "linkedin", "google_cse", "ai"}


class TestNotConfigured:
    def test_database_missing_is_503(self):
        reset_client()
        env = {"SUPABASE_URL": "", "SUPABASE_SERVICE_KEY": "", "SUPABASE_SERVICE_ROLE_KEY": ""}
        with patch.dict("os.environ", env, clear=False):
            resp = TestClient(app).get("/api/submarkets")
        assert resp.status_code == 503
        assert resp.json()["error"] == "Database not configured"

    def test_zoho_missing_is_503(self):
        app.state.zoho = ZohoClient(settings=Settings(missing_zoho=["ZOHO_CLIENT_ID"]))
        try:
            resp = TestClient(app).get("/api/contacts")
        finally:
            del app.state.zoho
        assert resp.status_code == 503
        body = resp.json()
        assert body["error"] == "Zoho CRM not configured"
        assert "ZOHO_CLIENT_ID" in body["message"]


class TestSync:
    def test_key_required_when_set(self, client):
        with patch.dict("os.environ", {"SYNC_API_KEY": "secret"}, clear=False):
            assert client.get("/api/sync").status_code == 401
            assert client.get("/api/sync", headers={"X-API-Key": "wrong"}).status_code == 401
            assert client.get("/api/sync", headers={"X-API-Key": "secret"}).status_code == 200
            assert client.get("/api/sync?apiKey=secret").status_code == 200

    def test_open_when_key_unset(self, client):
        with patch.dict("os.environ", {"SYNC_API_KEY": ""}, clear=False):
            resp = client.get("/api/sync")
        assert resp.status_code == 200
        assert set(resp.json()) == {"contacts", "accounts", "properties", "units"}

    def test_run_single_entity(self, client, fake_db, fake_zoho):
        fake_zoho.pages["Contacts"] = make_pages([{"id": "c1", "Last_Name": "Doe"}])
        with patch.dict("os.environ", {"SYNC_API_KEY": ""}, clear=False):
            resp = client.post("/api/sync", json={"entity": "contacts"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["results"] == {"contacts": {"synced": 1}}
        assert fake_db.rows("contacts")[0]["zoho_id"] == "c1"

    def test_invalid_entity(self, client):
        with patch.dict("os.environ", {"SYNC_API_KEY": ""}, clear=False):
            assert client.post("/api/sync", json={"entity": "deals"}).status_code == 422


class TestWebhook:
    def test_processes_payload(self, client, fake_db, fake_zoho):
        fake_zoho.records["c1"] = {"id": "c1", "Last_Name": "Doe"}
        resp = client.post("/api/webhooks/zoho", json={"module": "Contacts", "operation": "update", "ids": ["c1"]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Webhook processed"
        assert body["processed"] == 1
        assert len(fake_db.rows("contacts")) == 1


class TestContacts:
    def test_create_requires_last_name_and_email(self, client):
        resp = client.post("/api/contacts", json={"firstName": "Jane"})
        assert resp.status_code == 400

    def test_missing_contact_is_404(self, client):
        assert client.get("/api/contacts/nope").status_code == 404

    def test_photo_not_found_is_not_cached(self, client):
        fake = MagicMock()
        fake.fetch_photo = AsyncMock(return_value=None)
        app.dependency_overrides[require_zoho] = lambda: fake
        resp = client.get("/api/contacts/c1/photo")
        assert resp.status_code == 404
        assert resp.headers["cache-control"] == "no-store"

    def test_photo_bytes(self, client):
        fake = MagicMock()
        fake.fetch_photo = AsyncMock(return_value=(b"\x89PNG", "image/png"))
        app.dependency_overrides[require_zoho] = lambda: fake
        resp = client.get("/api/contacts/c1/photo")
        assert resp.status_code == 200
        assert resp.content == b"\x89PNG"
        assert resp.headers["content-type"] == "image/png"


class TestMirrorEndpoints:
    def test_submarkets(self, client, fake_db):
        fake_db.tables["properties"] = [{"id": "1", "submarket": '["City"]'}, {"id": "2", "submarket": "City"}]
        assert client.get("/api/submarkets").json() == [{"submarket": "City", "count": 2}]

    def test_properties_list_shape(self, client, fake_db):
        fake_db.tables["properties"] = [{"id": "1", "name": "Tower", "submarket": "Soho", "units": []}]
        body = client.get("/api/properties?limit=5").json()
        assert body["total"] == 1
        assert body["limit"] == 5
        assert body["properties"][0]["name"] == "Tower"
        assert body["submarketStats"] == [{"submarket": "Soho", "count": 1}]

    def test_search_terms_with_filter_syntax_are_quoted(self, client, fake_db):
        fake_db.tables["properties"] = []
        resp = client.get("/api/properties", params={"search": "a,b(c)", "submarkets": "Soho (North)"})
        assert resp.status_code == 200
        (query,) = [q for q in fake_db.queries if q.table == "properties" and q.or_filters]
        assert query.or_filters[0].startswith('name.ilike."%a,b(c)%",')
        assert query.or_filters[1] == 'submarket.ilike."%Soho (North)%"'

    def test_unit_and_account_search_terms_are_quoted(self, client, fake_db):
        assert client.get("/api/units", params={"search": "G,(1)"}).status_code == 200
        assert client.get("/api/accounts", params={"search": "Smith (UK), Ltd"}).status_code == 200
        expressions = [e for q in fake_db.queries for e in q.or_filters]
        assert 'code.ilike."%G,(1)%",floor.ilike."%G,(1)%"' in expressions
        assert any(e.startswith('name.ilike."%Smith (UK), Ltd%"') for e in expressions)

    def test_brochure_requires_url(self, client):
        assert client.post("/api/properties/1/extract-brochure", json={}).status_code == 400

    def test_accounts_paging(self, client, fake_db):
        fake_db.tables["accounts"] = [{"id": str(i), "name": f"A{i}"} for i in range(3)]
        body = client.get("/api/accounts?pageSize=2").json()
        assert len(body["items"]) == 2
        assert body["total"] == 3
        assert body["moreRecords"] is True


class TestLeads:
    def test_grade_filter_keeps_full_stats(self, client):
        body = client.get("/api/leads?grade=a").json()
        assert len(body["leads"]) == 4
        assert {lead["grade"] for lead in body["leads"]} == {"A"}
        assert body["stats"]["total"] == 18
