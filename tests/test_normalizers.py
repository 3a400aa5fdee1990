"""Tests for contact type resolution and the CRM → mirror/DTO mappers."""

from datetime import datetime, timezone

import pytest

from models.crm_models import ZohoContactRecord
from scripts.lib.normalizers import (
    account_to_row,
    contact_to_dto,
    contact_to_row,
    contact_update_to_zoho,
    has_parent_property,
    hours_since,
    normalise_contact_type,
    property_row_to_dto,
    property_to_row,
    resolve_contact_type,
    unit_to_row,
)


class TestContactType:
    def test_landlord_tag_without_contact_type(self):
        record = {"id": "1", "Tag": [{"name": "VIP"}, {"name": "Landlord"}]}
        assert resolve_contact_type(record) == "Landlord"

    def test_no_type_and_no_tags_defaults_to_broker(self):
        assert resolve_contact_type({"id": "1"}) == "Broker"

    def test_first_known_tag_wins(self):
        record = {"id": "1", "Tag": [{"name": "Tenant"}, {"name": "Landlord"}]}
        assert resolve_contact_type(record) == "Tenant"

    def test_contact_type_field_beats_tags(self):
        record = {"id": "1", "Contact_Type": "Supplier", "Tag": [{"name": "Landlord"}]}
        assert resolve_contact_type(record) == "Supplier"

    def test_tag_match_is_exact(self):
        record = {"id": "1", "Tag": [{"name": "landlord"}, {"name": "Landlords"}]}
        assert resolve_contact_type(record) == "Broker"

    def test_blank_contact_type_falls_through_to_tags(self):
        record = {"id": "1", "Contact_Type": "  ", "Tag": [{"name": "Supplier"}]}
        assert resolve_contact_type(record) == "Supplier"

    def test_malformed_tags_never_raise(self):
        assert resolve_contact_type({"id": "1", "Tag": "Landlord"}) == "Broker"
        assert resolve_contact_type({"id": "1", "Tag": [None, 3, {"name": 7}]}) == "Broker"

    def test_accepts_model_instances(self):
        record = ZohoContactRecord(id="1", Tag=[{"name": "Disposal Agent"}])
        assert resolve_contact_type(record) == "Disposal Agent"

    @pytest.mark.parametrize("record", [
        {"id": "1", "Tag": [{"name": "Landlord"}]},
        {"id": "1", "Contact_Type": "agent"},
        {"id": "1"},
    ])
    def test_resolved_type_resolves_to_itself(self, record):
        first = resolve_contact_type(record)
        assert resolve_contact_type({"id": "1", "Contact_Type": first}) == first

    @pytest.mark.parametrize("raw,expected", [
        ("broker", "Flex Broker"),
        ("Brokers", "Flex Broker"),
        ("agent", "Disposal Agent"),
        ("Traditional Tenant Reps", "Tenant"),
        ("Consultant", "Consultant"),
    ])
    def test_aliases(self, raw, expected):
        assert normalise_contact_type(raw) == expected

    def test_empty_type_is_none(self):
        assert normalise_contact_type("") is None
        assert normalise_contact_type(None) is None


class TestContactRow:
    def test_maps_core_fields(self):
        row = contact_to_row({
            "id": "c1",
            "First_Name": "Ada",
            "Last_Name": "Lovelace",
            "Email": "ada@example.com",
            "Account_Name": {"id": "a1", "name": "Analytical Ltd"},
            "Mailing_City": "London",
            "Tag": [{"name": "Landlord"}],
        })
        assert row["zoho_id"] == "c1"
        assert row["full_name"] == "Ada Lovelace"
        assert row["company_name"] == "Analytical Ltd"
        assert row["account_id"] == "a1"
        assert row["contact_type"] == "Landlord"
        assert row["territory"] == "London"
        assert row["relationship_health"] == "good"
        assert row["phone"] is None

    def test_unnamed_contact(self):
        row = contact_to_row({"id": "c2"})
        assert row["full_name"] == "Unnamed Contact"
        assert row["email"] == ""
        assert row["contact_type"] == "Broker"

    def test_unknown_fields_are_not_mirrored(self):
        row = contact_to_row({"id": "c3", "Secret_Field": "x"})
        assert "Secret_Field" not in row
        assert "secret_field" not in row


class TestOtherRows:
    def test_account_row(self):
        row = account_to_row({"id": "a1", "Billing_City": "Leeds", "Employees": "1,200"})
        assert row["name"] == "Unnamed Account"
        assert row["city"] == "Leeds"
        assert row["employee_count"] == 1200

    def test_property_row_encodes_single_submarket_as_text(self):
        row = property_to_row({"id": "p1", "Name": "One Canada Square", "Submarkets": ["Docklands"]})
        assert row["submarket"] == "Docklands"

    def test_property_row_keeps_several_submarkets_as_json(self):
        row = property_to_row({"id": "p1", "Submarkets": ["City", "Shoreditch"]})
        assert row["submarket"] == '["City", "Shoreditch"]'

    def test_unit_row_parent_link(self):
        row = unit_to_row({"id": "u1", "Name": "3rd Floor", "Property": {"id": "p1", "name": "X"}})
        assert row["property_zoho_id"] == "p1"
        assert row["code"] == "3rd Floor"
        assert has_parent_property(row)

    def test_unit_without_parent(self):
        row = unit_to_row({"id": "u2"})
        assert row["property_zoho_id"] is None
        assert row["code"] == "u2"
        assert not has_parent_property(row)


class TestDtos:
    NOW = datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc)

    def test_hours_since(self):
        assert hours_since("2026-01-02T10:00:00+00:00", now=self.NOW) == 2
        assert hours_since("2026-01-03T10:00:00Z", now=self.NOW) == 0
        assert hours_since("not a date", now=self.NOW) is None

    def test_contact_dto_reads_custom_fields_via_accessors(self):
        dto = contact_to_dto({
            "id": "c1",
            "Last_Name": "Hopper",
            "Contact_Type": "broker",
            "Referral_Volume": 12,
            "Quality_Score": "high",
            "Submarket": "City",
        }, now=self.NOW)
        assert dto["name"] == "Hopper"
        assert dto["type"] == "Flex Broker"
        assert dto["referralVolume"] == 12
        assert dto["qualityScore"] is None
        assert dto["submarket"] == "City"

    def test_update_payload_only_sends_present_keys(self):
        update = contact_update_to_zoho({"email": "new@example.com", "phone": "", "type": "agent"})
        assert update == {"Email": "new@example.com", "Phone": None, "Contact_Type": "Disposal Agent"}

    def test_update_payload_account_lookup(self):
        assert contact_update_to_zoho({"accountId": "a9"}) == {"Account_Name": {"id": "a9"}}
        assert contact_update_to_zoho({"accountId": ""}) == {"Account_Name": None}

    def test_property_dto_defaults_and_stats(self):
        dto = property_row_to_dto({
            "id": "uuid-1",
            "zoho_id": "p1",
            "name": "Tower",
            "submarket": '["City"]',
            "epc_rating": "B",
            "units": [{"status": "Available"}, {"status": "Let"}, {"status": None}],
        })
        assert dto["submarket"] == "City"
        assert dto["country"] == "United Kingdom"
        assert dto["marketing"] == {"visibility": "Private", "status": "Draft", "fitOut": "Shell"}
        assert dto["compliance"]["epc"]["rating"] == "B"
        assert dto["stats"] == {"totalUnits": 3, "available": 2, "underOffer": 0, "let": 1}
