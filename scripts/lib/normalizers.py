"""
Brokerage Hub — Field Normalizers
===================================
Pure functions mapping raw CRM records onto the hub's stable vocabulary.

  - Contact type resolution (dedicated field, then tag scan, then default)
  - CRM record → mirror row transformers (one per synced module)
  - CRM record / mirror row → dashboard DTOs
  - Dashboard PATCH payload → CRM field map

Usage:
    from scripts.lib.normalizers import resolve_contact_type, contact_to_row

    row = contact_to_row({"id": "1", "Tag": [{"name": "Landlord"}]})
    row["contact_type"]   # "Landlord"
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.crm_models import (
    ZohoAccountRecord,
    ZohoContactRecord,
    ZohoPropertyRecord,
    ZohoUnitRecord,
    parse_record,
)
from scripts.lib.submarkets import display_submarket, encode_submarket

DEFAULT_CONTACT_TYPE = "Broker"
DEFAULT_RELATIONSHIP_HEALTH = "good"

CONTACT_TYPE_ALIASES = {
    "flex broker": "Flex Broker",
    "broker": "Flex Broker",
    "brokers": "Flex Broker",
    "disposal agent": "Disposal Agent",
    "agent": "Disposal Agent",
    "tenant rep": "Tenant",
    "traditional tenant reps": "Tenant",
    "supplier": "Supplier",
    "landlord": "Landlord",
}

# Tag names recognised as a contact type, compared exactly
KNOWN_TYPE_TAGS = ("Broker", "Disposal Agent", "Tenant", "Landlord", "Supplier")


# ---------------------------------------------------------------------------
# Contact type
# ---------------------------------------------------------------------------

def normalise_contact_type(value: Optional[str]) -> Optional[str]:
    """Map a free-text type onto its canonical name; unknown text passes through."""
    if not value or not isinstance(value, str):
        return None
    return CONTACT_TYPE_ALIASES.get(value.lower(), value)


def _tag_names(tags: Any) -> List[str]:
    if not isinstance(tags, list):
        return []
    names = []
    for tag in tags:
        name = tag.get("name") if isinstance(tag, dict) else getattr(tag, "name", None)
        if isinstance(name, str):
            names.append(name)
    return names


def resolve_contact_type(record: Any) -> str:
    """
    Resolve one canonical contact type for a CRM contact.

    Contact_Type wins when present; otherwise the first tag naming a known
    type, in list order; otherwise "Broker". Accepts raw dicts or
    ZohoContactRecord instances and never raises.
    """
    if isinstance(record, dict):
        contact_type, tags = record.get("Contact_Type"), record.get("Tag")
    else:
        contact_type = getattr(record, "Contact_Type", None)
        tags = getattr(record, "Tag", None)

    if isinstance(contact_type, str) and contact_type.strip():
        return normalise_contact_type(contact_type)

    for name in _tag_names(tags):
        if name in KNOWN_TYPE_TAGS:
            return name

    return DEFAULT_CONTACT_TYPE


# ---------------------------------------------------------------------------
# CRM record → mirror row
# ---------------------------------------------------------------------------

def _as_record(module: str, record: Any):
    return parse_record(module, record) if isinstance(record, dict) else record


def _or_none(value: Any) -> Any:
    """Empty strings and zeroes become None, as the mirror stores them."""
    return value or None


def contact_to_row(record: Any) -> Dict[str, Any]:
    """Map a CRM contact onto a `contacts` row. Contact type uses the tag fallback."""
    c: ZohoContactRecord = _as_record("Contacts", record)
    first, last = c.First_Name or "", c.Last_Name or ""
    account = c.Account_Name

    return {
        "zoho_id": c.id,
        "first_name": first,
        "last_name": last,
        "full_name": c.Full_Name or f"{first} {last}".strip() or "Unnamed Contact",
        "email": c.Email or "",
        "phone": _or_none(c.Phone),
        "mobile": _or_none(c.Mobile),
        "role": _or_none(c.Title),
        "company_name": _or_none(account.name) if account else None,
        "account_id": _or_none(account.id) if account else None,
        "contact_type": resolve_contact_type(c),
        "territory": c.Territory or c.Mailing_City or None,
        "relationship_health": c.Relationship_Health or DEFAULT_RELATIONSHIP_HEALTH,
        "relationship_health_score": _or_none(c.Relationship_Health_Score),
        "description": _or_none(c.Description),
        "zoho_created_at": _or_none(c.Created_Time),
        "zoho_modified_at": _or_none(c.Modified_Time),
    }


def account_to_row(record: Any) -> Dict[str, Any]:
    a: ZohoAccountRecord = _as_record("Accounts", record)
    return {
        "zoho_id": a.id,
        "name": a.Account_Name or "Unnamed Account",
        "account_type": _or_none(a.Account_Type),
        "industry": _or_none(a.Industry),
        "address": _or_none(a.Billing_Street),
        "city": _or_none(a.Billing_City),
        "postcode": _or_none(a.Billing_Code),
        "country": _or_none(a.Billing_Country),
        "website": _or_none(a.Website),
        "phone": _or_none(a.Phone),
        "employee_count": _or_none(a.Employees),
        "annual_revenue": _or_none(a.Annual_Revenue),
        "description": _or_none(a.Description),
        "zoho_created_at": _or_none(a.Created_Time),
        "zoho_modified_at": _or_none(a.Modified_Time),
    }


def property_to_row(record: Any) -> Dict[str, Any]:
    p: ZohoPropertyRecord = _as_record("Properties", record)
    return {
        "zoho_id": p.id,
        "name": p.Name or "Unnamed Property",
        "address_line": _or_none(p.Address_Line),
        "postcode": _or_none(p.Postcode),
        "city": _or_none(p.City),
        "submarket": encode_submarket(p.Submarkets),
        "country": _or_none(p.Country),
        "total_size_sqft": _or_none(p.Total_Size_Sq_Ft),
        "floor_count": _or_none(p.Floor_Count),
        "lifts": _or_none(p.Lifts),
        "built_year": _or_none(p.Built_Year),
        "refurbished_year": _or_none(p.Refurbished_Year),
        "parking": _or_none(p.Parking),
        "marketing_status": _or_none(p.Marketing_Status),
        "marketing_visibility": _or_none(p.Marketing_Visibility),
        "marketing_fit_out": _or_none(p.Marketing_Fit_Out),
        "epc_rating": _or_none(p.EPC_Rating),
        "epc_ref": _or_none(p.EPC_Ref),
        "epc_expiry": _or_none(p.EPC_Expiry),
        "breeam_rating": _or_none(p.BREEAM_Rating),
        "zoho_created_at": _or_none(p.Created_Time),
        "zoho_modified_at": _or_none(p.Modified_Time),
    }


def unit_to_row(record: Any) -> Dict[str, Any]:
    """Map a CRM unit; `property_zoho_id` is None when the unit has no parent link."""
    u: ZohoUnitRecord = _as_record("Units", record)
    return {
        "zoho_id": u.id,
        "property_zoho_id": (u.Property.id or None) if u.Property else None,
        "code": u.Name or u.id,
        "floor": _or_none(u.Floor),
        "size_sqft": _or_none(u.Size_Sq_Ft),
        "desks": _or_none(u.Desks),
        "status": _or_none(u.Status),
        "fit_out": _or_none(u.Fit_Out),
        "price_psf": _or_none(u.Price_Per_Sq_Ft),
        "price_pcm": _or_none(u.Price_Per_Month),
        "pipeline_stage": _or_none(u.Pipeline_Stage),
        "zoho_created_at": _or_none(u.Created_Time),
        "zoho_modified_at": _or_none(u.Modified_Time),
    }


def has_parent_property(row: Dict[str, Any]) -> bool:
    return bool(row.get("property_zoho_id"))


# ---------------------------------------------------------------------------
# Dashboard DTOs
# ---------------------------------------------------------------------------

def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def hours_since(value: Any, now: Optional[datetime] = None) -> Optional[int]:
    """Whole hours elapsed since an ISO timestamp, clamped at 0; None if unparsable."""
    then = _parse_timestamp(value)
    if then is None:
        return None
    now = now or datetime.now(timezone.utc)
    return max(0, round((now - then).total_seconds() / 3600))


def contact_to_dto(record: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Shape a live CRM contact for the dashboard."""
    c: ZohoContactRecord = _as_record("Contacts", record)
    name = (
        c.Full_Name
        or f"{c.First_Name or ''} {c.Last_Name or ''}".strip()
        or c.Email
        or "Unnamed contact"
    )
    account = c.Account_Name

    return {
        "id": c.id,
        "name": name,
        "firstName": c.First_Name,
        "lastName": c.Last_Name,
        "email": c.Email,
        "phone": c.Phone,
        "mobile": c.Mobile,
        "company": c.Company or (account.name if account else None),
        "accountId": account.id if account else None,
        "type": normalise_contact_type(c.Contact_Type),
        "role": c.Title,
        "lastActivityHours": hours_since(c.Last_Activity_Time, now=now),
        "submarket": c.extra_str("Submarket"),
        "territory": c.Territory,
        "notes": c.Description,
        "health": c.Relationship_Health,
        "linkedinUrl": c.LinkedIn_URL,
        "referralVolume": c.extra_number("Referral_Volume"),
        "revenueAttribution": c.extra_number("Revenue_Attribution"),
        "conversionRate": c.extra_number("Conversion_Rate"),
        "commissionPaid": c.extra_number("Commission_Paid"),
        "qualityScore": c.extra_number("Quality_Score"),
    }


# Dashboard key → CRM API name
CONTACT_FIELD_MAP = {
    "firstName": "First_Name",
    "lastName": "Last_Name",
    "email": "Email",
    "phone": "Phone",
    "mobile": "Mobile",
    "company": "Company",
    "type": "Contact_Type",
    "role": "Title",
    "territory": "Territory",
    "relationshipHealth": "Relationship_Health",
    "notes": "Description",
    "accountId": "Account_Name",
}


def contact_update_to_zoho(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Translate only the keys present in a dashboard payload; blanks clear the field."""
    update: Dict[str, Any] = {}
    for key, api_name in CONTACT_FIELD_MAP.items():
        if key not in payload:
            continue
        value = payload[key]
        if key == "type":
            value = normalise_contact_type(value)
        elif key == "accountId":
            value = {"id": value} if value else None
        update[api_name] = value or None
    return update


def account_row_to_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "zohoId": row.get("zoho_id"),
        "name": row.get("name"),
        "type": row.get("account_type"),
        "industry": row.get("industry"),
        "address": row.get("address"),
        "city": row.get("city"),
        "postcode": row.get("postcode"),
        "country": row.get("country"),
        "website": row.get("website"),
        "phone": row.get("phone"),
        "employeeCount": row.get("employee_count"),
        "annualRevenue": row.get("annual_revenue"),
        "description": row.get("description"),
        "createdAt": row.get("zoho_created_at"),
        "updatedAt": row.get("zoho_modified_at"),
    }


def unit_row_to_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    dto = {
        "id": row.get("id"),
        "zohoId": row.get("zoho_id"),
        "code": row.get("code"),
        "floor": row.get("floor"),
        "sizeSqFt": row.get("size_sqft"),
        "desks": row.get("desks"),
        "status": row.get("status"),
        "fitOut": row.get("fit_out"),
        "pricePsf": row.get("price_psf"),
        "pricePcm": row.get("price_pcm"),
        "pipelineStage": row.get("pipeline_stage"),
        "updatedAt": row.get("updated_at"),
        "zohoModifiedAt": row.get("zoho_modified_at"),
    }
    parent = row.get("property")
    if isinstance(parent, dict):
        dto["property"] = {
            "id": parent.get("id"),
            "zohoId": parent.get("zoho_id"),
            "name": parent.get("name"),
            "addressLine": parent.get("address_line"),
            "city": parent.get("city"),
            "postcode": parent.get("postcode"),
        }
    return dto


def property_row_to_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    """Shape a mirrored property (with any embedded units) for the dashboard."""
    units = row.get("units") or []
    statuses = [u.get("status") or "Available" for u in units]
    epc = None
    if row.get("epc_rating"):
        epc = {
            "rating": row["epc_rating"],
            "ref": row.get("epc_ref"),
            "expires": row.get("epc_expiry"),
        }

    return {
        "id": row.get("id"),
        "zohoId": row.get("zoho_id"),
        "name": row.get("name"),
        "addressLine": row.get("address_line") or "",
        "postcode": row.get("postcode") or "",
        "city": row.get("city") or "",
        "submarket": display_submarket(row.get("submarket")),
        "country": row.get("country") or "United Kingdom",
        "totalSizeSqFt": row.get("total_size_sqft"),
        "floorCount": row.get("floor_count"),
        "lifts": row.get("lifts"),
        "builtYear": row.get("built_year"),
        "refurbishedYear": row.get("refurbished_year"),
        "parking": row.get("parking"),
        "marketing": {
            "visibility": row.get("marketing_visibility") or "Private",
            "status": row.get("marketing_status") or "Draft",
            "fitOut": row.get("marketing_fit_out") or "Shell",
        },
        "compliance": {"epc": epc, "breeam": row.get("breeam_rating")},
        "units": [unit_row_to_dto(u) for u in units],
        "stats": {
            "totalUnits": len(units),
            "available": statuses.count("Available"),
            "underOffer": statuses.count("Under Offer"),
            "let": statuses.count("Let"),
        },
        "updatedAt": row.get("updated_at"),
    }
