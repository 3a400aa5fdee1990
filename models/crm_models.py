"""
Brokerage Hub — CRM Record Models
===================================

Zoho CRM record shapes. Known fields are typed using the CRM's API names;
anything else the CRM sends is kept in the model's extension map so it is
preserved on round-trips but never read by typed logic by accident.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator


def _coerce_number(value: Any) -> Any:
    """CRM numeric fields occasionally arrive as free text; unreadable → None."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return None


def _coerce_int(value: Any) -> Any:
    number = _coerce_number(value)
    return int(number) if number is not None else None


def _coerce_lookup(value: Any) -> Any:
    if isinstance(value, str):
        return {"name": value}
    if isinstance(value, dict) or value is None:
        return value
    return None


def _coerce_text(value: Any) -> Any:
    """Text fields sometimes arrive as multi-select lists, flags or objects."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        parts = [str(v).strip() for v in value if isinstance(v, (str, int, float)) and not isinstance(v, bool)]
        return "; ".join(p for p in parts if p) or None
    return None


class ZohoRecord(BaseModel):
    """Common base: CRM id, timestamps, and the extension map."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    Created_Time: Optional[str] = None
    Modified_Time: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text_fields(cls, value: Any, info: ValidationInfo) -> Any:
        # Only plain optional-text fields; lookups, tags and numbers have their own
        if cls.model_fields[info.field_name].annotation == Optional[str]:
            return _coerce_text(value)
        return value

    def extension(self) -> Dict[str, Any]:
        """Fields the CRM sent that are not part of the typed model."""
        return dict(self.model_extra or {})

    def extra_number(self, key: str) -> Optional[float]:
        """Read a numeric custom field from the extension map, or None."""
        value = (self.model_extra or {}).get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    def extra_str(self, key: str) -> Optional[str]:
        value = (self.model_extra or {}).get(key)
        return value if isinstance(value, str) else None


class ZohoLookup(BaseModel):
    """Lookup field (e.g. Account_Name, Property)."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: Optional[str] = None


class ZohoTag(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None


class ZohoContactRecord(ZohoRecord):
    First_Name: Optional[str] = None
    Last_Name: Optional[str] = None
    Full_Name: Optional[str] = None
    Email: Optional[str] = None
    Phone: Optional[str] = None
    Mobile: Optional[str] = None
    Company: Optional[str] = None
    Title: Optional[str] = None
    Department: Optional[str] = None
    Account_Name: Optional[ZohoLookup] = None
    Mailing_Street: Optional[str] = None
    Mailing_City: Optional[str] = None
    Mailing_State: Optional[str] = None
    Mailing_Zip: Optional[str] = None
    Mailing_Country: Optional[str] = None
    Description: Optional[str] = None
    Lead_Source: Optional[str] = None
    Last_Activity_Time: Optional[str] = None
    Contact_Type: Optional[str] = None
    Tag: Optional[List[ZohoTag]] = None
    Territory: Optional[str] = None
    Relationship_Health: Optional[str] = None
    Relationship_Health_Score: Optional[float] = None
    LinkedIn_URL: Optional[str] = None

    coerce_account = field_validator("Account_Name", mode="before")(_coerce_lookup)
    coerce_score = field_validator("Relationship_Health_Score", mode="before")(_coerce_number)

    @field_validator("Tag", mode="before")
    @classmethod
    def coerce_tags(cls, value: Any) -> Any:
        """Keep only tag entries that look like tags; anything else is dropped."""
        if not isinstance(value, list):
            return None
        tags = []
        for item in value:
            if isinstance(item, dict):
                name = item.get("name")
                tags.append({**item, "name": name if isinstance(name, str) else None})
            elif isinstance(item, str):
                tags.append({"name": item})
        return tags


class ZohoAccountRecord(ZohoRecord):
    Account_Name: Optional[str] = None
    Account_Type: Optional[str] = None
    Industry: Optional[str] = None
    Billing_Street: Optional[str] = None
    Billing_City: Optional[str] = None
    Billing_Code: Optional[str] = None
    Billing_Country: Optional[str] = None
    Website: Optional[str] = None
    Phone: Optional[str] = None
    Fax: Optional[str] = None
    Employees: Optional[int] = None
    Annual_Revenue: Optional[float] = None
    Description: Optional[str] = None

    coerce_employees = field_validator("Employees", mode="before")(_coerce_int)
    coerce_revenue = field_validator("Annual_Revenue", mode="before")(_coerce_number)


class ZohoPropertyRecord(ZohoRecord):
    Name: Optional[str] = None
    Address_Line: Optional[str] = None
    Postcode: Optional[str] = None
    City: Optional[str] = None
    # Free text, sometimes a JSON-encoded list (see scripts.lib.submarkets)
    Submarkets: Optional[Union[str, List[Any]]] = None
    Country: Optional[str] = None
    Total_Size_Sq_Ft: Optional[float] = None
    Floor_Count: Optional[int] = None
    Lifts: Optional[str] = None
    Built_Year: Optional[int] = None
    Refurbished_Year: Optional[int] = None
    Parking: Optional[str] = None
    Marketing_Status: Optional[str] = None
    Marketing_Visibility: Optional[str] = None
    Marketing_Fit_Out: Optional[str] = None
    EPC_Rating: Optional[str] = None
    EPC_Ref: Optional[str] = None
    EPC_Expiry: Optional[str] = None
    BREEAM_Rating: Optional[str] = None

    coerce_size = field_validator("Total_Size_Sq_Ft", mode="before")(_coerce_number)
    coerce_counts = field_validator(
        "Floor_Count", "Built_Year", "Refurbished_Year", mode="before"
    )(_coerce_int)


class ZohoUnitRecord(ZohoRecord):
    Name: Optional[str] = None
    Property: Optional[ZohoLookup] = None
    Floor: Optional[str] = None
    Size_Sq_Ft: Optional[float] = None
    Desks: Optional[int] = None
    Status: Optional[str] = None
    Fit_Out: Optional[str] = None
    Price_Per_Sq_Ft: Optional[float] = None
    Price_Per_Month: Optional[float] = None
    Pipeline_Stage: Optional[str] = None

    coerce_property = field_validator("Property", mode="before")(_coerce_lookup)
    coerce_numbers = field_validator(
        "Size_Sq_Ft", "Price_Per_Sq_Ft", "Price_Per_Month", mode="before"
    )(_coerce_number)
    coerce_desks = field_validator("Desks", mode="before")(_coerce_int)


RECORD_MODELS = {
    "Contacts": ZohoContactRecord,
    "Accounts": ZohoAccountRecord,
    "Properties": ZohoPropertyRecord,
    "Units": ZohoUnitRecord,
}


def parse_record(module: str, raw: Dict[str, Any]) -> ZohoRecord:
    """Validate a raw CRM payload into its typed record model."""
    model = RECORD_MODELS.get(module, ZohoRecord)
    if isinstance(raw, model):
        return raw
    return model.model_validate(raw)
