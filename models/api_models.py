"""
Brokerage Hub — API Request Models
====================================

Request bodies for the dashboard API. Field names follow the dashboard's
camelCase JSON.
"""
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


SyncTarget = Literal["contacts", "accounts", "properties", "units", "all"]


# ─── Sync ───────────────────────────────────────────────────

class SyncRequest(BaseModel):
    """Which entity type to refresh."""
    entity: SyncTarget = "all"


class WebhookPayload(BaseModel):
    """Zoho workflow notification. Extra keys are logged with the event."""
    model_config = ConfigDict(extra="allow")

    module: Optional[str] = None
    operation: Optional[str] = None
    ids: Union[List[str], str] = Field(default_factory=list)


# ─── Contacts ───────────────────────────────────────────────

class ContactFields(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    company: Optional[str] = None
    type: Optional[str] = None
    role: Optional[str] = None
    territory: Optional[str] = None
    relationshipHealth: Optional[str] = None
    notes: Optional[str] = None
    accountId: Optional[str] = None


class ContactCreate(ContactFields):
    """New CRM contact. lastName and email are checked by the router (400)."""


class ContactUpdate(ContactFields):
    """Partial update; only fields present in the body are sent to the CRM."""


# ─── Properties ─────────────────────────────────────────────

class BrochureRequest(BaseModel):
    documentUrl: Optional[str] = None
