"""
Brokerage Hub — Contacts Router
=================================
Live CRM contacts (not the mirror), plus enrichment and photos.

Endpoints:
  GET    /api/contacts               - List contacts (page, pageSize)
  POST   /api/contacts               - Create a contact (lastName + email required)
  GET    /api/contacts/{id}          - Single contact
  PATCH  /api/contacts/{id}          - Update the fields present in the body
  DELETE /api/contacts/{id}          - Delete from the CRM
  POST   /api/contacts/{id}/enrich   - Find and store the LinkedIn URL
  GET    /api/contacts/{id}/photo    - Photo, cached in storage
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response

from dashboard.api.middleware import get_db, require_zoho
from models.api_models import ContactCreate, ContactUpdate
from scripts.lib.enrichment import enrich_contact
from scripts.lib.errors import HubError
from scripts.lib.logger import setup_logger
from scripts.lib.normalizers import contact_to_dto, contact_update_to_zoho
from scripts.lib.photo_cache import ERROR_CACHE_CONTROL, get_contact_photo

logger = setup_logger("contacts_router")

router = APIRouter(prefix="/api/contacts", tags=["contacts"])

MODULE = "Contacts"


async def _load_contact(zoho, contact_id: str) -> dict:
    record = await zoho.get_record(MODULE, contact_id)
    if not record:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact_to_dto(record)


@router.get("")
async def list_contacts(
    page: int = Query(1, ge=1, description="CRM page number"),
    pageSize: int = Query(200, ge=1, le=200, description="Records per page"),
    zoho=Depends(require_zoho),
):
    """List contacts straight from the CRM, most recently modified first."""
    try:
        response = await zoho.list_records(MODULE, page=page, per_page=pageSize, sort_by="Modified_Time")
        records = response.get("data") or []
        info = response.get("info") or {}
        items = [contact_to_dto(record) for record in records]
        return {
            "items": items,
            "page": page,
            "pageSize": pageSize,
            "total": info.get("count") or len(items),
            "moreRecords": bool(info.get("more_records")),
        }
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("List contacts failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch contacts")


@router.post("", status_code=201)
async def create_contact(body: ContactCreate, zoho=Depends(require_zoho)):
    """Create a contact in the CRM and return it as the dashboard sees it."""
    if not body.lastName or not body.email:
        raise HTTPException(status_code=400, detail="lastName and email are required")

    try:
        fields = contact_update_to_zoho(body.model_dump(exclude_none=True))
        contact_id = await zoho.create_record(MODULE, fields)
        if not contact_id:
            raise HTTPException(status_code=502, detail="Zoho did not return a Contact ID")
        logger.info("Created contact %s", contact_id)
        return await _load_contact(zoho, contact_id)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Create contact failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create contact")


@router.get("/{contact_id}")
async def get_contact(contact_id: str, zoho=Depends(require_zoho)):
    try:
        return await _load_contact(zoho, contact_id)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Get contact %s failed: %s", contact_id, e)
        raise HTTPException(status_code=500, detail="Failed to fetch contact")


@router.patch("/{contact_id}")
async def update_contact(contact_id: str, body: ContactUpdate, zoho=Depends(require_zoho)):
    """Update only the fields present in the body; blank values clear them."""
    try:
        fields = contact_update_to_zoho(body.model_dump(exclude_unset=True))
        if fields:
            await zoho.update_record(MODULE, contact_id, fields)
        return await _load_contact(zoho, contact_id)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Update contact %s failed: %s", contact_id, e)
        raise HTTPException(status_code=500, detail="Failed to update contact")


@router.delete("/{contact_id}")
async def delete_contact(contact_id: str, zoho=Depends(require_zoho)):
    try:
        await zoho.delete_record(MODULE, contact_id)
        logger.info("Deleted contact %s", contact_id)
        return {"success": True, "message": "Contact deleted"}
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Delete contact %s failed: %s", contact_id, e)
        raise HTTPException(status_code=500, detail="Failed to delete contact")


@router.post("/{contact_id}/enrich")
async def enrich(contact_id: str, db=Depends(get_db)):
    """Look up the contact's LinkedIn profile (RapidAPI, then Google)."""
    try:
        return await enrich_contact(contact_id, db)
    except (HTTPException, HubError):
        raise
    except Exception as e:
        logger.error("Enrichment of %s failed: %s", contact_id, e)
        raise HTTPException(status_code=500, detail="Enrichment failed")


@router.get("/{contact_id}/photo")
async def contact_photo(
    contact_id: str,
    updatedAt: Optional[str] = Query(None, description="Last known photo change (ISO-8601 or epoch ms)"),
    db=Depends(get_db),
    zoho=Depends(require_zoho),
):
    """Contact photo bytes. Errors are never cached by the browser."""
    try:
        photo = await get_contact_photo(contact_id, zoho, db, updated_at=updatedAt)
    except HubError as e:
        logger.error("Contact photo fetch error for %s: %s", contact_id, e)
        return JSONResponse(
            status_code=e.status_code,
            content={"message": e.message},
            headers={"Cache-Control": ERROR_CACHE_CONTROL},
        )
    except Exception as e:
        logger.error("Contact photo fetch error for %s: %s", contact_id, e)
        return JSONResponse(
            status_code=500,
            content={"message": str(e) or "Unexpected error"},
            headers={"Cache-Control": ERROR_CACHE_CONTROL},
        )

    if not photo.ok:
        return JSONResponse(status_code=photo.status, content={"message": photo.message},
                            headers=photo.headers)
    return Response(content=photo.content, media_type=photo.content_type, headers=photo.headers)
