"""
Brokerage Hub — Contact Photo Cache
=====================================
Cache-through for CRM contact photos, backed by Supabase Storage.

Lookup order:
  1. `contacts/{id}` in the photo bucket, if it is at least as new as the
     client's `updatedAt` (or the client sent no timestamp)
  2. the CRM photo endpoint, stored back into the bucket before serving

Storage problems are logged and never stop a freshly fetched photo from
being served.

Usage:
    from scripts.lib.photo_cache import get_contact_photo
    photo = await get_contact_photo("123456000000", zoho, db, updated_at="1718000000000")
    photo.status, photo.content_type, photo.headers
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from scripts.lib.config import Settings, get_settings
from scripts.lib.errors import CRMAPIError
from scripts.lib.logger import setup_logger

logger = setup_logger("photo_cache")

IMAGE_CACHE_CONTROL = "public, max-age=300, stale-while-revalidate=60"
ERROR_CACHE_CONTROL = "no-store"
DEFAULT_CONTENT_TYPE = "image/jpeg"
PHOTO_FOLDER = "contacts"

RATE_LIMIT_MARKERS = ("too many requests", "access denied")


@dataclass
class PhotoResult:
    """What the photo endpoint sends back."""
    status: int
    content: bytes = b""
    content_type: str = DEFAULT_CONTENT_TYPE
    message: Optional[str] = None
    source: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 200


def _image(content: bytes, content_type: str, source: str) -> PhotoResult:
    return PhotoResult(200, content, content_type or DEFAULT_CONTENT_TYPE, source=source,
                       headers={"Cache-Control": IMAGE_CACHE_CONTROL})


def _failure(status: int, message: str) -> PhotoResult:
    return PhotoResult(status, message=message, content_type="application/json",
                       headers={"Cache-Control": ERROR_CACHE_CONTROL})


def parse_client_timestamp(value: Any) -> Optional[datetime]:
    """`updatedAt` as sent by the client: epoch milliseconds or ISO-8601."""
    if value is None or value == "":
        return None
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable updatedAt: %s", text)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def is_fresh(stored_updated_at: Any, client_updated_at: Optional[datetime]) -> bool:
    """A stored object is usable unless the client knows of a newer photo."""
    if client_updated_at is None:
        return True
    stored = parse_client_timestamp(stored_updated_at)
    if stored is None:
        return False
    return stored >= client_updated_at


def object_path(contact_id: str) -> str:
    return f"{PHOTO_FOLDER}/{contact_id}"


def _stored_object(bucket, contact_id: str) -> Optional[Dict[str, Any]]:
    for item in bucket.list(PHOTO_FOLDER, {"search": contact_id}) or []:
        if item.get("name") == contact_id:
            return item
    return None


def _read_cached(db, bucket_name: str, contact_id: str,
                 client_updated_at: Optional[datetime]) -> Optional[PhotoResult]:
    try:
        bucket = db.storage.from_(bucket_name)
        stored = _stored_object(bucket, contact_id)
        if not stored or not is_fresh(stored.get("updated_at"), client_updated_at):
            return None
        content = bucket.download(object_path(contact_id))
    except Exception as e:
        logger.warning("Photo cache read failed for %s: %s", contact_id, e)
        return None

    content_type = (stored.get("metadata") or {}).get("mimetype") or DEFAULT_CONTENT_TYPE
    return _image(content, content_type, "cache")


def _write_cached(db, bucket_name: str, contact_id: str, content: bytes, content_type: str) -> None:
    try:
        db.storage.from_(bucket_name).upload(
            object_path(contact_id),
            content,
            file_options={"content-type": content_type, "upsert": "true"},
        )
    except Exception as e:
        logger.warning("Photo cache write failed for %s: %s", contact_id, e)


def _is_rate_limited(error: CRMAPIError) -> bool:
    if error.status_code == 429:
        return True
    text = error.message.lower()
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


async def get_contact_photo(
    contact_id: str,
    zoho,
    db,
    updated_at: Any = None,
    settings: Settings = None,
) -> PhotoResult:
    """Serve a contact's photo from the bucket or the CRM."""
    settings = settings or get_settings()
    client_updated_at = parse_client_timestamp(updated_at)

    cached = _read_cached(db, settings.photo_bucket, contact_id, client_updated_at)
    if cached:
        return cached

    try:
        photo = await zoho.fetch_photo(contact_id)
    except CRMAPIError as e:
        if _is_rate_limited(e):
            logger.warning("Zoho rate limit while fetching photo for %s", contact_id)
            return _failure(429, "Photo temporarily unavailable (Zoho rate limit). Please retry shortly.")
        raise

    if photo is None:
        return _failure(404, "Photo not found")

    content, content_type = photo
    _write_cached(db, settings.photo_bucket, contact_id, content, content_type)
    return _image(content, content_type, "crm")
