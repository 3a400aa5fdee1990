"""
Custom error classes for Brokerage Hub.
Structured error handling with error codes across all modules.

Hierarchy:
    HubError
    ├── APIError
    │   ├── CRMAPIError
    │   ├── CRMAuthError
    │   └── EnrichmentAPIError
    ├── NotConfiguredError
    ├── NotFoundError
    └── DataError
        └── SyncError
            └── SyncChunkError
"""


class HubError(Exception):
    """Base exception for all Brokerage Hub errors."""

    status_code = 500

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Upstream API Errors ---

class APIError(HubError):
    """Base class for external API errors. Carries the upstream status."""

    def __init__(self, message: str, code: str = "API_ERROR",
                 status_code: int = None, url: str = None, **kwargs):
        if status_code:
            self.status_code = status_code
        self.url = url
        details = {"status_code": status_code, "url": url, **kwargs}
        super().__init__(message, code=code, details=details)


class CRMAPIError(APIError):
    """CRM returned a non-2xx response or an unreadable body."""

    def __init__(self, status_code: int, body: str = "", url: str = None):
        self.body = body
        super().__init__(
            f"Zoho API error ({status_code}): {body}",
            code="CRM_API_ERROR", status_code=status_code, url=url,
        )


class CRMAuthError(APIError):
    """OAuth refresh-token grant failed."""

    def __init__(self, body: str = "", status_code: int = 401):
        super().__init__(
            f"Zoho OAuth error: {body}",
            code="CRM_AUTH_FAILED", status_code=status_code,
        )


class EnrichmentAPIError(APIError):
    """LinkedIn / Google search provider failure."""

    def __init__(self, provider: str, status_code: int = None, body: str = ""):
        self.provider = provider
        super().__init__(
            f"{provider} API error: {status_code} - {body}",
            code="ENRICHMENT_API_ERROR", status_code=status_code or 502,
            provider=provider,
        )


# --- Configuration ---

class NotConfiguredError(HubError):
    """A feature is disabled because required credentials are missing."""

    status_code = 503

    def __init__(self, feature: str, missing: list = None, message: str = None):
        self.feature = feature
        self.missing = list(missing or [])
        if message is None:
            message = (
                f"Set {', '.join(self.missing)} environment variables"
                if self.missing else f"{feature} is not configured"
            )
        super().__init__(
            message, code="NOT_CONFIGURED",
            details={"feature": feature, "missing": self.missing},
        )


class NotFoundError(HubError):
    """Requested record does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: str = None):
        self.resource = resource
        msg = f"{resource} not found"
        super().__init__(
            msg, code="NOT_FOUND",
            details={"resource": resource, "id": identifier},
        )


# --- Data Errors ---

class DataError(HubError):
    """Base class for data processing errors."""
    pass


class SyncError(DataError):
    """A sync run failed."""

    def __init__(self, entity_type: str, message: str, code: str = "SYNC_FAILED"):
        self.entity_type = entity_type
        super().__init__(message, code=code, details={"entity_type": entity_type})


class SyncChunkError(SyncError):
    """One upsert chunk failed. Earlier chunks remain committed."""

    def __init__(self, table: str, chunk_index: int, cause: Exception = None):
        self.table = table
        self.chunk_index = chunk_index
        self.cause = cause
        msg = f"Upsert into {table} failed at chunk {chunk_index}"
        if cause:
            msg += f": {cause}"
        super().__init__(table, msg, code="SYNC_CHUNK_FAILED")
        self.details["chunk_index"] = chunk_index
