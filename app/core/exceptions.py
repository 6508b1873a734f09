# app/core/exceptions.py
from __future__ import annotations

"""
Tubely — Application Exceptions
===============================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach structured metadata and integrate cleanly with the JSON error
shape from `app.core.exception_handlers`.

Key ideas
---------
- One base `AppException` that carries `code`, `request_id`, `details`, `extra`.
- One subclass per upload-pipeline failure kind; each maps to one HTTP status.
- Lower layers (storage, transcoder, repository) raise their own errors; the
  upload service translates them into exactly one of these.

Usage
-----
    raise ForbiddenException("User is not the asset owner")
    raise StorageUnavailableException(details={"key": key})
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "BadRequestException",
    "InvalidTokenException",
    "ForbiddenException",
    "NotFoundException",
    "PayloadTooLargeException",
    "UnsupportedMediaTypeException",
    "ProcessingFailedException",
    "StorageUnavailableException",
    "MetadataUpdateFailedException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : str
        Stable machine-readable error kind (e.g. ``"forbidden"``).
    request_id : str | None
        Optional request correlation id.
    details : Any
        Machine-readable details (ids, limits, keys).
    extra : dict | None
        Additional non-sensitive metadata to surface to clients.
    headers : dict | None
        Optional headers (e.g., `{"WWW-Authenticate": "Bearer"}`).
    """

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code_default: str = "internal_error"
    message_default: str = "An unexpected error occurred."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        message = message or self.message_default
        super().__init__(status_code=status_code or self.status_code_default, detail=message, headers=headers)
        self.code: str = code or self.code_default
        self.message: str = message
        self.request_id: Optional[str] = request_id
        self.details: Optional[Any] = details
        self.extra: Dict[str, Any] = extra or {}

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, fallback_request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return the problem-body fields this exception contributes."""
        body: Dict[str, Any] = {
            "code": self.code,
            "request_id": self.request_id or fallback_request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        extra_sanitized = dict(self.extra) if self.extra else {}
        for k in ("token", "authorization", "password", "secret"):
            extra_sanitized.pop(k, None)
        body.update(extra_sanitized)
        return body


# ──────────────────────────────────────────────────────────────
# 🧾 Request shape
# ──────────────────────────────────────────────────────────────
class BadRequestException(AppException):
    """Malformed id, missing/unparseable multipart body, missing content type."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    code_default = "bad_request"
    message_default = "Bad request"


class PayloadTooLargeException(AppException):
    """Body exceeds the configured ceiling; reading is aborted."""

    status_code_default = 413
    code_default = "payload_too_large"
    message_default = "Upload exceeds the maximum allowed size"


class UnsupportedMediaTypeException(AppException):
    """Declared media type is outside the allow-list for the upload kind."""

    status_code_default = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    code_default = "unsupported_media_type"
    message_default = "Unsupported media type"


# ──────────────────────────────────────────────────────────────
# 🔑 Auth / ownership
# ──────────────────────────────────────────────────────────────
class InvalidTokenException(AppException):
    """Raised for missing, invalid or expired tokens (401)."""

    status_code_default = status.HTTP_401_UNAUTHORIZED
    code_default = "unauthorized"
    message_default = "Invalid or expired token"

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        # Encourage `WWW-Authenticate` header when dealing with access tokens
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class ForbiddenException(AppException):
    """Valid identity that does not own the target asset."""

    status_code_default = status.HTTP_403_FORBIDDEN
    code_default = "forbidden"
    message_default = "User is not the asset owner"


class NotFoundException(AppException):
    status_code_default = status.HTTP_404_NOT_FOUND
    code_default = "not_found"
    message_default = "Asset not found"


# ──────────────────────────────────────────────────────────────
# ⚙️ Pipeline failures (terminal, never retried)
# ──────────────────────────────────────────────────────────────
class ProcessingFailedException(AppException):
    """The external transcoder failed; nothing was committed."""

    status_code_default = status.HTTP_502_BAD_GATEWAY
    code_default = "processing_failed"
    message_default = "Error processing video"


class StorageUnavailableException(AppException):
    """Object-store commit failed; no metadata was mutated."""

    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    code_default = "storage_unavailable"
    message_default = "Object storage is unavailable"


class MetadataUpdateFailedException(AppException):
    """
    Repository update failed after a successful commit.

    The object exists in the store but the asset does not reference it; the
    `details` carry the bucket/key so reconciliation can find it.
    """

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code_default = "metadata_update_failed"
    message_default = "Unable to update asset metadata"
