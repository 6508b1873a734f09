# app/core/security.py
from __future__ import annotations

"""
Tubely — Authentication Helpers
===============================
- Access-token creation (iss/aud/iat/nbf/jti) for tooling and tests
- FastAPI dependency resolving the **current identity** from the Bearer header

Decoding is delegated to `app.core.jwt`; this module never re-implements it.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from fastapi import Request
from jose import jwt

from app.core.config import settings
from app.core.jwt import decode_access_token, get_bearer_token


def create_access_token(user_id: UUID | str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token whose `sub` is the user id."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "nbf": now,
        "jti": str(uuid4()),
        "token_type": "access",
    }
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(payload, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


async def get_current_identity(request: Request) -> UUID:
    """
    Resolve the caller's identity from `Authorization: Bearer <token>`.

    Raises 401 (`InvalidTokenException`) when the header is missing or the
    token is invalid/expired.
    """
    token = get_bearer_token(request.headers.get("Authorization"))
    return decode_access_token(token)


__all__ = ["create_access_token", "get_current_identity"]
