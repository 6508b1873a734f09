# app/core/jwt.py
from __future__ import annotations

"""
Tubely — JWT helpers
====================
- `decode_token` with optional issuer/audience enforcement (python-jose)
- Case-insensitive Bearer token extraction
- `decode_access_token()` returns the caller's identity (the `sub` claim as UUID)

Notes
-----
- Token *creation* lives in `app.core.security`.
- Standard `exp`/`nbf`/`iat` checks apply; no leeway.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger

from app.core.config import settings
from app.core.exceptions import InvalidTokenException


def get_bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header value.

    Raises
    ------
    InvalidTokenException
        If the header is missing, uses another scheme, or has no token.
    """
    if not authorization:
        raise InvalidTokenException("Couldn't find JWT")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidTokenException("Malformed authorization header")
    return token.strip()


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT signed with the configured secret.

    Security checks
    ---------------
    1) Verify signature and standard claims (exp/nbf/iat)
    2) Enforce issuer/audience when configured
    3) Require an access-type token when `token_type` is present
    """
    audience = settings.JWT_AUDIENCE or None
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            audience=audience,
            issuer=settings.JWT_ISSUER or None,
            options={"verify_aud": bool(audience)},
        )
    except ExpiredSignatureError:
        raise InvalidTokenException("Token has expired")
    except JWTError as e:
        logger.debug("JWT rejected: {}", e)
        raise InvalidTokenException("Couldn't validate JWT")

    token_type = payload.get("token_type")
    if token_type is not None and token_type != "access":
        raise InvalidTokenException("Access token required")
    return payload


def decode_access_token(token: str) -> UUID:
    """Validate an access token and return the identity it carries."""
    payload = decode_token(token)
    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        raise InvalidTokenException("Token subject is not a valid user id")


__all__ = ["get_bearer_token", "decode_token", "decode_access_token"]
