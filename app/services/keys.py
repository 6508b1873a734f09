# app/services/keys.py
from __future__ import annotations

"""
Storage key derivation.

Two interchangeable strategies, chosen once per deployment by `KEY_STRATEGY`:

- ``identity`` — `{prefix}{asset.id}.{ext}`: re-uploads overwrite the same object.
- ``random``   — `{prefix}{base64url(32 random bytes)}.{ext}`: every upload gets a
  fresh, unguessable name (256 bits from `secrets`). Previous objects are
  orphaned; nothing here reclaims them.
"""

import base64
import secrets
from typing import Literal, Protocol

from app.core.storage import S3_PREFIX_THUMBNAILS, S3_PREFIX_VIDEOS
from app.schemas.enums import UploadVariant
from app.schemas.media import Asset

RANDOM_KEY_BYTES = 32

_PREFIXES = {
    UploadVariant.VIDEO: S3_PREFIX_VIDEOS,
    UploadVariant.THUMBNAIL: S3_PREFIX_THUMBNAILS,
}


class KeyDeriver(Protocol):
    def derive_key(self, asset: Asset, ext: str, variant: UploadVariant) -> str: ...


def random_token(nbytes: int = RANDOM_KEY_BYTES) -> str:
    """URL-safe base64 (unpadded) of `nbytes` cryptographically strong bytes."""
    return base64.urlsafe_b64encode(secrets.token_bytes(nbytes)).rstrip(b"=").decode("ascii")


def _clean_ext(ext: str) -> str:
    e = (ext or "").strip().lstrip(".").lower()
    if not e or not e.isalnum():
        raise ValueError(f"Invalid file extension: {ext!r}")
    return e


class IdentityKeyDeriver:
    """Deterministic: the same asset and extension always map to the same key."""

    def derive_key(self, asset: Asset, ext: str, variant: UploadVariant) -> str:
        return f"{_PREFIXES[variant]}{asset.id}.{_clean_ext(ext)}"


class RandomKeyDeriver:
    """Append-only: a fresh random name for every upload."""

    def __init__(self, nbytes: int = RANDOM_KEY_BYTES) -> None:
        self.nbytes = nbytes

    def derive_key(self, asset: Asset, ext: str, variant: UploadVariant) -> str:
        return f"{_PREFIXES[variant]}{random_token(self.nbytes)}.{_clean_ext(ext)}"


def build_key_deriver(strategy: Literal["identity", "random"]) -> KeyDeriver:
    if strategy == "identity":
        return IdentityKeyDeriver()
    if strategy == "random":
        return RandomKeyDeriver()
    raise ValueError(f"Unknown key strategy: {strategy}")


__all__ = [
    "KeyDeriver",
    "IdentityKeyDeriver",
    "RandomKeyDeriver",
    "build_key_deriver",
    "random_token",
    "RANDOM_KEY_BYTES",
]
