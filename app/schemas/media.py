from __future__ import annotations

"""
Tubely • Media Schemas
======================

Purpose
-------
- `Asset`: the working value the upload service reads from and writes back to
  the repository.
- `Locator`: tagged variant describing where committed bytes live. Stored as
  JSON; `app.services.url_policy` turns it into a client URL at read time.
- `AssetOut`: API response with locators already resolved to URLs.

Failure Modes
-------------
- Unknown `type` discriminators fail validation when loading from storage.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.enums import AssetKind


# === Locators ==============================================================

class DirectLocator(BaseModel):
    """A fixed, directly fetchable URL (bucket URL or locally served file)."""
    type: Literal["direct"] = "direct"
    url: str


class CdnLocator(BaseModel):
    """A URL behind the configured CDN origin."""
    type: Literal["cdn"] = "cdn"
    url: str


class BucketKeyLocator(BaseModel):
    """A (bucket, key) pair; the client URL is presigned fresh on every read."""
    type: Literal["bucket_key"] = "bucket_key"
    bucket: str
    key: str


Locator = Annotated[Union[DirectLocator, CdnLocator, BucketKeyLocator], Field(discriminator="type")]


# === Asset =================================================================

class Asset(BaseModel):
    """One uploaded media item and its metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    kind: AssetKind = AssetKind.VIDEO
    title: str = ""
    description: Optional[str] = None
    locator: Optional[Locator] = None
    thumbnail_locator: Optional[Locator] = None
    created_at: datetime
    updated_at: datetime


class AssetOut(BaseModel):
    """Client view of an asset with retrieval URLs resolved."""

    id: UUID
    owner_id: UUID
    kind: AssetKind
    title: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


__all__ = [
    "DirectLocator",
    "CdnLocator",
    "BucketKeyLocator",
    "Locator",
    "Asset",
    "AssetOut",
]
