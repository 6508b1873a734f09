from __future__ import annotations

"""
🗂️ Tubely — MediaAsset
======================

One uploaded media item: a video (with an optional thumbnail) or a standalone
thumbnail image.

Design highlights
-----------------
• `locator` / `thumbnail_locator` hold the tagged locator as JSON
  (`{"type": "bucket_key", "bucket": ..., "key": ...}` etc.); they are only
  written after the matching object-store commit succeeded.
• `owner_id` is set at creation and never reassigned by the upload pipeline.
• Timestamps are timezone-aware UTC.
"""

from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Enum as SAEnum, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base, TimestampMixin
from app.schemas.enums import AssetKind


class MediaAsset(TimestampMixin, Base):
    """Persisted asset metadata."""

    __tablename__ = "media_assets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    kind: Mapped[AssetKind] = mapped_column(
        SAEnum(AssetKind, name="asset_kind", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AssetKind.VIDEO,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    locator: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    thumbnail_locator: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
