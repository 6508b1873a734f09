from __future__ import annotations

"""Asset record repository.

The upload service only needs `get` and `update`; `add` and `list_for_owner`
back the read endpoints and tooling. Two implementations:

- `SqlAssetRepository` — SQLAlchemy async session over `media_assets`.
- `MemoryAssetRepository` — process-local dict, for dev and tests.

Implementations return/accept `app.schemas.media.Asset` values and raise
`RepositoryError` for storage failures (a missing row is `None`, not an error).
"""

from datetime import timezone
from typing import Dict, List, Optional, Protocol
from uuid import UUID

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.media_asset import MediaAsset
from app.schemas.media import Asset, Locator


class RepositoryError(RuntimeError):
    """The metadata store could not complete an operation."""


class AssetRepository(Protocol):
    async def get(self, asset_id: UUID) -> Optional[Asset]: ...

    async def add(self, asset: Asset) -> Asset: ...

    async def update(self, asset: Asset) -> Asset: ...

    async def list_for_owner(self, owner_id: UUID) -> List[Asset]: ...


class MemoryAssetRepository:
    """Dict-backed repository; stores copies so callers can't mutate rows in place."""

    def __init__(self) -> None:
        self._rows: Dict[UUID, Asset] = {}

    async def get(self, asset_id: UUID) -> Optional[Asset]:
        row = self._rows.get(asset_id)
        return row.model_copy(deep=True) if row else None

    async def add(self, asset: Asset) -> Asset:
        if asset.id in self._rows:
            raise RepositoryError(f"Asset {asset.id} already exists")
        self._rows[asset.id] = asset.model_copy(deep=True)
        return asset

    async def update(self, asset: Asset) -> Asset:
        if asset.id not in self._rows:
            raise RepositoryError(f"Asset {asset.id} does not exist")
        self._rows[asset.id] = asset.model_copy(deep=True)
        return asset

    async def list_for_owner(self, owner_id: UUID) -> List[Asset]:
        rows = [a for a in self._rows.values() if a.owner_id == owner_id]
        return [a.model_copy(deep=True) for a in sorted(rows, key=lambda a: a.created_at)]


_locator_adapter = TypeAdapter(Optional[Locator])


def _as_utc(dt):
    # SQLite hands back naive datetimes
    return dt.replace(tzinfo=timezone.utc) if dt is not None and dt.tzinfo is None else dt


def _to_schema(row: MediaAsset) -> Asset:
    return Asset(
        id=row.id,
        owner_id=row.owner_id,
        kind=row.kind,
        title=row.title,
        description=row.description,
        locator=_locator_adapter.validate_python(row.locator),
        thumbnail_locator=_locator_adapter.validate_python(row.thumbnail_locator),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _dump_locator(locator) -> Optional[dict]:
    return locator.model_dump(mode="json") if locator is not None else None


class SqlAssetRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, asset_id: UUID) -> Optional[Asset]:
        try:
            row = await self.session.get(MediaAsset, asset_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load asset {asset_id}: {e}") from e
        return _to_schema(row) if row else None

    async def add(self, asset: Asset) -> Asset:
        row = MediaAsset(
            id=asset.id,
            owner_id=asset.owner_id,
            kind=asset.kind,
            title=asset.title,
            description=asset.description,
            locator=_dump_locator(asset.locator),
            thumbnail_locator=_dump_locator(asset.thumbnail_locator),
            created_at=asset.created_at,
            updated_at=asset.updated_at,
        )
        try:
            self.session.add(row)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise RepositoryError(f"Failed to add asset {asset.id}: {e}") from e
        return asset

    async def update(self, asset: Asset) -> Asset:
        """Write back the mutable fields; `owner_id` and `created_at` are never touched."""
        try:
            row = await self.session.get(MediaAsset, asset.id)
            if row is None:
                raise RepositoryError(f"Asset {asset.id} does not exist")
            row.title = asset.title
            row.description = asset.description
            row.locator = _dump_locator(asset.locator)
            row.thumbnail_locator = _dump_locator(asset.thumbnail_locator)
            row.updated_at = asset.updated_at
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise RepositoryError(f"Failed to update asset {asset.id}: {e}") from e
        return asset

    async def list_for_owner(self, owner_id: UUID) -> List[Asset]:
        stmt = select(MediaAsset).where(MediaAsset.owner_id == owner_id).order_by(MediaAsset.created_at)
        try:
            rows = (await self.session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to list assets: {e}") from e
        return [_to_schema(r) for r in rows]


__all__ = ["RepositoryError", "AssetRepository", "MemoryAssetRepository", "SqlAssetRepository"]
