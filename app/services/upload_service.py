# app/services/upload_service.py
from __future__ import annotations

"""
Tubely — Upload Pipeline
========================

`UploadService` drives one upload from request to committed object:

    size ceiling → load asset → owner check → media-type allow-list
      → stage to scratch → fast-start transcode (video only)
      → derive key → commit to object store → build locator
      → update asset metadata → release scratch

Guarantees
----------
- Ownership is checked before a single byte is staged; the HTTP layer calls
  `authorize()` before it even parses the multipart body.
- A transcoder failure aborts before any object-store write.
- Metadata is only updated after the commit succeeded.
- Scratch files are removed on every exit path, cancellation included.
- Nothing is retried; the first failure is the request's result.

Blocking work (file copy, ffmpeg, boto3) runs in worker threads; the request
still awaits each step in order. Videos always commit to `object_store`;
thumbnails commit to `thumbnail_store`, which defaults to the same store.

Known gap
---------
If the metadata update fails after a successful commit, the object is left in
the store unreferenced. It is logged with its bucket/key and reported in the
error details; reclaiming it is left to an external reconciliation sweep.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, Dict, List, Optional, Tuple
from uuid import UUID

from loguru import logger

from app.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    MetadataUpdateFailedException,
    NotFoundException,
    PayloadTooLargeException,
    ProcessingFailedException,
    StorageUnavailableException,
    UnsupportedMediaTypeException,
)
from app.core.storage import THUMBNAIL_MEDIA_TYPES, VIDEO_MEDIA_TYPES
from app.repositories.assets import AssetRepository, RepositoryError
from app.schemas.enums import AssetKind, UploadVariant
from app.schemas.media import Asset, AssetOut
from app.services.keys import KeyDeriver
from app.services.staging import ScratchStager, StagedUpload, run_to_completion
from app.services.storage import ObjectStore, StorageError
from app.services.transcoder import TranscodeError, Transcoder
from app.services.url_policy import UrlPolicy


@dataclass
class IncomingUpload:
    """One file part as received: the stream, its declared type and size (if known)."""

    file: IO[bytes]
    content_type: Optional[str]
    size: Optional[int] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class UploadLimits:
    video_max_bytes: int = 1 << 30
    thumbnail_max_bytes: int = 10 << 20

    def for_variant(self, variant: UploadVariant) -> int:
        return self.video_max_bytes if variant is UploadVariant.VIDEO else self.thumbnail_max_bytes


def parse_media_type(content_type: Optional[str]) -> str:
    """`'Video/MP4; codecs=avc1'` → `'video/mp4'`; raises 400 when absent."""
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if not media_type:
        raise BadRequestException("Missing Content-Type for upload")
    return media_type


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadService:
    def __init__(
        self,
        *,
        repository: AssetRepository,
        object_store: ObjectStore,
        key_deriver: KeyDeriver,
        url_policy: UrlPolicy,
        transcoder: Transcoder,
        stager: ScratchStager,
        limits: Optional[UploadLimits] = None,
        thumbnail_store: Optional[ObjectStore] = None,
        thumbnail_url_policy: Optional[UrlPolicy] = None,
    ) -> None:
        self.repository = repository
        self.object_store = object_store
        self.key_deriver = key_deriver
        self.url_policy = url_policy
        self.thumbnail_store = thumbnail_store or object_store
        self.thumbnail_url_policy = thumbnail_url_policy or url_policy
        self.transcoder = transcoder
        self.stager = stager
        self.limits = limits or UploadLimits()

    # ────────────────────────────────────────────────────────────────────────
    # Public entry points
    # ────────────────────────────────────────────────────────────────────────

    async def upload_video(
        self, asset_id: UUID, identity: UUID, upload: IncomingUpload, *, asset: Optional[Asset] = None
    ) -> Asset:
        return await self._run(UploadVariant.VIDEO, asset_id, identity, upload, asset)

    async def upload_thumbnail(
        self, asset_id: UUID, identity: UUID, upload: IncomingUpload, *, asset: Optional[Asset] = None
    ) -> Asset:
        return await self._run(UploadVariant.THUMBNAIL, asset_id, identity, upload, asset)

    async def authorize(self, variant: UploadVariant, asset_id: UUID, identity: UUID) -> Asset:
        """
        Load the target asset and check that `identity` owns it.

        Raises:
            NotFoundException: no such asset.
            ForbiddenException: the caller is not the owner.
            StorageUnavailableException: the metadata store failed.
        """
        asset = await self._load(asset_id)
        if asset.owner_id != identity:
            logger.bind(asset_id=str(asset_id), variant=variant.value).info("Rejected upload by non-owner {}", identity)
            raise ForbiddenException()
        return asset

    async def get_asset(self, asset_id: UUID, identity: UUID) -> AssetOut:
        """Owner-only read with locators resolved to client URLs."""
        asset = await self._load(asset_id)
        if asset.owner_id != identity:
            raise ForbiddenException()
        return self.resolve_asset(asset)

    async def list_assets(self, identity: UUID) -> List[AssetOut]:
        try:
            assets = await self.repository.list_for_owner(identity)
        except RepositoryError as e:
            logger.error("Asset listing failed for {}: {}", identity, e)
            raise StorageUnavailableException("Asset metadata store unavailable") from e
        return [self.resolve_asset(a) for a in assets]

    def resolve_asset(self, asset: Asset) -> AssetOut:
        try:
            primary_policy = self.url_policy if asset.kind is AssetKind.VIDEO else self.thumbnail_url_policy
            video_url = primary_policy.resolve(asset.locator)
            thumbnail_url = self.thumbnail_url_policy.resolve(asset.thumbnail_locator)
        except StorageError as e:
            logger.bind(asset_id=str(asset.id)).error("Could not resolve asset URL: {}", e)
            raise StorageUnavailableException() from e
        return AssetOut(
            id=asset.id,
            owner_id=asset.owner_id,
            kind=asset.kind,
            title=asset.title,
            description=asset.description,
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            created_at=asset.created_at,
            updated_at=asset.updated_at,
        )

    def check_declared_size(self, variant: UploadVariant, size: Optional[int]) -> None:
        """Reject a body whose declared size is already over the ceiling."""
        limit = self.limits.for_variant(variant)
        if size is not None and size > limit:
            raise PayloadTooLargeException(details={"max_bytes": limit, "declared_bytes": size})

    # ────────────────────────────────────────────────────────────────────────
    # Pipeline
    # ────────────────────────────────────────────────────────────────────────

    async def _run(
        self,
        variant: UploadVariant,
        asset_id: UUID,
        identity: UUID,
        upload: IncomingUpload,
        asset: Optional[Asset] = None,
    ) -> Asset:
        log = logger.bind(asset_id=str(asset_id), variant=variant.value)

        # 1) header checks that need no I/O
        self.check_declared_size(variant, upload.size)

        # 2-3) load + authorize before touching the body, unless the caller already did
        if asset is None:
            asset = await self.authorize(variant, asset_id, identity)
        elif asset.id != asset_id or asset.owner_id != identity:
            raise ForbiddenException()

        # 4) allow-list
        media_type = parse_media_type(upload.content_type)
        ext = self._allowed_extension(variant, media_type)
        if variant is UploadVariant.VIDEO and asset.kind is not AssetKind.VIDEO:
            raise BadRequestException("Asset does not accept video uploads")

        try:
            saved, key = await self._process(variant, asset, upload, ext, media_type, log)
        except OSError as e:
            log.error("Scratch staging failed: {}", e)
            raise StorageUnavailableException("Could not stage upload") from e

        log.info("Upload complete: {}", key)
        return saved

    async def _process(
        self,
        variant: UploadVariant,
        asset: Asset,
        upload: IncomingUpload,
        ext: str,
        media_type: str,
        log,
    ) -> Tuple[Asset, str]:
        """Steps 5-11: everything that touches scratch; scratch is released on exit."""
        limit = self.limits.for_variant(variant)
        async with self.stager.stage(upload.file, suffix=f".{ext}", limit=limit, media_type=media_type) as staged:
            log.info("Staged {} bytes ({})", staged.size_bytes, media_type)

            if variant is UploadVariant.VIDEO:
                await self._transcode(staged, log)

            store, policy = self._target(variant)
            key = self.key_deriver.derive_key(asset, ext, variant)
            await self._commit(store, staged, key, media_type, log)
            try:
                locator = policy.locator_for(key)
            except StorageError as e:
                raise StorageUnavailableException() from e

            # Only reached after a successful commit
            updated = asset.model_copy(update={"updated_at": _utcnow()})
            if variant is UploadVariant.THUMBNAIL and asset.kind is AssetKind.VIDEO:
                updated.thumbnail_locator = locator
            else:
                updated.locator = locator

            try:
                saved = await self.repository.update(updated)
            except RepositoryError as e:
                log.bind(bucket=store.bucket, key=key).error(
                    "Object committed but asset metadata update failed; object is unreferenced: {}", e
                )
                raise MetadataUpdateFailedException(details={"bucket": store.bucket, "key": key}) from e
        return saved, key

    async def _load(self, asset_id: UUID) -> Asset:
        try:
            asset = await self.repository.get(asset_id)
        except RepositoryError as e:
            logger.error("Asset lookup failed for {}: {}", asset_id, e)
            raise StorageUnavailableException("Asset metadata store unavailable") from e
        if asset is None:
            raise NotFoundException(details={"asset_id": str(asset_id)})
        return asset

    def _target(self, variant: UploadVariant) -> Tuple[ObjectStore, UrlPolicy]:
        if variant is UploadVariant.VIDEO:
            return self.object_store, self.url_policy
        return self.thumbnail_store, self.thumbnail_url_policy

    @staticmethod
    def _allowed_extension(variant: UploadVariant, media_type: str) -> str:
        allowed: Dict[str, str] = VIDEO_MEDIA_TYPES if variant is UploadVariant.VIDEO else THUMBNAIL_MEDIA_TYPES
        ext = allowed.get(media_type)
        if ext is None:
            raise UnsupportedMediaTypeException(
                f"Unsupported media type {media_type!r}",
                details={"allowed": sorted(allowed)},
            )
        return ext

    async def _transcode(self, staged: StagedUpload, log) -> None:
        # Owned before the worker starts, so a cancelled request still removes it
        staged.own(self.transcoder.output_path_for(staged.path))
        try:
            new_path = await run_to_completion(self.transcoder.rewrite, staged.path)
        except TranscodeError as e:
            log.warning("Transcode failed: {}", e)
            raise ProcessingFailedException() from e
        staged.adopt(new_path)
        log.debug("Fast-start rewrite produced {} ({} bytes)", new_path, staged.size_bytes)

    async def _commit(self, store: ObjectStore, staged: StagedUpload, key: str, media_type: str, log) -> None:
        def _put() -> None:
            with open(staged.path, "rb") as fh:
                store.put_file(key, fh, content_type=media_type)

        try:
            await asyncio.to_thread(_put)
        except (StorageError, OSError) as e:
            log.bind(key=key).error("Object store commit failed: {}", e)
            raise StorageUnavailableException() from e


__all__ = [
    "IncomingUpload",
    "UploadLimits",
    "UploadService",
    "parse_media_type",
]
