# app/core/dependencies.py
from __future__ import annotations

"""
Request dependencies — Tubely
=============================

Wires the upload pipeline from `settings` for FastAPI routes.

- Process-wide singletons (video and thumbnail stores, key deriver,
  transcoder, stager, in-memory repository) are built once and cached.
  Thumbnails share the video store unless `THUMBNAIL_STORAGE_BACKEND` differs.
- The SQL repository is per-request, bound to the request's session.
- Tests swap any of these via `app.dependency_overrides`.
"""

from functools import lru_cache
from typing import AsyncGenerator
from uuid import UUID

from fastapi import Depends

from app.core.config import settings
from app.core.exceptions import BadRequestException
from app.repositories.assets import AssetRepository, MemoryAssetRepository, SqlAssetRepository
from app.services.keys import KeyDeriver, build_key_deriver
from app.services.staging import ScratchStager
from app.services.storage import ObjectStore, build_object_store
from app.services.transcoder import FFmpegFastStartTranscoder, Transcoder
from app.services.upload_service import UploadLimits, UploadService
from app.services.url_policy import UrlPolicy

__all__ = [
    "parse_asset_id",
    "get_object_store",
    "get_thumbnail_store",
    "get_url_policy",
    "get_thumbnail_url_policy",
    "get_key_deriver",
    "get_transcoder",
    "get_stager",
    "get_memory_repository",
    "get_asset_repository",
    "get_upload_service",
]


# ──────────────────────────────────────────────────────────────
# 🔧 Utility: UUID parsing with clear error mapping
# ──────────────────────────────────────────────────────────────
def parse_asset_id(value: str) -> UUID:
    """Parse a path-supplied asset id; malformed values are a 400."""
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise BadRequestException("Invalid ID", details={"video_id": str(value)[:64]})


# ──────────────────────────────────────────────────────────────
# 🧱 Singletons
# ──────────────────────────────────────────────────────────────
@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    return build_object_store(settings)


@lru_cache(maxsize=1)
def _separate_thumbnail_store() -> ObjectStore:
    return build_object_store(settings, backend=settings.thumbnail_backend)


def get_thumbnail_store(store: ObjectStore = Depends(get_object_store)) -> ObjectStore:
    if settings.thumbnail_backend == settings.STORAGE_BACKEND:
        return store
    return _separate_thumbnail_store()


@lru_cache(maxsize=1)
def get_key_deriver() -> KeyDeriver:
    return build_key_deriver(settings.KEY_STRATEGY)


@lru_cache(maxsize=1)
def get_transcoder() -> Transcoder:
    return FFmpegFastStartTranscoder(settings.FFMPEG_BINARY, timeout=settings.FFMPEG_TIMEOUT_SECONDS)


@lru_cache(maxsize=1)
def get_stager() -> ScratchStager:
    return ScratchStager(settings.SCRATCH_DIR)


@lru_cache(maxsize=1)
def get_memory_repository() -> MemoryAssetRepository:
    return MemoryAssetRepository()


def get_url_policy(store: ObjectStore = Depends(get_object_store)) -> UrlPolicy:
    return UrlPolicy(
        settings.URL_POLICY,
        store,
        cdn_base_url=settings.cdn_base_url,
        presign_ttl_seconds=settings.PRESIGN_TTL_SECONDS,
    )


def get_thumbnail_url_policy(store: ObjectStore = Depends(get_thumbnail_store)) -> UrlPolicy:
    return UrlPolicy(
        settings.thumbnail_url_policy,  # type: ignore[arg-type]
        store,
        cdn_base_url=settings.cdn_base_url,
        presign_ttl_seconds=settings.PRESIGN_TTL_SECONDS,
    )


# ──────────────────────────────────────────────────────────────
# 🗄️ Repository (per request)
# ──────────────────────────────────────────────────────────────
async def get_asset_repository() -> AsyncGenerator[AssetRepository, None]:
    """`SqlAssetRepository` bound to a request session, or the shared in-memory one."""
    if settings.ASSET_REPOSITORY == "memory":
        yield get_memory_repository()
        return

    from app.db.session import get_session_maker

    async with get_session_maker()() as session:
        yield SqlAssetRepository(session)


# ──────────────────────────────────────────────────────────────
# 🎬 Upload service
# ──────────────────────────────────────────────────────────────
def get_upload_service(
    repository: AssetRepository = Depends(get_asset_repository),
    store: ObjectStore = Depends(get_object_store),
    url_policy: UrlPolicy = Depends(get_url_policy),
    thumbnail_store: ObjectStore = Depends(get_thumbnail_store),
    thumbnail_url_policy: UrlPolicy = Depends(get_thumbnail_url_policy),
    key_deriver: KeyDeriver = Depends(get_key_deriver),
    transcoder: Transcoder = Depends(get_transcoder),
    stager: ScratchStager = Depends(get_stager),
) -> UploadService:
    return UploadService(
        repository=repository,
        object_store=store,
        key_deriver=key_deriver,
        url_policy=url_policy,
        thumbnail_store=thumbnail_store,
        thumbnail_url_policy=thumbnail_url_policy,
        transcoder=transcoder,
        stager=stager,
        limits=UploadLimits(
            video_max_bytes=settings.MAX_VIDEO_UPLOAD_BYTES,
            thumbnail_max_bytes=settings.MAX_THUMBNAIL_UPLOAD_BYTES,
        ),
    )
