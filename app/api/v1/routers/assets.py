# app/api/v1/routers/assets.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🗂️ Tubely · Asset Reads                                                  ║
# ║                                                                          ║
# ║  - GET /videos/{video_id}   → owner-only asset with resolved URLs (200)  ║
# ║  - GET /videos              → caller's assets, oldest first (200)        ║
# ║  - GET /thumbnails/{key}    → bytes from the in-process cache backend    ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Presigned URLs are minted per read and expire, hence `no-store`.         ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from app.core.dependencies import get_thumbnail_store, get_upload_service, parse_asset_id
from app.core.exceptions import NotFoundException
from app.core.security import get_current_identity
from app.schemas.media import AssetOut
from app.services.storage import MemoryObjectStore, ObjectStore
from app.services.upload_service import UploadService

router = APIRouter(tags=["Assets"])


def _asset_id(video_id: str) -> UUID:
    return parse_asset_id(video_id)


@router.get("/videos", response_model=List[AssetOut], summary="List the caller's assets")
async def list_videos(
    response: Response,
    identity: UUID = Depends(get_current_identity),
    service: UploadService = Depends(get_upload_service),
) -> List[AssetOut]:
    response.headers["Cache-Control"] = "no-store"
    return await service.list_assets(identity)


@router.get("/videos/{video_id}", response_model=AssetOut, summary="Fetch one asset")
async def get_video(
    response: Response,
    asset_id: UUID = Depends(_asset_id),
    identity: UUID = Depends(get_current_identity),
    service: UploadService = Depends(get_upload_service),
) -> AssetOut:
    response.headers["Cache-Control"] = "no-store"
    return await service.get_asset(asset_id, identity)


@router.get("/thumbnails/{key:path}", summary="Serve a cached thumbnail")
async def get_cached_thumbnail(key: str, store: ObjectStore = Depends(get_thumbnail_store)) -> Response:
    """Only meaningful with `THUMBNAIL_STORAGE_BACKEND=memory`; 404 for other backends."""
    if not isinstance(store, MemoryObjectStore):
        raise NotFoundException("Thumbnail not found")
    obj = store.get(key)
    if obj is None:
        raise NotFoundException("Thumbnail not found", details={"key": key})
    return Response(content=obj.data, media_type=obj.media_type, headers={"Cache-Control": "public, max-age=300"})


__all__ = ["router"]
