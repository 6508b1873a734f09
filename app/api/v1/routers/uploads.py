# app/api/v1/routers/uploads.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🎬 Tubely · Media Uploads                                                ║
# ║                                                                          ║
# ║ Endpoints (Bearer auth):                                                 ║
# ║  - POST /video_upload/{video_id}      → multipart part `video`  (200)    ║
# ║  - POST /thumbnail_upload/{video_id}  → multipart part `thumbnail` (200) ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Request handling                                                         ║
# ║  - Path id, identity, declared Content-Length, then asset lookup and     ║
# ║    owner check all run before the multipart body is parsed.              ║
# ║  - The pipeline itself lives in `UploadService`; this layer only turns   ║
# ║    the form part into an `IncomingUpload`.                               ║
# ║  - Responses are `Cache-Control: no-store` (presigned URLs inside).      ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from loguru import logger
from starlette.datastructures import UploadFile

from app.core.dependencies import get_upload_service, parse_asset_id
from app.core.exceptions import BadRequestException
from app.core.security import get_current_identity
from app.schemas.enums import UploadVariant
from app.schemas.media import AssetOut
from app.services.upload_service import IncomingUpload, UploadService

# ─────────────────────────────────────────────────────────────────────────────
# 🧭 Router
# ─────────────────────────────────────────────────────────────────────────────

router = APIRouter(
    tags=["Uploads"],
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        413: {"description": "Payload Too Large"},
        415: {"description": "Unsupported Media Type"},
        502: {"description": "Processing Failed"},
        503: {"description": "Storage Unavailable"},
    },
)

# Room for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


# ─────────────────────────────────────────────────────────────────────────────
# ⚙️ Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _asset_id(video_id: str) -> UUID:
    return parse_asset_id(video_id)


def _declared_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise BadRequestException("Invalid Content-Length header")


async def _receive_part(
    request: Request,
    service: UploadService,
    variant: UploadVariant,
    field_name: str,
    asset_id: UUID,
    identity: UUID,
) -> AssetOut:
    # Reject before Starlette spools the body to disk
    declared = _declared_length(request)
    if declared is not None:
        service.check_declared_size(variant, max(0, declared - MULTIPART_OVERHEAD_BYTES))

    # Unknown asset or non-owner never gets its body parsed or staged
    asset = await service.authorize(variant, asset_id, identity)

    form = await request.form(max_files=1, max_fields=8)
    try:
        part = form.get(field_name)
        if not isinstance(part, UploadFile):
            raise BadRequestException("Unable to parse form file", details={"field": field_name})

        upload = IncomingUpload(
            file=part.file,
            content_type=part.content_type,
            size=part.size,
            filename=part.filename,
        )
        logger.info("Receiving {} upload for {} from {}", variant.value, asset_id, identity)
        if variant is UploadVariant.VIDEO:
            saved = await service.upload_video(asset_id, identity, upload, asset=asset)
        else:
            saved = await service.upload_thumbnail(asset_id, identity, upload, asset=asset)
    finally:
        await form.close()

    return service.resolve_asset(saved)


# ─────────────────────────────────────────────────────────────────────────────
# 📤 Endpoints
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/video_upload/{video_id}", response_model=AssetOut, summary="Upload a video file for an asset")
async def upload_video(
    request: Request,
    response: Response,
    asset_id: UUID = Depends(_asset_id),
    identity: UUID = Depends(get_current_identity),
    service: UploadService = Depends(get_upload_service),
) -> AssetOut:
    response.headers["Cache-Control"] = "no-store"
    return await _receive_part(request, service, UploadVariant.VIDEO, "video", asset_id, identity)


@router.post("/thumbnail_upload/{video_id}", response_model=AssetOut, summary="Upload a thumbnail image for an asset")
async def upload_thumbnail(
    request: Request,
    response: Response,
    asset_id: UUID = Depends(_asset_id),
    identity: UUID = Depends(get_current_identity),
    service: UploadService = Depends(get_upload_service),
) -> AssetOut:
    response.headers["Cache-Control"] = "no-store"
    return await _receive_part(request, service, UploadVariant.THUMBNAIL, "thumbnail", asset_id, identity)


__all__ = ["router", "MULTIPART_OVERHEAD_BYTES"]
