"""
🧭 Tubely • API v1 Router Aggregator
===================================

Exports the combined `router` and each sub-router.

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Auth lives in the child routers; this module only composes them.
"""

from fastapi import APIRouter

from .assets import router as assets_router
from .uploads import router as uploads_router


def build_v1_router() -> APIRouter:
    """Compose the v1 surface: uploads and asset reads, no extra prefixes."""
    r = APIRouter()
    r.include_router(uploads_router)
    r.include_router(assets_router)
    return r


router = build_v1_router()

__all__ = ["router", "build_v1_router", "uploads_router", "assets_router"]
