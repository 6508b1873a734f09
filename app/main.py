# app/main.py
from __future__ import annotations

"""
# Tubely API — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the media upload service.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Middleware order: 1) request id → 2) gzip.
- Centralized problem+json exception handling.
- Backend-specific serving: the `disk` storage backend is mounted at `/assets`;
  the `memory` thumbnail backend is served by `GET {API_V1_STR}/thumbnails/{key}`.

## Probes
- `/healthz` — liveness (process up).
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
import os

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.exception_handlers import (
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.logger import setup_logging
from app.middleware.request_id import RequestIDMiddleware


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup:
        - Log the active upload policy (backend / URL policy / key strategy).

    Shutdown:
        - Dispose the DB engine if one was created.
    """
    logger.info(
        "✅ {} starting up (storage={}, thumbnails={}, urls={}, keys={}, repository={})",
        settings.PROJECT_NAME,
        settings.STORAGE_BACKEND,
        settings.thumbnail_backend,
        settings.URL_POLICY,
        settings.KEY_STRATEGY,
        settings.ASSET_REPOSITORY,
    )
    try:
        yield
    finally:
        if settings.ASSET_REPOSITORY == "sql":
            from app.db.session import dispose_engine

            try:
                await dispose_engine()
                logger.info("🛑 Database engine disposed")
            except Exception:
                logger.exception("Error disposing DB engine")
        logger.info("🛑 {} shutting down", settings.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: application with middleware, exception handlers, routers,
        the optional `/assets` static mount and meta endpoints.
    """
    setup_logging()

    enable_docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )

    # ── Middlewares ─────────────────────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    # ── Exception handlers (problem+json) ───────────────────────────────────
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)           # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)             # type: ignore[arg-type]

    # ── Routers (versioned API) ─────────────────────────────────────────────
    from app.api.v1.routers import router as api_v1_router

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Locally served assets (disk backend) ────────────────────────────────
    if "disk" in (settings.STORAGE_BACKEND, settings.thumbnail_backend):
        root = Path(settings.ASSETS_ROOT)
        root.mkdir(parents=True, exist_ok=True)
        app.mount("/assets", StaticFiles(directory=str(root)), name="assets")

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe; no external checks."""
        return {"ok": True}

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse({"name": settings.PROJECT_NAME, "docs": app.docs_url or "", "version": settings.VERSION})

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn app.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8091")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
