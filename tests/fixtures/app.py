# tests/fixtures/app.py
"""
🧩 App Fixture:
- Builds the real app via `create_app()`
- Swaps the upload service and object stores for the test pipeline
- Returns an HTTP client over ASGITransport
"""

from __future__ import annotations

from typing import AsyncGenerator, Dict
from uuid import UUID

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.dependencies import get_object_store, get_thumbnail_store, get_upload_service
from app.core.security import create_access_token
from app.main import create_app


def auth_headers(user_id: UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
async def app(pipeline) -> FastAPI:
    """
    🧪 Production app wiring with the pipeline's spies injected.
    """
    application = create_app()
    application.dependency_overrides[get_upload_service] = lambda: pipeline.service
    application.dependency_overrides[get_object_store] = lambda: pipeline.store
    application.dependency_overrides[get_thumbnail_store] = lambda: pipeline.thumbnail_store
    return application


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


__all__ = ["auth_headers", "app", "async_client"]
