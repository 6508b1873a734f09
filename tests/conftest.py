# tests/conftest.py
"""
Global test bootstrap
- Pins the upload policy to local backends (disk videos, memory thumbnails,
  memory repo)
- Provides a JWT secret so `app.core.config.settings` can load
- Pulls in the shared fixtures (pipeline fakes, app/client, auth)

NOTE: env is set BEFORE anything under `app` is imported; `settings` is
read once at import time.
"""

from __future__ import annotations

import os
import tempfile

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-tubely-only-0123456789")
os.environ["STORAGE_BACKEND"] = "disk"
os.environ["THUMBNAIL_STORAGE_BACKEND"] = "memory"
os.environ["ASSETS_ROOT"] = tempfile.mkdtemp(prefix="tubely-assets-")
os.environ["URL_POLICY"] = "direct"
os.environ["KEY_STRATEGY"] = "random"
os.environ["ASSET_REPOSITORY"] = "memory"
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["LOG_TO_FILE"] = "0"
os.environ.pop("JWT_ISSUER", None)
os.environ.pop("JWT_AUDIENCE", None)

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Shared fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.pipeline import *  # noqa: F401,F403
from tests.fixtures.app import *       # noqa: F401,F403


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"
