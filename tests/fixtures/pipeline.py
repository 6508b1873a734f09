# tests/fixtures/pipeline.py
"""
🧩 Upload pipeline fixtures:
- Builds an `UploadService` over spies (repository, object store, transcoder)
- Scratch lives under `tmp_path` so tests can assert it is left empty
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pytest

from app.services.keys import build_key_deriver
from app.services.storage import ObjectStore
from app.services.staging import ScratchStager
from app.services.upload_service import UploadLimits, UploadService
from app.services.url_policy import UrlPolicy
from tests.fixtures.fakes import FakeTranscoder, SpyObjectStore, SpyRepository

TEST_LIMITS = UploadLimits(video_max_bytes=1 << 20, thumbnail_max_bytes=64 << 10)


@dataclass
class Pipeline:
    service: UploadService
    repo: SpyRepository
    store: SpyObjectStore
    transcoder: FakeTranscoder
    scratch_dir: Path
    thumbnail_store: ObjectStore

    def scratch_files(self) -> List[str]:
        if not self.scratch_dir.exists():
            return []
        return sorted(p.name for p in self.scratch_dir.iterdir())


def build_pipeline(
    tmp_path: Path,
    *,
    url_mode: str = "direct",
    key_strategy: str = "random",
    limits: Optional[UploadLimits] = None,
    cdn_base_url: str = "",
    thumbnail_store: Optional[ObjectStore] = None,
) -> Pipeline:
    """`thumbnail_store` set: thumbnails commit there with direct URLs; otherwise they share `store`."""
    repo = SpyRepository()
    store = SpyObjectStore()
    transcoder = FakeTranscoder()
    scratch_dir = tmp_path / "scratch"
    service = UploadService(
        repository=repo,
        object_store=store,
        key_deriver=build_key_deriver(key_strategy),  # type: ignore[arg-type]
        url_policy=UrlPolicy(url_mode, store, cdn_base_url=cdn_base_url, presign_ttl_seconds=60),  # type: ignore[arg-type]
        transcoder=transcoder,
        stager=ScratchStager(str(scratch_dir)),
        limits=limits or TEST_LIMITS,
        thumbnail_store=thumbnail_store,
        thumbnail_url_policy=UrlPolicy("direct", thumbnail_store) if thumbnail_store is not None else None,
    )
    return Pipeline(
        service=service,
        repo=repo,
        store=store,
        transcoder=transcoder,
        scratch_dir=scratch_dir,
        thumbnail_store=thumbnail_store or store,
    )


@pytest.fixture()
def pipeline(tmp_path: Path) -> Pipeline:
    return build_pipeline(tmp_path)


__all__ = ["Pipeline", "build_pipeline", "pipeline", "TEST_LIMITS"]
