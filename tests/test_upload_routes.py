# tests/test_upload_routes.py
"""
HTTP surface: multipart parsing, auth, pre-read size guard, problem+json.
"""

from __future__ import annotations

import io
from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from starlette.requests import Request

from app.core.exceptions import PayloadTooLargeException
from app.core.security import create_access_token
from app.schemas.enums import AssetKind
from tests.fixtures.app import auth_headers
from tests.fixtures.fakes import FASTSTART_MARKER, make_asset

pytestmark = pytest.mark.anyio


async def test_video_upload_returns_resolved_asset(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("boots.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        headers=auth_headers(owner),
    )

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["id"] == str(asset.id)
    assert body["video_url"].startswith("http://test/api/v1/thumbnails/videos/")
    assert body["thumbnail_url"] is None
    assert r.headers["cache-control"] == "no-store"
    assert "x-request-id" in r.headers
    key = pipeline.store.put_calls[0][0]
    assert pipeline.store.get(key).data == FASTSTART_MARKER + b"\x00\x00\x00\x18ftypmp42"
    assert pipeline.scratch_files() == []


async def test_thumbnail_upload_is_served_from_memory_cache(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    png = b"\x89PNG\r\n\x1a\n" + b"\x01" * 32

    r = await async_client.post(
        f"/api/v1/thumbnail_upload/{asset.id}",
        files={"thumbnail": ("t.png", png, "image/png")},
        headers=auth_headers(owner),
    )
    assert r.status_code == 200, r.text
    thumb_url = r.json()["thumbnail_url"]
    assert thumb_url.startswith("http://test/api/v1/thumbnails/thumbnails/")

    served = await async_client.get(thumb_url.removeprefix("http://test"))
    assert served.status_code == 200
    assert served.content == png
    assert served.headers["content-type"] == "image/png"


async def test_missing_token_is_401_problem_json(async_client: AsyncClient, pipeline):
    asset = make_asset(uuid4())
    await pipeline.repo.add(asset)

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("a.mp4", b"x", "video/mp4")},
    )

    assert r.status_code == 401
    assert r.headers["content-type"].startswith("application/problem+json")
    assert r.headers["www-authenticate"] == "Bearer"
    assert r.json()["code"] == "unauthorized"


async def test_expired_token_is_401(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    token = create_access_token(owner, expires_delta=timedelta(seconds=-30))

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("a.mp4", b"x", "video/mp4")},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 401


async def test_malformed_id_is_400(async_client: AsyncClient):
    r = await async_client.post(
        "/api/v1/video_upload/not-a-uuid",
        files={"video": ("a.mp4", b"x", "video/mp4")},
        headers=auth_headers(uuid4()),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "bad_request"


async def test_wrong_form_field_is_400(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"file": ("a.mp4", b"x", "video/mp4")},
        headers=auth_headers(owner),
    )
    assert r.status_code == 400


async def test_non_owner_is_403_and_asset_unchanged(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("a.mp4", b"x", "video/mp4")},
        headers=auth_headers(uuid4()),
    )

    assert r.status_code == 403
    assert r.json()["title"] == "Forbidden"
    assert pipeline.store.put_calls == []
    assert await pipeline.repo.get(asset.id) == asset


async def test_non_owner_is_rejected_before_the_body_is_parsed(async_client: AsyncClient, pipeline, monkeypatch):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    parsed = []
    real_form = Request.form

    def _recording_form(self, *args, **kwargs):
        parsed.append(self.url.path)
        return real_form(self, *args, **kwargs)

    monkeypatch.setattr(Request, "form", _recording_form)
    body = {"video": ("a.mp4", b"\x00" * (500 << 10), "video/mp4")}

    r = await async_client.post(f"/api/v1/video_upload/{asset.id}", files=body, headers=auth_headers(uuid4()))
    assert r.status_code == 403
    assert parsed == []

    r = await async_client.post(f"/api/v1/video_upload/{uuid4()}", files=body, headers=auth_headers(owner))
    assert r.status_code == 404
    assert parsed == []
    assert pipeline.scratch_files() == []

    r = await async_client.post(f"/api/v1/video_upload/{asset.id}", files=body, headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    assert parsed == [f"/api/v1/video_upload/{asset.id}"]


async def test_unknown_asset_is_404(async_client: AsyncClient):
    r = await async_client.post(
        f"/api/v1/video_upload/{uuid4()}",
        files={"video": ("a.mp4", b"x", "video/mp4")},
        headers=auth_headers(uuid4()),
    )
    assert r.status_code == 404


async def test_pdf_is_415(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("doc.pdf", b"%PDF-1.7", "application/pdf")},
        headers=auth_headers(owner),
    )
    assert r.status_code == 415
    assert r.json()["code"] == "unsupported_media_type"
    assert pipeline.scratch_files() == []


async def test_declared_length_over_ceiling_is_413_before_lookup(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    too_big = b"\x00" * ((1 << 20) + (128 << 10))  # ceiling is 1 MiB in tests

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("big.mp4", too_big, "video/mp4")},
        headers=auth_headers(owner),
    )

    assert r.status_code == 413
    assert pipeline.repo.get_calls == []
    assert pipeline.scratch_files() == []


async def test_payload_too_large_problem_shape():
    exc = PayloadTooLargeException(details={"max_bytes": 1})
    assert exc.status_code == 413
    assert exc.to_problem()["code"] == "payload_too_large"


async def test_part_over_ceiling_within_allowance_is_still_413(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    just_over = b"\x00" * ((64 << 10) + 1)  # thumbnail ceiling is 64 KiB in tests

    r = await async_client.post(
        f"/api/v1/thumbnail_upload/{asset.id}",
        files={"thumbnail": ("t.png", just_over, "image/png")},
        headers=auth_headers(owner),
    )

    assert r.status_code == 413
    assert pipeline.store.put_calls == []


async def test_transcoder_failure_is_502(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    pipeline.transcoder.fail = True

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("a.mp4", b"x", "video/mp4")},
        headers=auth_headers(owner),
    )
    assert r.status_code == 502
    assert r.json()["detail"] == "Error processing video"


async def test_storage_failure_is_503(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner, kind=AssetKind.THUMBNAIL)
    await pipeline.repo.add(asset)
    pipeline.store.fail_put = True

    r = await async_client.post(
        f"/api/v1/thumbnail_upload/{asset.id}",
        files={"thumbnail": ("t.jpg", b"\xff\xd8", "image/jpeg")},
        headers=auth_headers(owner),
    )
    assert r.status_code == 503


async def test_metadata_failure_is_500_with_object_details(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    pipeline.repo.fail_update = True

    r = await async_client.post(
        f"/api/v1/video_upload/{asset.id}",
        files={"video": ("a.mp4", b"x", "video/mp4")},
        headers=auth_headers(owner),
    )
    assert r.status_code == 500
    body = r.json()
    assert body["code"] == "metadata_update_failed"
    assert body["details"]["key"] == pipeline.store.put_calls[0][0]


async def test_get_and_list_videos(async_client: AsyncClient, pipeline):
    owner = uuid4()
    asset = make_asset(owner)
    await pipeline.repo.add(asset)
    await pipeline.repo.add(make_asset(uuid4()))

    r = await async_client.get(f"/api/v1/videos/{asset.id}", headers=auth_headers(owner))
    assert r.status_code == 200 and r.json()["title"] == "Boots"

    r = await async_client.get(f"/api/v1/videos/{asset.id}", headers=auth_headers(uuid4()))
    assert r.status_code == 403

    r = await async_client.get("/api/v1/videos", headers=auth_headers(owner))
    assert [a["id"] for a in r.json()] == [str(asset.id)]


async def test_unknown_cached_thumbnail_is_404(async_client: AsyncClient):
    r = await async_client.get("/api/v1/thumbnails/thumbnails/missing.png")
    assert r.status_code == 404


async def test_cached_thumbnail_lookup_normalizes_the_key(async_client: AsyncClient, pipeline):
    pipeline.thumbnail_store.put_file("thumbnails/x.png", io.BytesIO(b"png"), content_type="image/png")

    r = await async_client.get("/api/v1/thumbnails//thumbnails/x.png")
    assert r.status_code == 200
    assert r.content == b"png"


async def test_meta_endpoints(async_client: AsyncClient):
    assert (await async_client.get("/healthz")).json() == {"ok": True}
    assert (await async_client.get("/")).json()["name"] == "Tubely API"
