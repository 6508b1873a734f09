# tests/test_url_policy.py
from __future__ import annotations

import pytest

from app.schemas.media import BucketKeyLocator, CdnLocator, DirectLocator
from app.services.url_policy import UrlPolicy
from tests.fixtures.fakes import SpyObjectStore


def test_direct_policy_uses_store_url():
    store = SpyObjectStore()
    loc = UrlPolicy("direct", store).locator_for("videos/a.mp4")
    assert loc == DirectLocator(url="http://test/api/v1/thumbnails/videos/a.mp4")


def test_cdn_policy_joins_base_and_key():
    loc = UrlPolicy("cdn", SpyObjectStore(), cdn_base_url="https://cdn.example.com/").locator_for("/videos/a.mp4")
    assert loc == CdnLocator(url="https://cdn.example.com/videos/a.mp4")


def test_cdn_policy_requires_base_url():
    with pytest.raises(ValueError):
        UrlPolicy("cdn", SpyObjectStore())


def test_presigned_policy_stores_bucket_key_and_signs_on_every_resolve():
    store = SpyObjectStore(bucket="media")
    policy = UrlPolicy("presigned", store, presign_ttl_seconds=120)

    loc = policy.locator_for("videos/a.mp4")
    assert loc == BucketKeyLocator(bucket="media", key="videos/a.mp4")

    policy.resolve(loc)
    policy.resolve(loc)
    assert store.presign_calls == [("videos/a.mp4", 120, "media")] * 2


def test_locators_from_an_earlier_policy_still_resolve():
    store = SpyObjectStore()
    presigned = UrlPolicy("presigned", store)

    assert presigned.resolve(DirectLocator(url="http://old/a.mp4")) == "http://old/a.mp4"
    assert presigned.resolve(CdnLocator(url="https://cdn/a.mp4")) == "https://cdn/a.mp4"
    assert presigned.resolve(None) is None
    assert store.presign_calls == []

    direct = UrlPolicy("direct", store)
    assert direct.resolve(BucketKeyLocator(bucket="old-bucket", key="k.mp4")).startswith("https://signed.test/old-bucket/k.mp4")
