# app/services/url_policy.py
from __future__ import annotations

"""
Retrieval URL policy.

Two halves, both driven by `URL_POLICY` (deployment config, never caller input):

- `locator_for(key)` — at commit time, what to persist on the asset.
- `resolve(locator)` — at read time, the URL handed to clients.

| policy    | persisted locator          | client URL                          |
|-----------|----------------------------|-------------------------------------|
| direct    | `DirectLocator(url)`       | stored URL                          |
| cdn       | `CdnLocator(url)`          | stored URL                          |
| presigned | `BucketKeyLocator(b, k)`   | presigned GET minted on every read  |

Presigned URLs expire, so they are never stored. Resolution is exhaustive
over the locator variants; locators written under an earlier policy still
resolve after the policy changes.
"""

from typing import Literal, Optional

from app.schemas.media import BucketKeyLocator, CdnLocator, DirectLocator, Locator
from app.services.storage import ObjectStore


class UrlPolicy:
    def __init__(
        self,
        mode: Literal["direct", "cdn", "presigned"],
        store: ObjectStore,
        *,
        cdn_base_url: str = "",
        presign_ttl_seconds: int = 60,
    ) -> None:
        if mode == "cdn" and not cdn_base_url:
            raise ValueError("cdn URL policy needs a CDN base URL")
        self.mode = mode
        self.store = store
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self.presign_ttl_seconds = presign_ttl_seconds

    def locator_for(self, key: str) -> Locator:
        if self.mode == "direct":
            return DirectLocator(url=self.store.object_url(key))
        if self.mode == "cdn":
            return CdnLocator(url=f"{self.cdn_base_url}/{key.lstrip('/')}")
        if self.mode == "presigned":
            return BucketKeyLocator(bucket=self.store.bucket, key=key)
        raise ValueError(f"Unknown URL policy: {self.mode}")

    def resolve(self, locator: Optional[Locator]) -> Optional[str]:
        """Client URL for a stored locator (None passes through)."""
        if locator is None:
            return None
        if isinstance(locator, (DirectLocator, CdnLocator)):
            return locator.url
        if isinstance(locator, BucketKeyLocator):
            return self.store.presigned_get(locator.key, expires_in=self.presign_ttl_seconds, bucket=locator.bucket)
        raise TypeError(f"Unsupported locator: {type(locator).__name__}")


__all__ = ["UrlPolicy"]
