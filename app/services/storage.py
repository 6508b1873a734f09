# app/services/storage.py
from __future__ import annotations

"""
Tubely • Object Store Backends
==============================

Every backend the upload pipeline can commit to implements `ObjectStore`:

- `S3Client` (`app.utils.aws`) — the production backend; supports presigning.
- `DiskObjectStore` — writes below `ASSETS_ROOT`, served by the `/assets` mount.
- `MemoryObjectStore` — in-process keyed cache, thumbnails only, served by
  `GET /api/v1/thumbnails/{key}`. Lost on restart and not shared between
  instances; kept for single-node/dev deployments.

Backends are selected once per process by `build_object_store()`: videos
from `STORAGE_BACKEND`, thumbnails from `THUMBNAIL_STORAGE_BACKEND`. The
pipeline itself never branches on them.
"""

import os
import shutil
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Dict, Optional, Protocol

from loguru import logger

from app.core.config import Settings, settings as default_settings


class StorageError(RuntimeError):
    """Raised when a storage backend cannot complete an operation."""


class ObjectStore(Protocol):
    """Contract the upload service relies on."""

    bucket: str

    def put_file(self, key: str, fileobj: IO[bytes], *, content_type: str) -> None: ...

    def presigned_get(self, key: str, *, expires_in: int, bucket: Optional[str] = None) -> str: ...

    def object_url(self, key: str) -> str: ...

    def delete(self, key: str) -> bool: ...


def _safe_relative_key(key: str) -> str:
    k = str(key or "").strip().lstrip("/")
    parts = [p for p in k.split("/") if p]
    if not parts or any(p in (".", "..") for p in parts):
        raise StorageError(f"Invalid storage key: {key!r}")
    return "/".join(parts)


# ─────────────────────────────────────────────────────────────────────────────
# 💾 Disk
# ─────────────────────────────────────────────────────────────────────────────
class DiskObjectStore:
    """Local served-file storage under a root directory."""

    def __init__(self, root: str | os.PathLike[str], *, public_base_url: str, mount_path: str = "/assets") -> None:
        self.root = Path(root)
        self.bucket = "local"
        self._base = f"{public_base_url.rstrip('/')}/{mount_path.strip('/')}"

    def path_for(self, key: str) -> Path:
        return self.root / _safe_relative_key(key)

    def put_file(self, key: str, fileobj: IO[bytes], *, content_type: str) -> None:
        dest = self.path_for(key)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the destination, then rename: readers never see a partial file.
            fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=".incoming-")
            try:
                with os.fdopen(fd, "wb") as out:
                    shutil.copyfileobj(fileobj, out)
                os.replace(tmp_name, dest)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.debug("Stored {} ({}) on disk at {}", key, content_type, dest)

    def presigned_get(self, key: str, *, expires_in: int, bucket: Optional[str] = None) -> str:
        raise StorageError("Disk storage cannot presign URLs")

    def object_url(self, key: str) -> str:
        return f"{self._base}/{_safe_relative_key(key)}"

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning("Disk delete failed (non-fatal): {}", e)
            return False


# ─────────────────────────────────────────────────────────────────────────────
# 🧠 In-process cache
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class CachedObject:
    data: bytes
    media_type: str


class MemoryObjectStore:
    """
    Keyed in-process cache guarded by a single lock.

    Entries are built fully before being published under the lock, so a
    concurrent reader sees either the previous entry or the new one.
    """

    def __init__(self, *, public_base_url: str, route_prefix: str = "/api/v1/thumbnails", max_object_bytes: Optional[int] = None) -> None:
        self.bucket = "memory"
        self._base = f"{public_base_url.rstrip('/')}/{route_prefix.strip('/')}"
        self._max = max_object_bytes
        self._lock = threading.Lock()
        self._objects: Dict[str, CachedObject] = {}

    def put_file(self, key: str, fileobj: IO[bytes], *, content_type: str) -> None:
        k = _safe_relative_key(key)
        data = fileobj.read() if self._max is None else fileobj.read(self._max + 1)
        if self._max is not None and len(data) > self._max:
            raise StorageError(f"Object exceeds in-memory cap of {self._max} bytes")
        entry = CachedObject(data=bytes(data), media_type=content_type)
        with self._lock:
            self._objects[k] = entry

    def get(self, key: str) -> Optional[CachedObject]:
        try:
            k = _safe_relative_key(key)
        except StorageError:
            return None
        with self._lock:
            return self._objects.get(k)

    def presigned_get(self, key: str, *, expires_in: int, bucket: Optional[str] = None) -> str:
        raise StorageError("In-memory storage cannot presign URLs")

    def object_url(self, key: str) -> str:
        return f"{self._base}/{_safe_relative_key(key)}"

    def delete(self, key: str) -> bool:
        try:
            k = _safe_relative_key(key)
        except StorageError:
            return False
        with self._lock:
            self._objects.pop(k, None)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)


# ─────────────────────────────────────────────────────────────────────────────
# 🏭 Factory
# ─────────────────────────────────────────────────────────────────────────────
def build_object_store(cfg: Optional[Settings] = None, *, backend: Optional[str] = None) -> ObjectStore:
    """Construct `backend`, or the video backend named by `STORAGE_BACKEND`."""
    cfg = cfg or default_settings
    backend = backend or cfg.STORAGE_BACKEND
    if backend == "s3":
        from app.utils.aws import S3Client  # local import avoids a cycle

        return S3Client(cfg=cfg)
    if backend == "disk":
        return DiskObjectStore(cfg.ASSETS_ROOT, public_base_url=cfg.PUBLIC_BASE_URL)
    if backend == "memory":
        return MemoryObjectStore(
            public_base_url=cfg.PUBLIC_BASE_URL,
            route_prefix=f"{cfg.API_V1_STR.rstrip('/')}/thumbnails",
            max_object_bytes=cfg.MAX_THUMBNAIL_UPLOAD_BYTES,
        )
    raise StorageError(f"Unknown storage backend: {backend}")


__all__ = [
    "StorageError",
    "ObjectStore",
    "DiskObjectStore",
    "CachedObject",
    "MemoryObjectStore",
    "build_object_store",
]
