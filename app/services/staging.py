# app/services/staging.py
from __future__ import annotations

"""
Scratch staging for inbound uploads.

`ScratchStager.stage()` drains an inbound stream into a local scratch file and
yields a `StagedUpload`. Every path the upload ever owned (the original file
and any transcoder output registered later) is removed when the context exits,
whatever the outcome: success, an exception, or task cancellation.

The size ceiling is enforced while copying, so a body without a trustworthy
declared size still cannot fill the disk; a partial file is removed before
the error propagates.

Blocking steps that write scratch run through `run_to_completion()`: a
cancelled request still waits for the worker thread, so nothing is written
after the scratch paths have been released.
"""

import asyncio
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, AsyncIterator, Callable, List, Optional, Tuple, TypeVar

from loguru import logger

from app.core.exceptions import PayloadTooLargeException

CHUNK_SIZE = 1024 * 1024
SCRATCH_PREFIX = "tubely-upload-"

T = TypeVar("T")


async def run_to_completion(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """
    Run `func` in a worker thread like `asyncio.to_thread`.

    If the caller is cancelled, the cancellation is re-raised only after the
    worker has returned; threads cannot be interrupted.
    """
    worker = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(worker)
    except asyncio.CancelledError:
        await asyncio.wait([worker])
        if not worker.cancelled() and worker.exception() is not None:
            logger.debug("Worker failed after cancellation: {}", worker.exception())
        raise


@dataclass
class StagedUpload:
    path: str
    size_bytes: int
    declared_media_type: str
    owned_paths: List[str] = field(default_factory=list)

    def own(self, path: str) -> None:
        """Register `path` for removal on release without switching to it."""
        if path not in self.owned_paths:
            self.owned_paths.append(path)

    def adopt(self, new_path: str) -> None:
        """Point at a derived file (e.g. transcoder output) and own it for cleanup."""
        self.own(new_path)
        self.path = new_path
        self.size_bytes = os.path.getsize(new_path)


class ScratchStager:
    def __init__(self, scratch_dir: Optional[str] = None) -> None:
        self.scratch_dir = scratch_dir

    def reserve(self, suffix: str = "") -> Tuple[int, str]:
        """Create an empty scratch file; returns its open descriptor and path."""
        if self.scratch_dir:
            Path(self.scratch_dir).mkdir(parents=True, exist_ok=True)
        return tempfile.mkstemp(prefix=SCRATCH_PREFIX, suffix=suffix, dir=self.scratch_dir)

    def fill(self, fd: int, path: str, stream: IO[bytes], *, limit: int) -> int:
        """Copy `stream` into the reserved file; blocking. Returns bytes written."""
        written = 0
        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > limit:
                        raise PayloadTooLargeException(details={"max_bytes": limit})
                    out.write(chunk)
        except BaseException:
            Path(path).unlink(missing_ok=True)
            raise
        logger.debug("Staged {} bytes to {}", written, path)
        return written

    def release(self, staged: StagedUpload) -> None:
        for p in staged.owned_paths:
            try:
                Path(p).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove scratch file {}: {}", p, e)

    @asynccontextmanager
    async def stage(
        self,
        stream: IO[bytes],
        *,
        suffix: str = "",
        limit: int,
        media_type: str,
    ) -> AsyncIterator[StagedUpload]:
        fd, path = self.reserve(suffix)
        staged = StagedUpload(path=path, size_bytes=0, declared_media_type=media_type, owned_paths=[path])
        try:
            staged.size_bytes = await run_to_completion(self.fill, fd, path, stream, limit=limit)
            yield staged
        finally:
            self.release(staged)


__all__ = ["StagedUpload", "ScratchStager", "SCRATCH_PREFIX", "run_to_completion"]
