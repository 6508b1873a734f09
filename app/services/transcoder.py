# app/services/transcoder.py
from __future__ import annotations

"""
Fast-start transcoding adapter.

`Transcoder.rewrite(path)` returns the path of a rewritten copy of the video
whose container index (moov atom) sits before the media data, so playback can
start before the download finishes. Streams are copied, never re-encoded.

All-or-nothing: any failure (missing binary, non-zero exit, timeout) is a
single `TranscodeError`. No retries; transient and permanent failures are not
told apart.
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

from loguru import logger


class TranscodeError(RuntimeError):
    """The external transcoder did not produce a usable output."""


class Transcoder(Protocol):
    def output_path_for(self, path: str) -> str: ...

    def rewrite(self, path: str) -> str: ...


class FFmpegFastStartTranscoder:
    """Runs `ffmpeg -c copy -movflags faststart` as a blocking subprocess."""

    OUTPUT_SUFFIX = ".processing"

    def __init__(self, binary: str = "ffmpeg", *, timeout: Optional[float] = None) -> None:
        self.binary = binary
        self.timeout = timeout

    def build_command(self, src: str, dst: str) -> List[str]:
        return [
            self.binary,
            "-y",
            "-i", src,
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            dst,
        ]

    def output_path_for(self, path: str) -> str:
        """Where `rewrite(path)` writes; known before ffmpeg starts."""
        return path + self.OUTPUT_SUFFIX

    def rewrite(self, path: str) -> str:
        out = self.output_path_for(path)
        cmd = self.build_command(path, out)
        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=self.timeout, check=False)
        except subprocess.TimeoutExpired as e:
            Path(out).unlink(missing_ok=True)
            raise TranscodeError(f"ffmpeg timed out after {self.timeout}s") from e
        except OSError as e:
            raise TranscodeError(f"could not start {self.binary}: {e}") from e

        if proc.returncode != 0:
            # ffmpeg may leave a truncated output behind
            Path(out).unlink(missing_ok=True)
            tail = (proc.stderr or b"")[-2000:].decode("utf-8", errors="replace")
            logger.warning("ffmpeg exited with {} for {}: {}", proc.returncode, path, tail)
            raise TranscodeError(f"ffmpeg exited with status {proc.returncode}")
        return out


__all__ = ["TranscodeError", "Transcoder", "FFmpegFastStartTranscoder"]
