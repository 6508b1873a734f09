# tests/test_transcoder.py
from __future__ import annotations

import subprocess

import pytest

from app.services import transcoder as transcoder_mod
from app.services.transcoder import FFmpegFastStartTranscoder, TranscodeError


def test_command_copies_streams_and_moves_index_to_front():
    t = FFmpegFastStartTranscoder("/opt/ffmpeg/bin/ffmpeg")
    assert t.build_command("in.mp4", "in.mp4.processing") == [
        "/opt/ffmpeg/bin/ffmpeg", "-y", "-i", "in.mp4",
        "-c", "copy", "-movflags", "faststart", "-f", "mp4",
        "in.mp4.processing",
    ]


def test_rewrite_returns_processing_path(monkeypatch, tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"raw")
    seen = {}

    def _run(cmd, **kwargs):
        seen["cmd"], seen["kwargs"] = cmd, kwargs
        with open(cmd[-1], "wb") as fh:
            fh.write(b"faststart")
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    monkeypatch.setattr(transcoder_mod.subprocess, "run", _run)
    out = FFmpegFastStartTranscoder(timeout=30).rewrite(str(src))

    assert out == str(src) + ".processing" == FFmpegFastStartTranscoder().output_path_for(str(src))
    assert seen["kwargs"]["timeout"] == 30
    assert seen["kwargs"]["check"] is False


def test_nonzero_exit_is_a_transcode_error_and_output_is_removed(monkeypatch, tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"raw")

    def _run(cmd, **kwargs):
        with open(cmd[-1], "wb") as fh:
            fh.write(b"truncated")
        return subprocess.CompletedProcess(cmd, 1, b"", b"moov atom not found")

    monkeypatch.setattr(transcoder_mod.subprocess, "run", _run)
    with pytest.raises(TranscodeError):
        FFmpegFastStartTranscoder().rewrite(str(src))

    assert not (tmp_path / "clip.mp4.processing").exists()


def test_missing_binary_is_a_transcode_error(monkeypatch, tmp_path):
    def _run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(transcoder_mod.subprocess, "run", _run)
    with pytest.raises(TranscodeError):
        FFmpegFastStartTranscoder("no-such-ffmpeg").rewrite(str(tmp_path / "clip.mp4"))


def test_timeout_is_a_transcode_error(monkeypatch, tmp_path):
    def _run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(transcoder_mod.subprocess, "run", _run)
    with pytest.raises(TranscodeError):
        FFmpegFastStartTranscoder(timeout=0.1).rewrite(str(tmp_path / "clip.mp4"))
