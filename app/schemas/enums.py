from __future__ import annotations

"""
Central enum definitions used across Tubely.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (DB enums depend on them).
"""

from enum import Enum as PyEnum


class AssetKind(str, PyEnum):
    """What an asset record primarily holds."""
    VIDEO = "video"
    THUMBNAIL = "thumbnail"


class UploadVariant(str, PyEnum):
    """Which flavor of the upload pipeline is running."""
    VIDEO = "video"          # staged + fast-start transcode
    THUMBNAIL = "thumbnail"  # staged only, smaller ceiling


__all__ = ["AssetKind", "UploadVariant"]
