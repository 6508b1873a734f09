"""Utility helpers for the Tubely backend.

Submodules:
- aws: S3 object-store client (streaming uploads, presigned GETs)
"""

__all__: list[str] = []
