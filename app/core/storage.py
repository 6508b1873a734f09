from __future__ import annotations

"""
Tubely • Object Key Layout
==========================

Documented key layout (single bucket, private by default):

    s3://{bucket}/
      videos/{asset_id}.mp4              (KEY_STRATEGY=identity)
      videos/{base64url-256bit}.mp4      (KEY_STRATEGY=random)
      thumbnails/{asset_id}.{jpeg|png}
      thumbnails/{base64url-256bit}.{jpeg|png}

The same layout is used below `ASSETS_ROOT` for the disk backend and as cache
keys for the in-process backend.

Lifecycle
---------
- `identity` keys overwrite on re-upload.
- `random` keys orphan the previous object on re-upload; nothing in this
  service garbage-collects them (bucket lifecycle rules or an external sweep
  must).
"""

S3_PREFIX_VIDEOS = "videos/"
S3_PREFIX_THUMBNAILS = "thumbnails/"

# Accepted media types per upload kind, with the extension used in keys.
VIDEO_MEDIA_TYPES = {"video/mp4": "mp4"}
THUMBNAIL_MEDIA_TYPES = {"image/jpeg": "jpeg", "image/png": "png"}
