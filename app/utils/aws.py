# app/utils/aws.py
from __future__ import annotations

"""
🧊 Tubely • S3 Utilities
========================

Thin S3 wrapper used by the upload pipeline:
- Streaming server-side commit of staged files (`put_file`)
- Short-lived signed GET for the `presigned` URL policy (`presigned_get`)
- Deterministic bucket URL for the `direct` URL policy (`object_url`)

🎯 Goals
--------
- Stream from the staged file handle; never buffer a whole video in memory
- Explicit timeouts and **no SDK retries**: a failed commit is terminal for
  the request and surfaces as `StorageUnavailable`
- Defensive key normalization (no leading slash, no `..`)
- Pluggable creds (env / role / IRSA) with explicit override if provided
- Zero secret leakage in logs

Implementation notes
--------------------
- Intentionally **thin** over boto3 so failure modes stay familiar; any
  botocore/S3 error is re-raised as `S3StorageError`.
"""

from typing import IO, Any, Dict, Optional
import logging
import re

from pydantic import SecretStr

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig

from app.core.config import Settings, settings as default_settings
from app.services.storage import StorageError

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(StorageError):
    """Raised when an S3 operation fails (network, auth, policy, etc.)."""


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

# Keep keys strict: readable + safe across tools, CDNs, and logs.
_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")

# Large videos go up as managed multipart in 16 MiB parts.
_TRANSFER = TransferConfig(multipart_threshold=16 * 1024 * 1024, multipart_chunksize=16 * 1024 * 1024)


def _normalize_key(key: str) -> str:
    """
    Normalize and validate S3 object keys.

    Steps
    -----
    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..') and disallowed characters

    Raises
    ------
    S3StorageError
        If key is empty or contains unsafe characters.
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


def _secret_value(v: Optional[SecretStr | str]) -> Optional[str]:
    """Return the underlying secret string for SecretStr or plain values."""
    if v is None:
        return None
    return v.get_secret_value() if isinstance(v, SecretStr) else str(v)


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    High-level S3 wrapper implementing the `ObjectStore` contract.

    Parameters
    ----------
    bucket : str | None
        Destination bucket. Defaults to `AWS_BUCKET_NAME`.
    region_name : str | None
        Region for the client and for direct URLs. Defaults to `AWS_REGION`.
    endpoint_url : str | None
        Custom S3-compatible endpoint (LocalStack/MinIO). Defaults to
        `AWS_S3_ENDPOINT_URL`.
    cfg : Settings | None
        Settings to read defaults from (the process singleton by default).

    Notes
    -----
    * Credentials: explicit `AWS_ACCESS_KEY_ID` + `AWS_SECRET_ACCESS_KEY` when
      configured, otherwise the standard AWS credential chain.
    * Presigning is local (SigV4); expiry is enforced by S3, not by us.
    """

    # ────────────────────────────────────────────────────────────────────────
    # 🔧 Construction
    # ────────────────────────────────────────────────────────────────────────

    def __init__(
        self,
        bucket: Optional[str] = None,
        *,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        cfg: Optional[Settings] = None,
    ) -> None:
        cfg = cfg or default_settings
        self.bucket = bucket or cfg.AWS_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("AWS_BUCKET_NAME not configured")

        self.region = region_name or cfg.AWS_REGION
        self._endpoint = endpoint_url or cfg.AWS_S3_ENDPOINT_URL

        # SSE defaults (never log these)
        self._sse_mode = cfg.AWS_SSE_MODE
        self._kms_key_id = cfg.AWS_KMS_KEY_ID

        boto_cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 1, "mode": "standard"},  # one attempt, no retries
            connect_timeout=3,
            read_timeout=60,
            s3={"addressing_style": "path" if self._endpoint else "virtual"},
        )

        client_kwargs: Dict[str, Any] = {"config": boto_cfg, "region_name": self.region}
        if self._endpoint:
            client_kwargs["endpoint_url"] = self._endpoint
        ak = cfg.AWS_ACCESS_KEY_ID
        sk = _secret_value(cfg.AWS_SECRET_ACCESS_KEY)
        st = _secret_value(cfg.AWS_SESSION_TOKEN)
        if ak and sk:
            client_kwargs["aws_access_key_id"] = ak
            client_kwargs["aws_secret_access_key"] = sk
            if st:
                client_kwargs["aws_session_token"] = st

        try:
            self.client = boto3.client("s3", **client_kwargs)
        except Exception as e:  # pragma: no cover
            raise S3StorageError(f"Failed to create S3 client: {e}") from e

        self._repr = f"S3Client(bucket={self.bucket}, region={self.region}, endpoint={'yes' if self._endpoint else 'no'})"

    # ────────────────────────────────────────────────────────────────────────
    # 🚀 Commit
    # ────────────────────────────────────────────────────────────────────────

    def put_file(
        self,
        key: str,
        fileobj: IO[bytes],
        *,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        """
        Stream a file-like object to S3 under `key`.

        Uses boto3's managed transfer, which reads the handle in chunks and
        switches to multipart for large objects.

        Raises
        ------
        S3StorageError
            On upload failure or invalid key.
        """
        k = _normalize_key(key)
        extra: Dict[str, Any] = {"ContentType": content_type}
        if cache_control:
            extra["CacheControl"] = cache_control
        if self._sse_mode:
            extra["ServerSideEncryption"] = self._sse_mode
            if self._sse_mode == "aws:kms" and self._kms_key_id:
                extra["SSEKMSKeyId"] = self._kms_key_id

        try:
            self.client.upload_fileobj(fileobj, self.bucket, k, ExtraArgs=extra, Config=_TRANSFER)
        except Exception as e:
            raise S3StorageError(f"Failed to upload object: {e}") from e
        logger.debug("Uploaded s3://%s/%s (%s)", self.bucket, k, content_type)

    def delete(self, key: str) -> bool:
        """
        Best-effort delete.

        Returns True on success (including a missing key), False on other
        errors (logged at WARNING).
        """
        k = _normalize_key(key)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=k)
            return True
        except Exception as e:
            logger.warning("delete_object failed (non-fatal): %s", e)
            return False

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Retrieval URLs
    # ────────────────────────────────────────────────────────────────────────

    def presigned_get(self, key: str, *, expires_in: int = 60, bucket: Optional[str] = None) -> str:
        """
        Generate a short-lived **presigned GET** URL.

        Parameters
        ----------
        key : str
            Object key (normalized).
        expires_in : int
            TTL seconds.
        """
        k = _normalize_key(key)
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket or self.bucket, "Key": k},
                ExpiresIn=int(expires_in),
            )
        except Exception as e:
            raise S3StorageError(f"Failed to create presigned GET: {e}") from e

    def object_url(self, key: str) -> str:
        """
        Build a direct (unsigned) URL for `key`. Private objects still require
        auth at fetch time.

        For custom endpoints, uses the configured endpoint host.
        """
        k = _normalize_key(key)
        if self._endpoint:
            return f"{self._endpoint.rstrip('/')}/{self.bucket}/{k}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{k}"

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr
