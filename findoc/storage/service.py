"""Object storage for uploaded PDFs and archived analysis results.

Backed by any S3-compatible server through the MinIO SDK. Every public
operation returns a ``StorageResult``; nothing here raises on a storage
failure, the caller decides how the failure is classified.

Based on MinIO Python SDK:
https://min.io/docs/minio/linux/developers/python/API.html
"""

import io
import json
import logging
import mimetypes
from datetime import timedelta
from typing import Any
from urllib.parse import quote, unquote, urlparse

from minio import Minio
from minio.error import S3Error
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from findoc.shared.config import Settings

logger = logging.getLogger(__name__)


class StorageResult(BaseModel):
    """Outcome of one storage call.

    Attributes:
        success: Whether the call succeeded
        object_name: Object key the call addressed
        bucket: Bucket the call addressed
        url: Object URL after an upload, signed URL after presigning
        error: ``S3 error: <code> - <message>`` or the client error text
        etag: ETag returned by an upload
        size: Uploaded size in bytes
        expires_in_seconds: Lifetime of a presigned URL
    """

    success: bool
    object_name: str | None = None
    bucket: str | None = None
    url: str | None = None
    error: str | None = None
    etag: str | None = None
    size: int | None = None
    expires_in_seconds: int | None = None


def _failure(action: str, object_name: str, bucket: str, error: Exception) -> StorageResult:
    if isinstance(error, S3Error):
        message = f"S3 error: {error.code} - {error.message}"
    else:
        message = str(error)
    logger.error(f"Storage {action} failed for {bucket}/{object_name}: {message}")
    return StorageResult(success=False, object_name=object_name, bucket=bucket, error=message)


class StorageService:
    """Keys are unique per document; no object is shared between documents."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: Minio | None = None
        self._known_buckets: set[str] = set()

    def _get_client(self) -> Minio:
        """Lazily build the MinIO client.

        Raises:
            ValueError: If storage credentials are not configured
        """
        if self._client is None:
            if not self.settings.storage_access_key:
                raise ValueError("Storage access key not configured. Set APP_STORAGE_ACCESS_KEY.")
            if not self.settings.storage_secret_key:
                raise ValueError("Storage secret key not configured. Set APP_STORAGE_SECRET_KEY.")

            self._client = Minio(
                endpoint=self.settings.storage_endpoint,
                access_key=self.settings.storage_access_key,
                secret_key=self.settings.storage_secret_key,
                secure=self.settings.storage_secure,
            )
            logger.info(f"MinIO client initialized for endpoint: {self.settings.storage_endpoint}")

        return self._client

    def is_available(self) -> bool:
        return bool(self.settings.storage_access_key and self.settings.storage_secret_key)

    def health_check(self) -> bool:
        """True if the configured bucket can be queried."""
        if not self.is_available():
            return False
        try:
            self._get_client().bucket_exists(self.settings.storage_bucket)
        except Exception as e:
            logger.warning(f"Storage health check failed: {e}")
            return False
        return True

    def _ensure_bucket(self, client: Minio, bucket: str) -> None:
        if bucket in self._known_buckets:
            return
        if not client.bucket_exists(bucket):
            client.make_bucket(bucket)
            logger.info(f"Created bucket: {bucket}")
        self._known_buckets.add(bucket)

    def _base_url(self) -> str:
        if self.settings.storage_public_url:
            return self.settings.storage_public_url.rstrip("/")
        scheme = "https" if self.settings.storage_secure else "http"
        return f"{scheme}://{self.settings.storage_endpoint}"

    def object_url(self, object_name: str, bucket: str | None = None) -> str:
        """Path-style URL for an object: ``<base>/<bucket>/<object_name>``."""
        bucket = bucket or self.settings.storage_bucket
        return f"{self._base_url()}/{bucket}/{quote(object_name)}"

    def object_name_from_url(self, url: str, bucket: str | None = None) -> str:
        """Derive the object key from a stored file URL.

        Accepts path-style URLs built by ``object_url`` as well as
        virtual-hosted URLs where the bucket is part of the host name.

        Raises:
            ValueError: If the URL has no object path
        """
        bucket = bucket or self.settings.storage_bucket
        path = unquote(urlparse(url).path).lstrip("/")
        if path.startswith(f"{bucket}/"):
            path = path[len(bucket) + 1 :]
        if not path:
            raise ValueError(f"Cannot derive storage key from URL: {url}")
        return path

    @retry(
        retry=retry_if_exception_type(S3Error),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=1, max=10),
        reraise=True,
    )
    def _put_object(self, bucket: str, object_name: str, data: bytes, content_type: str) -> Any:
        client = self._get_client()
        self._ensure_bucket(client, bucket)
        return client.put_object(
            bucket_name=bucket,
            object_name=object_name,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    def upload_bytes(
        self,
        data: bytes,
        object_name: str,
        content_type: str | None = None,
        bucket: str | None = None,
    ) -> StorageResult:
        """Store ``data`` under ``object_name``.

        S3 errors are retried up to three times before the failure is
        reported. The content type is guessed from the key when omitted.
        """
        bucket = bucket or self.settings.storage_bucket
        content_type = content_type or mimetypes.guess_type(object_name)[0] or "application/octet-stream"

        try:
            written = self._put_object(bucket, object_name, data, content_type)
        except Exception as e:
            return _failure("upload", object_name, bucket, e)

        logger.info(f"Uploaded {object_name} to {bucket} ({len(data)} bytes)")
        return StorageResult(
            success=True,
            object_name=object_name,
            bucket=bucket,
            url=self.object_url(object_name, bucket),
            etag=written.etag,
            size=len(data),
        )

    def upload_json(self, payload: dict[str, Any], object_name: str, bucket: str | None = None) -> StorageResult:
        data = json.dumps(payload, indent=2, default=str).encode("utf-8")
        return self.upload_bytes(data, object_name, content_type="application/json", bucket=bucket)

    def get_presigned_url(
        self,
        object_name: str,
        bucket: str | None = None,
        expires_seconds: int = 3600,
    ) -> StorageResult:
        """Signed download URL for ``object_name``, valid for ``expires_seconds``."""
        bucket = bucket or self.settings.storage_bucket

        try:
            url = self._get_client().presigned_get_object(
                bucket_name=bucket,
                object_name=object_name,
                expires=timedelta(seconds=expires_seconds),
            )
        except Exception as e:
            return _failure("presign", object_name, bucket, e)

        return StorageResult(
            success=True,
            object_name=object_name,
            bucket=bucket,
            url=url,
            expires_in_seconds=expires_seconds,
        )

    def delete_object(self, object_name: str, bucket: str | None = None) -> StorageResult:
        bucket = bucket or self.settings.storage_bucket

        try:
            self._get_client().remove_object(bucket_name=bucket, object_name=object_name)
        except Exception as e:
            return _failure("delete", object_name, bucket, e)

        logger.info(f"Deleted {object_name} from {bucket}")
        return StorageResult(success=True, object_name=object_name, bucket=bucket)
