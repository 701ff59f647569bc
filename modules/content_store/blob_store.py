"""MinIO-backed object storage for uploaded files.

The MinIO SDK is synchronous, so every call is pushed onto a worker
thread with ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import io
from datetime import timedelta

import structlog
from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from modules.content_store.errors import AccessHandleFailed, AlreadyExists, SizeExceeded, StorageFailed
from shared.config import Settings

logger = structlog.get_logger()

# Connection-level failures surface as urllib3 errors, API errors as MinioException
_MINIO_ERRORS = (MinioException, HTTPError)

# Bucket-creation races: another process got there first
_BUCKET_EXISTS_CODES = ("BucketAlreadyOwnedByYou", "BucketAlreadyExists")

_MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject")

# S3 signature v4 limits for presigned URLs
MIN_HANDLE_TTL = timedelta(seconds=1)
MAX_HANDLE_TTL = timedelta(days=7)


class BlobStore:
    """One bucket of write-once objects with a per-object size ceiling."""

    def __init__(
        self,
        client: Minio,
        bucket: str,
        max_object_bytes: int,
        signing_client: Minio | None = None,
    ):
        self.client = client
        self.bucket = bucket
        self.max_object_bytes = max_object_bytes
        # Presigned URLs embed the host they were signed for
        self.signing_client = signing_client or client

    async def provision_namespace(self) -> None:
        """Create the bucket if it does not exist yet. Safe to call repeatedly."""

        def _provision() -> bool:
            if self.client.bucket_exists(self.bucket):
                return False
            try:
                self.client.make_bucket(self.bucket)
            except S3Error as e:
                if e.code in _BUCKET_EXISTS_CODES:
                    return False
                raise
            return True

        try:
            created = await asyncio.to_thread(_provision)
        except _MINIO_ERRORS as e:
            raise StorageFailed(f"Failed to provision bucket {self.bucket}: {e}") from e

        if created:
            logger.info("bucket_created", bucket=self.bucket, max_object_bytes=self.max_object_bytes)
        else:
            logger.info("bucket_exists", bucket=self.bucket)

    def check_size(self, size: int) -> None:
        if size > self.max_object_bytes:
            raise SizeExceeded(
                f"File too large (max {self.max_object_bytes // (1024 * 1024)} MB)"
            )

    async def put(self, object_name: str, data: bytes, mime_type: str) -> None:
        """Store ``data`` under ``object_name``. Existing objects are never replaced."""
        self.check_size(len(data))

        def _put() -> None:
            try:
                self.client.stat_object(self.bucket, object_name)
            except S3Error as e:
                if e.code not in _MISSING_OBJECT_CODES:
                    raise
            else:
                raise AlreadyExists(f"Object already exists: {object_name}")

            self.client.put_object(
                self.bucket,
                object_name,
                io.BytesIO(data),
                length=len(data),
                content_type=mime_type,
            )

        try:
            await asyncio.to_thread(_put)
        except _MINIO_ERRORS as e:
            logger.error("blob_put_error", object_name=object_name, error=str(e))
            raise StorageFailed(f"Failed to upload file: {e}") from e

        logger.info("blob_stored", object_name=object_name, size=len(data))

    async def delete(self, object_name: str) -> None:
        """Remove an object. Removing a missing object succeeds."""
        try:
            await asyncio.to_thread(self.client.remove_object, self.bucket, object_name)
        except _MINIO_ERRORS as e:
            raise StorageFailed(f"Failed to delete object {object_name}: {e}") from e

    async def issue_access_handle(self, object_name: str, ttl: timedelta) -> str:
        """Return a presigned GET URL valid for exactly ``ttl``."""
        if not MIN_HANDLE_TTL <= ttl <= MAX_HANDLE_TTL:
            raise AccessHandleFailed(f"Access handle lifetime out of range: {ttl}")

        try:
            return await asyncio.to_thread(
                self.signing_client.presigned_get_object,
                self.bucket,
                object_name,
                expires=ttl,
            )
        except _MINIO_ERRORS as e:
            logger.error("access_handle_error", object_name=object_name, error=str(e))
            raise AccessHandleFailed("Failed to retrieve file") from e


def create_blob_store(settings: Settings) -> BlobStore:
    """Build a BlobStore from settings."""
    client = Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
        region=settings.minio_region,
    )
    signing_client = None
    if settings.minio_public_endpoint:
        # Region is set explicitly so signing never has to reach the public host
        signing_client = Minio(
            settings.minio_public_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            region=settings.minio_region,
        )
    return BlobStore(
        client,
        settings.content_bucket,
        settings.max_blob_bytes,
        signing_client=signing_client,
    )
