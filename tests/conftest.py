"""Shared test fixtures for the content store test suite.

Provides an in-memory SQLite metadata store, a dict-backed stand-in for
the MinIO client and a controllable clock, so the store can be exercised
end to end without Docker infrastructure.
"""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest
from minio.error import S3Error
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from modules.content_store.blob_store import BlobStore
from modules.content_store.expiration import ExpirationPolicy
from modules.content_store.ingestor import ContentIngestor
from modules.content_store.metadata_store import SqlMetadataStore
from modules.content_store.retriever import ContentRetriever
from shared.database import create_session_factory
from shared.models import Base

BUCKET = "test-bucket"
MAX_BLOB_BYTES = 1024
MAX_INLINE_BYTES = 512


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def policy():
    return ExpirationPolicy(timedelta(hours=24))


# ---------------------------------------------------------------------------
# MinIO stand-in
# ---------------------------------------------------------------------------


def make_s3_error(code: str) -> S3Error:
    return S3Error(
        code=code,
        message=f"{code} (test)",
        resource="/",
        request_id="req-id",
        host_id="host-id",
        response=None,
    )


class FakeMinio:
    """Implements the slice of the ``minio.Minio`` API that BlobStore uses."""

    def __init__(self):
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.fail_puts = False
        self.fail_removes = False
        self.fail_presign = False
        self.fail_buckets = False

    def bucket_exists(self, bucket: str) -> bool:
        if self.fail_buckets:
            raise make_s3_error("InternalError")
        return bucket in self.buckets

    def make_bucket(self, bucket: str) -> None:
        if bucket in self.buckets:
            raise make_s3_error("BucketAlreadyOwnedByYou")
        self.buckets.add(bucket)

    def stat_object(self, bucket: str, name: str):
        if (bucket, name) not in self.objects:
            raise make_s3_error("NoSuchKey")
        return object()

    def put_object(self, bucket: str, name: str, data: io.BytesIO, length: int, content_type: str):
        if self.fail_puts:
            raise make_s3_error("InternalError")
        self.objects[(bucket, name)] = (data.read(length), content_type)

    def remove_object(self, bucket: str, name: str) -> None:
        if self.fail_removes:
            raise make_s3_error("InternalError")
        self.objects.pop((bucket, name), None)

    def presigned_get_object(self, bucket: str, name: str, expires: timedelta) -> str:
        if self.fail_presign:
            raise make_s3_error("AccessDenied")
        return f"http://minio.test/{bucket}/{name}?X-Amz-Expires={int(expires.total_seconds())}"

    def resolve(self, url: str) -> bytes:
        """Return the bytes a presigned URL points at."""
        path = urlparse(url).path.lstrip("/")
        bucket, name = path.split("/", 1)
        return self.objects[(bucket, name)][0]


def handle_ttl_seconds(url: str) -> int:
    return int(parse_qs(urlparse(url).query)["X-Amz-Expires"][0])


@pytest.fixture
def fake_minio():
    minio = FakeMinio()
    minio.buckets.add(BUCKET)
    return minio


@pytest.fixture
def blob_store(fake_minio):
    return BlobStore(fake_minio, BUCKET, MAX_BLOB_BYTES)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def metadata_store(session_factory):
    return SqlMetadataStore(session_factory)


@pytest.fixture
def mock_redis():
    """Mock async Redis client with common operations."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=0)
    return redis


# ---------------------------------------------------------------------------
# Orchestrators
# ---------------------------------------------------------------------------


@pytest.fixture
def ingestor(metadata_store, blob_store, policy, clock):
    return ContentIngestor(metadata_store, blob_store, policy, MAX_INLINE_BYTES, clock=clock)


@pytest.fixture
def retriever(metadata_store, blob_store, policy, clock):
    return ContentRetriever(metadata_store, blob_store, policy, clock=clock)
