"""Tests for the MinIO-backed BlobStore."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from urllib3.exceptions import MaxRetryError

from modules.content_store.blob_store import BlobStore, create_blob_store
from modules.content_store.errors import AccessHandleFailed, AlreadyExists, SizeExceeded, StorageFailed
from shared.config import Settings
from tests.conftest import BUCKET, MAX_BLOB_BYTES, handle_ttl_seconds, make_s3_error


# ---------------------------------------------------------------------------
# provision_namespace
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_provision_creates_missing_bucket(fake_minio):
    store = BlobStore(fake_minio, "fresh-bucket", MAX_BLOB_BYTES)
    await store.provision_namespace()
    assert "fresh-bucket" in fake_minio.buckets


@pytest.mark.asyncio
async def test_provision_is_idempotent(fake_minio):
    store = BlobStore(fake_minio, "fresh-bucket", MAX_BLOB_BYTES)
    await store.provision_namespace()
    await store.provision_namespace()
    assert fake_minio.buckets == {BUCKET, "fresh-bucket"}


@pytest.mark.asyncio
async def test_provision_tolerates_concurrent_creation():
    client = MagicMock()
    client.bucket_exists.return_value = False
    client.make_bucket.side_effect = make_s3_error("BucketAlreadyOwnedByYou")

    await BlobStore(client, BUCKET, MAX_BLOB_BYTES).provision_namespace()
    client.make_bucket.assert_called_once_with(BUCKET)


@pytest.mark.asyncio
async def test_provision_failure_is_storage_failed(fake_minio):
    fake_minio.fail_buckets = True
    with pytest.raises(StorageFailed):
        await BlobStore(fake_minio, BUCKET, MAX_BLOB_BYTES).provision_namespace()


# ---------------------------------------------------------------------------
# put / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_put_stores_bytes_and_type(blob_store, fake_minio):
    await blob_store.put("1-aaaa-a.bin", b"0123456789", "application/octet-stream")
    assert fake_minio.objects[(BUCKET, "1-aaaa-a.bin")] == (b"0123456789", "application/octet-stream")


@pytest.mark.asyncio
async def test_put_never_overwrites(blob_store, fake_minio):
    await blob_store.put("1-aaaa-a.bin", b"first", "text/plain")
    with pytest.raises(AlreadyExists):
        await blob_store.put("1-aaaa-a.bin", b"second", "text/plain")
    assert fake_minio.objects[(BUCKET, "1-aaaa-a.bin")][0] == b"first"


@pytest.mark.asyncio
async def test_put_at_ceiling_is_accepted(blob_store):
    await blob_store.put("big", b"x" * MAX_BLOB_BYTES, "application/octet-stream")


@pytest.mark.asyncio
async def test_put_over_ceiling(blob_store, fake_minio):
    with pytest.raises(SizeExceeded):
        await blob_store.put("big", b"x" * (MAX_BLOB_BYTES + 1), "application/octet-stream")
    assert (BUCKET, "big") not in fake_minio.objects


@pytest.mark.asyncio
async def test_put_failure_is_storage_failed(blob_store, fake_minio):
    fake_minio.fail_puts = True
    with pytest.raises(StorageFailed):
        await blob_store.put("x", b"data", "text/plain")


@pytest.mark.asyncio
async def test_put_connection_error_is_storage_failed():
    client = MagicMock()
    client.stat_object.side_effect = MaxRetryError(None, "/x", "connection refused")
    with pytest.raises(StorageFailed):
        await BlobStore(client, BUCKET, MAX_BLOB_BYTES).put("x", b"data", "text/plain")


@pytest.mark.asyncio
async def test_delete_is_idempotent(blob_store, fake_minio):
    await blob_store.put("x", b"data", "text/plain")
    await blob_store.delete("x")
    await blob_store.delete("x")
    assert (BUCKET, "x") not in fake_minio.objects


@pytest.mark.asyncio
async def test_delete_failure_is_storage_failed(blob_store, fake_minio):
    fake_minio.fail_removes = True
    with pytest.raises(StorageFailed):
        await blob_store.delete("x")


# ---------------------------------------------------------------------------
# issue_access_handle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_access_handle_carries_ttl(blob_store, fake_minio):
    await blob_store.put("x", b"data", "text/plain")
    url = await blob_store.issue_access_handle("x", timedelta(hours=3))
    assert handle_ttl_seconds(url) == 3 * 3600
    assert fake_minio.resolve(url) == b"data"


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl", [timedelta(0), timedelta(milliseconds=500), timedelta(days=8)])
async def test_access_handle_rejects_unsignable_ttl(blob_store, ttl):
    with pytest.raises(AccessHandleFailed):
        await blob_store.issue_access_handle("x", ttl)


@pytest.mark.asyncio
async def test_access_handle_failure(blob_store, fake_minio):
    fake_minio.fail_presign = True
    with pytest.raises(AccessHandleFailed):
        await blob_store.issue_access_handle("x", timedelta(hours=1))


@pytest.mark.asyncio
async def test_access_handle_uses_signing_client(fake_minio):
    signer = MagicMock()
    signer.presigned_get_object.return_value = "https://files.example.com/signed"
    store = BlobStore(fake_minio, BUCKET, MAX_BLOB_BYTES, signing_client=signer)

    url = await store.issue_access_handle("x", timedelta(minutes=5))

    assert url == "https://files.example.com/signed"
    signer.presigned_get_object.assert_called_once_with(BUCKET, "x", expires=timedelta(minutes=5))


def test_create_blob_store_from_settings():
    settings = Settings(
        content_bucket="shares",
        max_blob_bytes=10,
        minio_public_endpoint="files.example.com",
        _env_file=None,
    )
    store = create_blob_store(settings)
    assert store.bucket == "shares"
    assert store.max_object_bytes == 10
    assert store.signing_client is not store.client


def test_create_blob_store_signs_with_main_client_by_default():
    store = create_blob_store(Settings(_env_file=None))
    assert store.signing_client is store.client
