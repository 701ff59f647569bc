"""Optional background sweep that reclaims expired content nobody reads.

The read path already reclaims expired records lazily; this loop only
bounds how long unread ones linger. SQL metadata backend only.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modules.content_store.blob_store import BlobStore
from modules.content_store.errors import StorageFailed
from modules.content_store.expiration import ExpirationPolicy, utcnow
from modules.content_store.metadata_store import MetadataStore
from shared.models.content import ContentRecordRow

logger = structlog.get_logger()


async def reaper_loop(
    session_factory: async_sessionmaker[AsyncSession],
    metadata: MetadataStore,
    blobs: BlobStore,
    interval_seconds: int,
    batch_size: int,
    clock: Callable[[], datetime] = utcnow,
) -> None:
    """Sweep forever, sleeping ``interval_seconds`` between passes."""
    logger.info("reaper_started", interval_seconds=interval_seconds)
    while True:
        try:
            await reap_expired(session_factory, metadata, blobs, batch_size, clock())
        except Exception as e:
            logger.error("reaper_loop_error", error=str(e))

        await asyncio.sleep(interval_seconds)


async def reap_expired(
    session_factory: async_sessionmaker[AsyncSession],
    metadata: MetadataStore,
    blobs: BlobStore,
    batch_size: int,
    now: datetime,
) -> int:
    """Reclaim up to ``batch_size`` expired records. Returns how many were removed."""
    async with session_factory() as session:
        result = await session.execute(
            select(ContentRecordRow.id, ContentRecordRow.blob_ref, ContentRecordRow.expires_at)
            .where(ContentRecordRow.expires_at <= now)
            .order_by(ContentRecordRow.expires_at)
            .limit(batch_size)
        )
        rows = result.all()

    reaped = 0
    for content_id, blob_ref, expires_at in rows:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if not ExpirationPolicy.is_expired(expires_at, now):
            continue

        if blob_ref:
            try:
                await blobs.delete(blob_ref)
            except StorageFailed as e:
                # Keep the row so the next pass retries the blob
                logger.warning("blob_delete_failed", content_id=content_id, object_name=blob_ref, error=str(e))
                continue

        await metadata.delete(content_id)
        reaped += 1

    if reaped:
        logger.info("expired_content_reaped", count=reaped)
    return reaped
