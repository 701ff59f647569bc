"""Read path: look up, enforce expiry, and build the consumer's view."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import structlog

from modules.content_store.blob_store import MAX_HANDLE_TTL, MIN_HANDLE_TTL, BlobStore
from modules.content_store.errors import Expired, NotFound, StorageFailed
from modules.content_store.expiration import ExpirationPolicy, utcnow
from modules.content_store.metadata_store import MetadataStore
from modules.content_store.models import FileView, TextView
from modules.content_store.records import BlobRecord, ContentRecord, TextRecord

logger = structlog.get_logger()


class ContentRetriever:
    """Serves stored content and lazily reclaims anything past its expiry."""

    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        policy: ExpirationPolicy,
        clock: Callable[[], datetime] = utcnow,
        full_ttl_handles: bool = False,
    ):
        self.metadata = metadata
        self.blobs = blobs
        self.policy = policy
        self.clock = clock
        self.full_ttl_handles = full_ttl_handles

    async def retrieve(self, content_id: str) -> TextView | FileView:
        record = await self.metadata.get(content_id)
        if record is None:
            raise NotFound("Content not found or expired")

        now = self.clock()
        if self.policy.is_expired(record.expires_at, now):
            await self._reclaim(record)
            raise Expired(f"Content has expired ({self._ttl_label()} limit)")

        if isinstance(record, TextRecord):
            return TextView(content=record.content, expires_at=record.expires_at)

        ttl = self._handle_ttl(record, now)
        if ttl is None:
            # Less than a signable second left; treat as already gone
            await self._reclaim(record)
            raise Expired(f"Content has expired ({self._ttl_label()} limit)")

        url = await self.blobs.issue_access_handle(record.blob_ref, ttl)
        return FileView(
            kind=record.kind,
            file_url=url,
            file_name=record.original_name,
            mime_type=record.mime_type,
            expires_at=record.expires_at,
        )

    def _handle_ttl(self, record: BlobRecord, now: datetime) -> timedelta | None:
        """Lifetime for a new access handle, or None if none can be issued."""
        if self.full_ttl_handles:
            return min(self.policy.ttl, MAX_HANDLE_TTL)

        remaining = self.policy.remaining(record.expires_at, now)
        # Round down so the handle never outlives the record
        ttl = min(timedelta(seconds=int(remaining.total_seconds())), MAX_HANDLE_TTL)
        if ttl < MIN_HANDLE_TTL:
            return None
        return ttl

    async def _reclaim(self, record: ContentRecord) -> None:
        logger.info("content_expired", content_id=record.id, kind=record.kind)
        try:
            await self.metadata.delete(record.id)
        except StorageFailed as e:
            logger.warning("expired_metadata_delete_failed", content_id=record.id, error=str(e))

        if isinstance(record, BlobRecord):
            try:
                await self.blobs.delete(record.blob_ref)
            except StorageFailed as e:
                logger.warning(
                    "blob_delete_failed",
                    content_id=record.id,
                    object_name=record.blob_ref,
                    error=str(e),
                )

    def _ttl_label(self) -> str:
        hours = int(self.policy.ttl.total_seconds() // 3600)
        if hours >= 1:
            return f"{hours} hour"
        return f"{int(self.policy.ttl.total_seconds())} second"
