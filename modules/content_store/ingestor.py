"""Write path: validate, persist and hand back an identifier."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import structlog

from modules.content_store.blob_store import BlobStore
from modules.content_store.errors import AlreadyExists, SizeExceeded, StorageFailed, ValidationFailed
from modules.content_store.expiration import ExpirationPolicy, utcnow
from modules.content_store.identifiers import blob_name_for, generate_id
from modules.content_store.metadata_store import MetadataStore
from modules.content_store.records import KINDS, TEXT, BlobRecord, TextRecord

logger = structlog.get_logger()

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Upload:
    """A file as received from the producer."""

    data: bytes
    name: str
    mime_type: str = DEFAULT_MIME_TYPE


class ContentIngestor:
    """Accepts text or files and stores them for the configured lifetime."""

    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        policy: ExpirationPolicy,
        max_inline_bytes: int,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = generate_id,
    ):
        self.metadata = metadata
        self.blobs = blobs
        self.policy = policy
        self.max_inline_bytes = max_inline_bytes
        self.clock = clock
        self.id_factory = id_factory

    def validate(self, kind: str, payload: str | Upload | None) -> None:
        """Raise ValidationFailed if the payload can't be stored as ``kind``."""
        if kind not in KINDS:
            raise ValidationFailed(f"Unsupported content type: {kind!r}")

        if kind == TEXT:
            if not isinstance(payload, str) or not payload:
                raise ValidationFailed("No content provided")
            if len(payload.encode("utf-8")) > self.max_inline_bytes:
                raise SizeExceeded(f"Text too large (max {self.max_inline_bytes} bytes)")
            return

        if not isinstance(payload, Upload) or not payload.data or not payload.name:
            raise ValidationFailed("No file provided")
        self.blobs.check_size(len(payload.data))

    async def ingest(self, kind: str, payload: str | Upload | None) -> str:
        """Store the payload and return its new identifier."""
        self.validate(kind, payload)

        content_id = self.id_factory()
        created_at = self.clock()
        expires_at = self.policy.expiry_of(created_at)

        if kind == TEXT:
            record = TextRecord(
                id=content_id,
                content=payload,
                created_at=created_at,
                expires_at=expires_at,
            )
            await self._put_metadata(record)
            logger.info("content_ingested", content_id=content_id, kind=kind)
            return content_id

        record = BlobRecord(
            id=content_id,
            kind=kind,
            blob_ref=blob_name_for(content_id, payload.name),
            original_name=payload.name,
            mime_type=payload.mime_type or DEFAULT_MIME_TYPE,
            byte_size=len(payload.data),
            created_at=created_at,
            expires_at=expires_at,
        )

        # The blob must land before the metadata row becomes visible to readers
        try:
            await self.blobs.put(record.blob_ref, payload.data, record.mime_type)
        except AlreadyExists as e:
            logger.error("identifier_collision", content_id=content_id, object_name=record.blob_ref)
            raise StorageFailed("Failed to upload file: object name collision") from e

        try:
            await self._put_metadata(record)
        except StorageFailed:
            await self._discard_blob(record.blob_ref)
            raise

        logger.info(
            "content_ingested",
            content_id=content_id,
            kind=kind,
            object_name=record.blob_ref,
            size=record.byte_size,
        )
        return content_id

    async def _put_metadata(self, record: TextRecord | BlobRecord) -> None:
        try:
            await self.metadata.put(record.id, record)
        except AlreadyExists as e:
            logger.error("identifier_collision", content_id=record.id)
            raise StorageFailed("Failed to store content: identifier collision") from e

    async def _discard_blob(self, object_name: str) -> None:
        try:
            await self.blobs.delete(object_name)
        except StorageFailed as e:
            logger.warning("orphaned_blob", object_name=object_name, error=str(e))
