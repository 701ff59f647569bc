"""Key-value storage for content records.

Two backends share one interface: a SQL table (the default) and Redis.
Both are single-key only. ``put`` refuses to overwrite, ``get`` has no
side effects and ``delete`` is idempotent.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import structlog
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modules.content_store.errors import AlreadyExists, StorageFailed
from modules.content_store.records import ContentRecord, record_from_dict, record_to_dict
from shared.models.content import ContentRecordRow

logger = structlog.get_logger()

_COLUMNS = (
    "id",
    "kind",
    "inline_content",
    "blob_ref",
    "original_name",
    "mime_type",
    "byte_size",
    "created_at",
    "expires_at",
)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MetadataStore(ABC):
    """Abstract key-value table mapping identifier -> content record."""

    @abstractmethod
    async def put(self, content_id: str, record: ContentRecord) -> None:
        """Insert a new record. Raises AlreadyExists if the key is taken."""

    @abstractmethod
    async def get(self, content_id: str) -> ContentRecord | None:
        """Look up a record, or None if there is none."""

    @abstractmethod
    async def delete(self, content_id: str) -> None:
        """Remove a record. Missing keys are not an error."""


class SqlMetadataStore(MetadataStore):
    """Records stored as rows of the ``content_records`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def put(self, content_id: str, record: ContentRecord) -> None:
        data = record_to_dict(record)
        data["id"] = content_id
        try:
            async with self.session_factory() as session:
                session.add(ContentRecordRow(**data))
                try:
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    raise AlreadyExists(f"Content id already in use: {content_id}") from e
        except SQLAlchemyError as e:
            logger.error("metadata_put_error", content_id=content_id, error=str(e))
            raise StorageFailed(f"Failed to store content metadata: {e}") from e

    async def get(self, content_id: str) -> ContentRecord | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ContentRecordRow).where(ContentRecordRow.id == content_id)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("metadata_get_error", content_id=content_id, error=str(e))
            raise StorageFailed(f"Failed to read content metadata: {e}") from e

        if row is None:
            return None
        data = {col: getattr(row, col) for col in _COLUMNS}
        data["created_at"] = _as_utc(data["created_at"])
        data["expires_at"] = _as_utc(data["expires_at"])
        return record_from_dict(data)

    async def delete(self, content_id: str) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(
                    delete(ContentRecordRow).where(ContentRecordRow.id == content_id)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("metadata_delete_error", content_id=content_id, error=str(e))
            raise StorageFailed(f"Failed to delete content metadata: {e}") from e


def _redis_key(content_id: str) -> str:
    """Build a Redis key."""
    return f"content:{content_id}"


class RedisMetadataStore(MetadataStore):
    """Records stored as JSON strings, one Redis key per record."""

    def __init__(self, redis_client):
        self._redis = redis_client

    async def put(self, content_id: str, record: ContentRecord) -> None:
        data = record_to_dict(record)
        data["id"] = content_id
        data["created_at"] = data["created_at"].isoformat()
        data["expires_at"] = data["expires_at"].isoformat()

        key = _redis_key(content_id)
        try:
            stored = await self._redis.set(key, json.dumps(data), nx=True)
        except RedisError as e:
            logger.error("metadata_put_error", content_id=content_id, error=str(e))
            raise StorageFailed(f"Failed to store content metadata: {e}") from e
        if not stored:
            raise AlreadyExists(f"Content id already in use: {content_id}")

    async def get(self, content_id: str) -> ContentRecord | None:
        key = _redis_key(content_id)
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.error("metadata_get_error", content_id=content_id, error=str(e))
            raise StorageFailed(f"Failed to read content metadata: {e}") from e

        if raw is None:
            return None
        data = json.loads(raw)
        data["created_at"] = _as_utc(datetime.fromisoformat(data["created_at"]))
        data["expires_at"] = _as_utc(datetime.fromisoformat(data["expires_at"]))
        return record_from_dict(data)

    async def delete(self, content_id: str) -> None:
        key = _redis_key(content_id)
        try:
            await self._redis.delete(key)
        except RedisError as e:
            logger.error("metadata_delete_error", content_id=content_id, error=str(e))
            raise StorageFailed(f"Failed to delete content metadata: {e}") from e
