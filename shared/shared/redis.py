"""Redis connection helper for the Redis metadata backend."""

from __future__ import annotations

import redis.asyncio as redis
import structlog

from shared.config import get_settings

logger = structlog.get_logger()

_redis_client: redis.Redis | None = None


async def get_redis(redis_url: str | None = None) -> redis.Redis:
    """Get or create the shared Redis client.

    Values are JSON strings, so responses are decoded to ``str``.
    """
    global _redis_client
    if _redis_client is None:
        url = redis_url or get_settings().redis_url
        _redis_client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        logger.info("redis_client_created", url=url.rsplit("@", 1)[-1])
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection, if one was opened."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
