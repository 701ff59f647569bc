"""Expiry arithmetic shared by the write path, read path and reaper."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

DEFAULT_TTL = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExpirationPolicy:
    """Fixed, process-wide time-to-live."""

    def __init__(self, ttl: timedelta = DEFAULT_TTL):
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self.ttl = ttl

    def expiry_of(self, created_at: datetime) -> datetime:
        return created_at + self.ttl

    @staticmethod
    def is_expired(expires_at: datetime, now: datetime) -> bool:
        return now >= expires_at

    @staticmethod
    def remaining(expires_at: datetime, now: datetime) -> timedelta:
        """Time left before expiry, never negative."""
        return max(expires_at - now, timedelta(0))
