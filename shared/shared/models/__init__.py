"""SQLAlchemy models."""

from shared.models.base import Base
from shared.models.content import ContentRecordRow

__all__ = [
    "Base",
    "ContentRecordRow",
]
