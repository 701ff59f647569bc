"""Content record model for shared text and uploaded files."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.models.base import Base


class ContentRecordRow(Base):
    __tablename__ = "content_records"
    __table_args__ = (
        # Text lives inline, everything else lives in object storage
        CheckConstraint(
            "(inline_content IS NOT NULL) <> (blob_ref IS NOT NULL)",
            name="ck_content_records_one_location",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16))  # text | image | video | file

    inline_content: Mapped[str | None] = mapped_column(Text, default=None)

    blob_ref: Mapped[str | None] = mapped_column(default=None)
    original_name: Mapped[str | None] = mapped_column(default=None)
    mime_type: Mapped[str | None] = mapped_column(default=None)
    byte_size: Mapped[int | None] = mapped_column(BigInteger, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
