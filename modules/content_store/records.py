"""In-process representation of stored content records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

TEXT = "text"
BLOB_KINDS = ("image", "video", "file")
KINDS = (TEXT, *BLOB_KINDS)


def classify_mime(mime_type: str | None) -> str:
    """Pick a blob kind from a MIME type, the way the upload form groups them."""
    major = (mime_type or "").split("/", 1)[0].lower()
    if major == "image":
        return "image"
    if major == "video":
        return "video"
    return "file"


@dataclass(frozen=True)
class TextRecord:
    """Short text stored inline in the metadata row."""

    id: str
    content: str
    created_at: datetime
    expires_at: datetime
    kind: str = TEXT


@dataclass(frozen=True)
class BlobRecord:
    """A file whose bytes live in object storage under ``blob_ref``."""

    id: str
    kind: str  # image | video | file
    blob_ref: str
    original_name: str
    mime_type: str
    byte_size: int
    created_at: datetime
    expires_at: datetime


ContentRecord = TextRecord | BlobRecord


def record_to_dict(record: ContentRecord) -> dict:
    """Flatten a record into the column/field names used by every backend."""
    data = {
        "id": record.id,
        "kind": record.kind,
        "inline_content": None,
        "blob_ref": None,
        "original_name": None,
        "mime_type": None,
        "byte_size": None,
        "created_at": record.created_at,
        "expires_at": record.expires_at,
    }
    if isinstance(record, TextRecord):
        data["inline_content"] = record.content
    else:
        data["blob_ref"] = record.blob_ref
        data["original_name"] = record.original_name
        data["mime_type"] = record.mime_type
        data["byte_size"] = record.byte_size
    return data


def record_from_dict(data: dict) -> ContentRecord:
    """Inverse of :func:`record_to_dict`. Raises ``ValueError`` on a malformed row."""
    kind = data["kind"]
    if kind == TEXT:
        if data.get("inline_content") is None:
            raise ValueError(f"text record {data['id']} has no inline content")
        return TextRecord(
            id=data["id"],
            content=data["inline_content"],
            created_at=data["created_at"],
            expires_at=data["expires_at"],
        )
    if kind not in BLOB_KINDS or not data.get("blob_ref"):
        raise ValueError(f"record {data['id']} has kind {kind!r} without a blob reference")
    return BlobRecord(
        id=data["id"],
        kind=kind,
        blob_ref=data["blob_ref"],
        original_name=data.get("original_name") or "",
        mime_type=data.get("mime_type") or "application/octet-stream",
        byte_size=data.get("byte_size") or 0,
        created_at=data["created_at"],
        expires_at=data["expires_at"],
    )
