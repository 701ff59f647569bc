"""Identifier and object-name generation."""

from __future__ import annotations

import secrets
import time

# 6 bytes -> 48 random bits per identifier
_RANDOM_BYTES = 6


def generate_id() -> str:
    """Return a new opaque content identifier.

    ``<epoch ms>-<12 hex chars>``. The timestamp part is only there to
    spread identifiers out and to help when reading logs; nothing parses it.
    """
    return f"{time.time_ns() // 1_000_000}-{secrets.token_hex(_RANDOM_BYTES)}"


def sanitize_filename(filename: str) -> str:
    safe_name = "".join(c if c.isalnum() or c in "-_. " else "" for c in filename)
    return safe_name.strip().replace(" ", "_") or "file"


def blob_name_for(content_id: str, original_name: str) -> str:
    """Object name for a record's blob, unique because the identifier is."""
    return f"{content_id}-{sanitize_filename(original_name)}"
