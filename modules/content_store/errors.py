"""Error taxonomy for the content store.

Every failure the store can surface to a caller is one of these. The
``status_code`` attribute is what the HTTP layer answers with.
"""

from __future__ import annotations


class ContentStoreError(Exception):
    """Base class for all content store failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ContentStoreError):
    """Bad or missing input. Nothing was written."""

    status_code = 400


class SizeExceeded(ValidationFailed):
    """Payload is larger than the configured ceiling."""

    status_code = 413


class NotFound(ContentStoreError):
    """Identifier was never issued, or was already reclaimed."""

    status_code = 404


class Expired(ContentStoreError):
    """Identifier existed but its lifetime has elapsed."""

    status_code = 410


class StorageFailed(ContentStoreError):
    """A metadata or blob store call failed. Safe to retry."""

    status_code = 500


class AccessHandleFailed(StorageFailed):
    """Signing a read handle for a blob failed."""

    status_code = 503


class AlreadyExists(ContentStoreError):
    """A key or object name is already taken.

    Never returned to clients directly; the ingestor reports it as
    :class:`StorageFailed`.
    """
