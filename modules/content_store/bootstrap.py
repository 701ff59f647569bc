"""Startup provisioning for the content store."""

from __future__ import annotations

import structlog

from modules.content_store.blob_store import BlobStore
from modules.content_store.errors import StorageFailed

logger = structlog.get_logger()


async def ensure_ready(blobs: BlobStore) -> bool:
    """Make sure the blob bucket exists.

    Never raises. Returns False when provisioning failed; text sharing
    keeps working in that case because it never touches object storage.
    """
    try:
        await blobs.provision_namespace()
    except StorageFailed as e:
        logger.warning("blob_store_unavailable", bucket=blobs.bucket, error=str(e))
        return False
    return True
