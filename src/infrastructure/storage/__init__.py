# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Blob storage infrastructure."""

from functools import lru_cache

from src.core.config import get_settings
from src.infrastructure.storage.blob_store import (
    BlobNotFoundError,
    BlobStorageError,
    BlobStore,
    LocalBlobStore,
)


@lru_cache
def get_blob_store() -> BlobStore:
    """Get the configured blob store (cached)."""
    return LocalBlobStore(get_settings().storage.root)


__all__ = [
    "BlobNotFoundError",
    "BlobStorageError",
    "BlobStore",
    "LocalBlobStore",
    "get_blob_store",
]
