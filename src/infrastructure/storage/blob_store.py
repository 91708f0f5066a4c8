# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Blob storage for rendered contract documents.

Blob references are opaque strings of the form ``<prefix>/<name>``.
Callers only store and pass them around; only a BlobStore resolves them.

Example:
    store = LocalBlobStore(settings.storage.root)
    ref = await store.put("contracts", "contract-123.html", html.encode())
    data = await store.get(ref)
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class BlobStorageError(Exception):
    """Raised when a blob cannot be written or read."""

    pass


class BlobNotFoundError(BlobStorageError):
    """Raised when a blob reference does not resolve."""

    pass


class BlobStore(Protocol):
    """Storage backend used by the contract domain."""

    async def put(self, prefix: str, name: str, data: bytes) -> str:
        """Store data and return its blob reference."""
        ...

    async def get(self, ref: str) -> bytes:
        """Read the blob behind a reference."""
        ...

    async def exists(self, ref: str) -> bool:
        """Check whether a reference resolves."""
        ...


class LocalBlobStore:
    """Filesystem-backed blob store rooted at a directory.

    Attributes:
        root: Base directory for all blobs.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _resolve(self, ref: str) -> Path:
        path = (self.root / ref).resolve()
        if self.root.resolve() not in path.parents:
            raise BlobStorageError(f"Blob reference escapes storage root: {ref}")
        return path

    async def put(self, prefix: str, name: str, data: bytes) -> str:
        """Write data under prefix/name.

        Args:
            prefix: Logical folder, e.g. "contracts".
            name: File name within the folder.
            data: Raw bytes to store.

        Returns:
            Blob reference.

        Raises:
            BlobStorageError: If the file cannot be written.
        """
        ref = f"{prefix.strip('/')}/{name}"
        path = self._resolve(ref)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise BlobStorageError(f"Failed to write blob {ref}: {e}") from e

        logger.debug("Stored blob: ref=%s, size=%d", ref, len(data))
        return ref

    async def get(self, ref: str) -> bytes:
        """Read a blob.

        Raises:
            BlobNotFoundError: If nothing is stored under ref.
            BlobStorageError: If the file cannot be read.
        """
        path = self._resolve(ref)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {ref}")

        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise BlobStorageError(f"Failed to read blob {ref}: {e}") from e

    async def exists(self, ref: str) -> bool:
        return self._resolve(ref).is_file()
