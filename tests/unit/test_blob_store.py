# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the filesystem blob store."""

import pytest

from src.infrastructure.storage.blob_store import BlobNotFoundError, BlobStorageError, LocalBlobStore


@pytest.fixture
def store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path)


@pytest.mark.asyncio
async def test_put_then_get(store, tmp_path):
    ref = await store.put("/contracts/", "contract-1.html", b"<p>ok</p>")

    assert ref == "contracts/contract-1.html"
    assert (tmp_path / "contracts" / "contract-1.html").read_bytes() == b"<p>ok</p>"
    assert await store.get(ref) == b"<p>ok</p>"
    assert await store.exists(ref) is True


@pytest.mark.asyncio
async def test_put_overwrites(store):
    ref = await store.put("contracts", "contract-1.html", b"v1")
    await store.put("contracts", "contract-1.html", b"v2")

    assert await store.get(ref) == b"v2"


@pytest.mark.asyncio
async def test_missing_blob(store):
    assert await store.exists("contracts/none.html") is False

    with pytest.raises(BlobNotFoundError):
        await store.get("contracts/none.html")


@pytest.mark.asyncio
async def test_reference_cannot_escape_root(store):
    with pytest.raises(BlobStorageError):
        await store.get("../outside.txt")

    with pytest.raises(BlobStorageError):
        await store.put("..", "outside.txt", b"x")
