"""Tests for source map management."""

import json

import pytest

from error_ingestor.core.source_map_cache import SourceMapCache
from error_ingestor.core.source_maps import MAX_BATCH_SIZE, SourceMapService
from error_ingestor.models.source_map import SourceMapRecord
from error_ingestor.utils.async_helpers import (
    InvalidIdentifierError,
    SourceMapUploadError,
    StorageError,
)

DOC = json.dumps({"version": 3, "sources": ["src/a.ts"], "names": [], "mappings": "AAAA"})


class FailingStore:
    """Store wrapper failing inserts for selected file names."""

    def __init__(self, inner, fail_on: set[str]) -> None:
        self.inner = inner
        self.fail_on = fail_on

    async def insert_source_map(self, record: SourceMapRecord) -> None:
        if record.file_name in self.fail_on:
            raise StorageError(f"insert failed for {record.file_name}")
        await self.inner.insert_source_map(record)

    def __getattr__(self, name):
        return getattr(self.inner, name)


@pytest.fixture
def service(store, cache) -> SourceMapService:
    """A service over the in-memory store and cache."""
    return SourceMapService(store, cache)


async def warm(cache: SourceMapCache, store, app_id: str, version: str, file_name: str):
    """Store a minimal map and load it into the cache."""
    await store.insert_source_map(
        SourceMapRecord(app_id=app_id, app_version=version, file_name=file_name, source_map=DOC)
    )
    assert await cache.get(app_id, version, file_name) is not None


class TestUpload:
    """Tests for single uploads."""

    async def test_upload_stores_document(self, service, store):
        """Test that an upload is readable from the store."""
        await service.upload("app", "1.0", "index.bundle", DOC)

        assert await store.get_source_map("app", "1.0", "index.bundle") == DOC

    async def test_upload_invalidates_version(self, service, store, cache):
        """Test that uploads clear the version's cached maps only."""
        await warm(cache, store, "app", "1.0", "index.bundle")
        await warm(cache, store, "app", "1.1", "index.bundle")

        await service.upload("app", "1.0", "other.bundle", DOC)

        assert cache.keys() == ["app:1.1:index.bundle"]

    @pytest.mark.parametrize(
        ("file_name", "document", "message"),
        [
            ("", DOC, "fileName is required"),
            ("index.bundle", "", "sourceMap is required"),
            ("index.bundle", "{not json", "Invalid source map JSON"),
        ],
    )
    async def test_invalid_input(self, service, store, file_name, document, message):
        """Test that bad input is rejected before storing."""
        with pytest.raises(SourceMapUploadError, match=message):
            await service.upload("app", "1.0", file_name, document)
        assert len(store) == 0

    async def test_invalid_scope(self, service):
        """Test that delimiter-bearing identifiers are rejected."""
        with pytest.raises(InvalidIdentifierError):
            await service.upload("app:x", "1.0", "index.bundle", DOC)


class TestUploadBatch:
    """Tests for batch uploads."""

    async def test_batch(self, service, store):
        """Test that every item is stored."""
        count = await service.upload_batch(
            "app", "1.0", [("a.js", DOC), ("b.js", DOC), ("c.js", DOC)]
        )

        assert count == 3
        assert len(store) == 3

    @pytest.mark.parametrize("size", [0, MAX_BATCH_SIZE + 1])
    async def test_batch_size_limits(self, service, size):
        """Test that empty and oversized batches are rejected."""
        items = [(f"{i}.js", DOC) for i in range(size)]

        with pytest.raises(SourceMapUploadError, match="between 1 and"):
            await service.upload_batch("app", "1.0", items)

    async def test_validates_all_before_storing(self, service, store):
        """Test that one bad document stores nothing."""
        with pytest.raises(SourceMapUploadError):
            await service.upload_batch("app", "1.0", [("a.js", DOC), ("b.js", "nope")])

        assert len(store) == 0

    async def test_partial_failure(self, store, cache):
        """Test that failures report the uploaded count and still invalidate."""
        service = SourceMapService(FailingStore(store, {"b.js"}), cache)
        await warm(cache, store, "app", "1.0", "index.bundle")

        with pytest.raises(SourceMapUploadError) as exc_info:
            await service.upload_batch("app", "1.0", [("a.js", DOC), ("b.js", DOC)])

        assert exc_info.value.uploaded == 1
        assert isinstance(exc_info.value.__cause__, StorageError)
        assert len(cache) == 0

    async def test_total_failure_keeps_cache(self, store, cache):
        """Test that a batch storing nothing leaves the cache alone."""
        service = SourceMapService(FailingStore(store, {"a.js"}), cache)
        await warm(cache, store, "app", "1.0", "index.bundle")

        with pytest.raises(SourceMapUploadError) as exc_info:
            await service.upload_batch("app", "1.0", [("a.js", DOC)])

        assert exc_info.value.uploaded == 0
        assert len(cache) == 1


class TestListAndDelete:
    """Tests for listing, availability and deletion."""

    async def test_list_and_has(self, service):
        """Test listing and availability checks."""
        await service.upload("app", "1.0", "a.js", DOC)
        await service.upload("app", "1.1", "b.js", DOC)

        assert {i.file_name for i in await service.list_source_maps("app")} == {"a.js", "b.js"}
        assert [i.file_name for i in await service.list_source_maps("app", "1.1")] == ["b.js"]
        assert await service.has_source_maps("app", "1.0") is True
        assert await service.has_source_maps("app", "2.0") is False

    async def test_list_requires_app(self, service):
        """Test that listing without an app id is rejected."""
        with pytest.raises(InvalidIdentifierError):
            await service.list_source_maps("")

    async def test_delete_removes_and_invalidates(self, service, store, cache):
        """Test that delete clears storage and cache for the version."""
        await warm(cache, store, "app", "1.0", "index.bundle")
        await warm(cache, store, "app", "1.1", "index.bundle")

        await service.delete("app", "1.0")

        assert await store.get_source_map("app", "1.0", "index.bundle") is None
        assert cache.keys() == ["app:1.1:index.bundle"]
        assert await cache.get("app", "1.0", "index.bundle") is None
