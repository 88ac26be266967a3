"""Source map management for app versions.

Every write to the store (upload, re-upload, delete) is followed by cache
invalidation for the affected app version, so resolution never serves a
replaced map for the remainder of its TTL.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence

import structlog

from error_ingestor.core.source_map_cache import SourceMapCache, validate_app_scope
from error_ingestor.interfaces.storage import SourceMapStore
from error_ingestor.models.source_map import SourceMapInfo, SourceMapRecord
from error_ingestor.utils.async_helpers import InvalidIdentifierError, SourceMapUploadError
from error_ingestor.utils.logging import LogEventNames

log = structlog.get_logger()

MAX_BATCH_SIZE = 20


def _validate_document(file_name: str, document: str) -> None:
    if not file_name:
        raise SourceMapUploadError("fileName is required")
    if not document:
        raise SourceMapUploadError(f"sourceMap is required for {file_name}")
    try:
        json.loads(document)
    except json.JSONDecodeError as e:
        raise SourceMapUploadError(f"Invalid source map JSON for {file_name}") from e


class SourceMapService:
    """Uploads, lists and deletes source maps, keeping the cache coherent.

    Example:
        service = SourceMapService(store, cache)
        await service.upload("my-app", "1.4.0", "index.bundle", document)
        await service.delete("my-app", "1.3.9")
    """

    def __init__(self, store: SourceMapStore, cache: SourceMapCache) -> None:
        self._store = store
        self._cache = cache

    async def upload(
        self,
        app_id: str,
        app_version: str,
        file_name: str,
        document: str,
    ) -> None:
        """Store one source map and invalidate the version's cache entries.

        Raises:
            InvalidIdentifierError: If app_id or app_version is invalid
            SourceMapUploadError: If the document is missing or not JSON
            StorageError: If the store rejects the document
        """
        validate_app_scope(app_id, app_version)
        _validate_document(file_name, document)

        await self._store.insert_source_map(
            SourceMapRecord(
                app_id=app_id,
                app_version=app_version,
                file_name=file_name,
                source_map=document,
            )
        )
        self._cache.clear(app_id, app_version)

        log.info(
            LogEventNames.SOURCE_MAP_UPLOADED,
            app_id=app_id,
            app_version=app_version,
            file_name=file_name,
        )

    async def upload_batch(
        self,
        app_id: str,
        app_version: str,
        items: Sequence[tuple[str, str]],
    ) -> int:
        """Store several ``(file_name, document)`` pairs for one version.

        All documents are validated before any is stored.

        Returns:
            Number of documents stored

        Raises:
            InvalidIdentifierError: If app_id or app_version is invalid
            SourceMapUploadError: On invalid input, or when some documents
                could not be stored (``uploaded`` holds the stored count)
        """
        validate_app_scope(app_id, app_version)
        if not 1 <= len(items) <= MAX_BATCH_SIZE:
            raise SourceMapUploadError(
                f"A batch must contain between 1 and {MAX_BATCH_SIZE} source maps"
            )
        for file_name, document in items:
            _validate_document(file_name, document)

        results = await asyncio.gather(
            *(
                self._store.insert_source_map(
                    SourceMapRecord(
                        app_id=app_id,
                        app_version=app_version,
                        file_name=file_name,
                        source_map=document,
                    )
                )
                for file_name, document in items
            ),
            return_exceptions=True,
        )

        errors = [result for result in results if isinstance(result, Exception)]
        uploaded = len(results) - len(errors)

        if uploaded:
            self._cache.clear(app_id, app_version)

        if errors:
            log.error(
                "source_map_batch_upload_failed",
                app_id=app_id,
                app_version=app_version,
                failed=len(errors),
                uploaded=uploaded,
                error=str(errors[0]),
            )
            raise SourceMapUploadError(
                f"Failed to upload {len(errors)} source maps", uploaded=uploaded
            ) from errors[0]

        log.info(
            LogEventNames.SOURCE_MAP_UPLOADED,
            app_id=app_id,
            app_version=app_version,
            count=uploaded,
        )
        return uploaded

    async def list_source_maps(
        self,
        app_id: str,
        app_version: str | None = None,
    ) -> list[SourceMapInfo]:
        """List stored source maps for an app, newest first."""
        if not app_id:
            raise InvalidIdentifierError("app_id is required")
        return await self._store.list_source_maps(app_id, app_version)

    async def delete(self, app_id: str, app_version: str) -> None:
        """Delete all source maps of a version and drop them from the cache."""
        validate_app_scope(app_id, app_version)
        await self._store.delete_source_maps(app_id, app_version)
        self._cache.clear(app_id, app_version)

        log.info(LogEventNames.SOURCE_MAPS_DELETED, app_id=app_id, app_version=app_version)

    async def has_source_maps(self, app_id: str, app_version: str) -> bool:
        """Whether any source map was uploaded for the version."""
        return len(await self.list_source_maps(app_id, app_version)) > 0
