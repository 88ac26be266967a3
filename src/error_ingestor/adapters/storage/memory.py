"""In-process source map store.

Keeps every upload in memory. Suitable for tests, the CLI and single-node
deployments that re-upload maps on start.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from ...models.source_map import SourceMapInfo, SourceMapRecord


class InMemorySourceMapStore:
    """SourceMapStore keeping documents in a dict.

    Example:
        store = InMemorySourceMapStore()
        await store.insert_source_map(record)
        document = await store.get_source_map("my-app", "1.4.0", "index.bundle")
    """

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str, str], tuple[datetime, str]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._documents)

    async def get_source_map(
        self,
        app_id: str,
        app_version: str,
        file_name: str,
    ) -> str | None:
        async with self._lock:
            stored = self._documents.get((app_id, app_version, file_name))
        return stored[1] if stored else None

    async def insert_source_map(self, record: SourceMapRecord) -> None:
        key = (record.app_id, record.app_version, record.file_name)
        async with self._lock:
            self._documents[key] = (datetime.now(UTC), record.source_map)

    async def list_source_maps(
        self,
        app_id: str,
        app_version: str | None = None,
    ) -> list[SourceMapInfo]:
        async with self._lock:
            infos = [
                SourceMapInfo(file_name=file_name, app_version=version, created_at=created_at)
                for (stored_app, version, file_name), (created_at, _) in self._documents.items()
                if stored_app == app_id and (app_version is None or version == app_version)
            ]
        return sorted(infos, key=lambda info: info.created_at, reverse=True)

    async def delete_source_maps(self, app_id: str, app_version: str) -> None:
        async with self._lock:
            for key in [k for k in self._documents if k[:2] == (app_id, app_version)]:
                del self._documents[key]
