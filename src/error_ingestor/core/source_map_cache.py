"""Bounded, time-limited cache of decoded source maps.

Entries are keyed by ``app_id:app_version:file_name`` and hold a decoded
``SourceMapTable`` with the time it was loaded.

Entry lifecycle:
- absent -> live: first successful load from the store
- live -> stale: ``ttl_seconds`` elapsed since loading
- stale -> live/absent: the next lookup reloads it; a failed reload drops it
- any -> absent: capacity eviction (oldest load first) or ``clear``

Missing and malformed documents are never cached, so a map uploaded later
is picked up on the next lookup.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

import structlog
from cachetools import FIFOCache

from error_ingestor.core.position_lookup import SourceMapTable
from error_ingestor.interfaces.storage import SourceMapStore
from error_ingestor.utils.async_helpers import (
    InvalidIdentifierError,
    SourceMapParseError,
    StorageError,
)
from error_ingestor.utils.logging import LogEventNames
from error_ingestor.utils.metrics import MetricsRegistry
from error_ingestor.utils.security import (
    CACHE_KEY_DELIMITER,
    escape_key_component,
    validate_identifier,
)

log = structlog.get_logger()

TableFactory = Callable[[str], SourceMapTable]


@dataclass
class CacheEntry:
    """A decoded source map and the monotonic time it was loaded."""

    table: SourceMapTable
    loaded_at: float


class SourceMapCache:
    """Cache of decoded source maps backed by a ``SourceMapStore``.

    Concurrent lookups of the same missing key share a single store load.
    The entry map is guarded by a lock that is never held across an await,
    so ``clear`` may be called from any thread.

    Example:
        cache = SourceMapCache(store)
        table = await cache.get("my-app", "1.4.0", "index.bundle")
        ...
        cache.clear("my-app", "1.4.0")  # after re-uploading that version
    """

    DEFAULT_TTL_SECONDS = 5 * 60
    DEFAULT_MAX_ENTRIES = 100

    def __init__(
        self,
        store: SourceMapStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
        table_factory: TableFactory = SourceMapTable.from_document,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._store = store
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._table_factory = table_factory
        self._metrics = metrics

        # Entries are only ever inserted after a load, so insertion order is
        # load order and FIFO eviction drops the oldest load first.
        self._entries: FIFOCache[str, CacheEntry] = FIFOCache(maxsize=max_entries)
        self._inflight: dict[str, asyncio.Future[SourceMapTable | None]] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        """Cache keys in insertion order."""
        with self._lock:
            return list(self._entries)

    @staticmethod
    def cache_key(app_id: str, app_version: str, file_name: str) -> str:
        """Build the cache key for a bundle file.

        Raises:
            InvalidIdentifierError: If app_id or app_version is empty or
                contains the key delimiter
        """
        _check_identifier("app_id", app_id)
        _check_identifier("app_version", app_version)
        return CACHE_KEY_DELIMITER.join(
            (app_id, app_version, escape_key_component(file_name))
        )

    async def get(
        self,
        app_id: str,
        app_version: str,
        file_name: str,
    ) -> SourceMapTable | None:
        """Return the decoded source map for a bundle file.

        Args:
            app_id: Application identifier
            app_version: Application version
            file_name: Bundle file name

        Returns:
            The decoded table, or None if no usable map is stored

        Raises:
            InvalidIdentifierError: If app_id or app_version is invalid
        """
        key = self.cache_key(app_id, app_version, file_name)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.loaded_at < self._ttl:
                self._count("source_map_cache_hits")
                log.debug(LogEventNames.SOURCE_MAP_CACHE_HIT, cache_key=key)
                return entry.table

            pending = self._inflight.get(key)
            if pending is None:
                pending = asyncio.get_running_loop().create_future()
                self._inflight[key] = pending
                owner = True
            else:
                owner = False

        if not owner:
            return await asyncio.shield(pending)

        self._count("source_map_cache_misses")
        log.debug(
            LogEventNames.SOURCE_MAP_CACHE_STALE if entry else LogEventNames.SOURCE_MAP_CACHE_MISS,
            cache_key=key,
        )

        try:
            table = await self._load(key, app_id, app_version, file_name)
        except asyncio.CancelledError:
            self._finish(key, pending)
            pending.cancel()
            raise
        except Exception as e:
            self._finish(key, pending)
            pending.set_exception(e)
            # Waiters re-raise it; mark retrieved for the no-waiter case
            pending.exception()
            raise

        with self._lock:
            # A clear() during the load invalidated this result
            if self._inflight.get(key) is pending:
                self._entries.pop(key, None)
                if table is not None:
                    self._insert(key, table)
                del self._inflight[key]
                self._set_size()

        pending.set_result(table)
        return table

    def clear(self, app_id: str | None = None, app_version: str | None = None) -> int:
        """Invalidate cached source maps.

        With no app_id everything is dropped; with app_id only that app's
        entries; with app_id and app_version only that version's entries.
        Must be called whenever stored documents are replaced or deleted.

        Returns:
            Number of entries removed
        """
        with self._lock:
            if not app_id:
                removed = len(self._entries)
                self._entries.clear()
                self._inflight.clear()
            else:
                _check_identifier("app_id", app_id)
                parts = [app_id]
                if app_version:
                    _check_identifier("app_version", app_version)
                    parts.append(app_version)
                prefix = CACHE_KEY_DELIMITER.join(parts) + CACHE_KEY_DELIMITER

                stale_keys = [k for k in self._entries if k.startswith(prefix)]
                for key in stale_keys:
                    del self._entries[key]
                for key in [k for k in self._inflight if k.startswith(prefix)]:
                    del self._inflight[key]
                removed = len(stale_keys)

            self._set_size()

        log.info(
            LogEventNames.SOURCE_MAP_CACHE_CLEARED,
            app_id=app_id,
            app_version=app_version,
            removed=removed,
        )
        return removed

    async def _load(
        self,
        key: str,
        app_id: str,
        app_version: str,
        file_name: str,
    ) -> SourceMapTable | None:
        try:
            document = await self._store.get_source_map(app_id, app_version, file_name)
        except StorageError as e:
            self._count("source_map_load_failures")
            log.warning(LogEventNames.STORAGE_REQUEST_FAILED, cache_key=key, error=str(e))
            return None
        except Exception as e:
            self._count("source_map_load_failures")
            log.exception(
                LogEventNames.STORAGE_REQUEST_FAILED,
                cache_key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if document is None:
            log.debug(LogEventNames.SOURCE_MAP_NOT_FOUND, cache_key=key)
            return None

        try:
            table = self._table_factory(document)
        except SourceMapParseError as e:
            self._count("source_map_load_failures")
            log.warning(LogEventNames.SOURCE_MAP_PARSE_FAILED, cache_key=key, error=str(e))
            return None

        log.info(LogEventNames.SOURCE_MAP_LOADED, cache_key=key)
        return table

    def _insert(self, key: str, table: SourceMapTable) -> None:
        # Caller holds self._lock
        if len(self._entries) >= self._max_entries:
            oldest, _ = self._entries.popitem()
            self._count("source_map_cache_evictions")
            log.debug(LogEventNames.SOURCE_MAP_CACHE_EVICTED, cache_key=oldest)

        self._entries[key] = CacheEntry(table=table, loaded_at=self._clock())

    def _finish(self, key: str, pending: asyncio.Future[SourceMapTable | None]) -> None:
        with self._lock:
            if self._inflight.get(key) is pending:
                del self._inflight[key]

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            getattr(self._metrics, name).inc()

    def _set_size(self) -> None:
        if self._metrics is not None:
            self._metrics.source_map_cache_size.set(len(self._entries))


def _check_identifier(field_name: str, value: str) -> None:
    if not validate_identifier(value):
        raise InvalidIdentifierError(
            f"{field_name} must be non-empty and must not contain "
            f"{CACHE_KEY_DELIMITER!r}: {value!r}"
        )


def validate_app_scope(app_id: str, app_version: str) -> None:
    """Fail fast on identifiers that cannot be part of a cache key.

    Raises:
        InvalidIdentifierError: If app_id or app_version is invalid
    """
    _check_identifier("app_id", app_id)
    _check_identifier("app_version", app_version)
