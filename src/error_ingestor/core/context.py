"""Wiring of the parsing and resolution components.

An ``IngestorContext`` owns one store, one cache, one metrics registry and
the components built on them. Nothing in the package is a module-level
singleton; tests and embedding services create as many contexts as they
need.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from error_ingestor.config.schema import IngestorConfig
from error_ingestor.core.source_map_cache import SourceMapCache
from error_ingestor.core.source_map_resolver import SourceMapResolver
from error_ingestor.core.source_maps import SourceMapService
from error_ingestor.core.stack_parser import StackTraceParser
from error_ingestor.interfaces.storage import SourceMapStore
from error_ingestor.utils.metrics import MetricsRegistry

log = structlog.get_logger()


@dataclass
class IngestorContext:
    """Everything needed to parse and resolve stack traces."""

    config: IngestorConfig
    metrics: MetricsRegistry
    store: SourceMapStore
    parser: StackTraceParser
    cache: SourceMapCache
    resolver: SourceMapResolver
    source_maps: SourceMapService

    async def close(self) -> None:
        """Release resources held by the store, if it holds any."""
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()


def create_context(
    config: IngestorConfig,
    store: SourceMapStore | None = None,
) -> IngestorContext:
    """Factory function to build a context from configuration.

    Args:
        config: Application configuration
        store: Store to use instead of the configured provider

    Returns:
        Configured IngestorContext

    Raises:
        ValueError: If the storage provider is not supported
    """
    metrics = MetricsRegistry()
    store = store or _create_store(config)

    cache = SourceMapCache(
        store,
        ttl_seconds=config.source_maps.cache_ttl_seconds,
        max_entries=config.source_maps.cache_max_entries,
        metrics=metrics,
    )

    log.debug(
        "ingestor_context_created",
        storage=type(store).__name__,
        cache_ttl_seconds=cache.ttl_seconds,
        cache_max_entries=cache.max_entries,
    )

    return IngestorContext(
        config=config,
        metrics=metrics,
        store=store,
        parser=StackTraceParser(config.in_app.to_in_app_config(), metrics=metrics),
        cache=cache,
        resolver=SourceMapResolver(cache, metrics=metrics),
        source_maps=SourceMapService(store, cache),
    )


def _create_store(config: IngestorConfig) -> SourceMapStore:
    """Create a source map store based on configuration.

    Raises:
        ValueError: If provider is not supported
    """
    provider = config.storage.provider

    if provider == "memory":
        from error_ingestor.adapters.storage.memory import InMemorySourceMapStore

        return InMemorySourceMapStore()

    if provider == "clickhouse":
        if not config.storage.clickhouse:
            raise ValueError("ClickHouse configuration required when provider is 'clickhouse'")
        # Import here to avoid creating an HTTP client unless needed
        from error_ingestor.adapters.storage.clickhouse import ClickHouseSourceMapStore

        return ClickHouseSourceMapStore(config.storage.clickhouse, config.retry)

    raise ValueError(f"Unsupported storage provider: {provider}")
