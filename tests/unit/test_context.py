"""Tests for building the ingestor context."""

import pytest

from error_ingestor.adapters.storage.clickhouse import ClickHouseSourceMapStore
from error_ingestor.adapters.storage.memory import InMemorySourceMapStore
from error_ingestor.config.schema import (
    ClickHouseConfig,
    InAppSettings,
    IngestorConfig,
    SourceMapSettings,
    StorageConfig,
)
from error_ingestor.core.context import create_context
from error_ingestor.models.stacktrace import Platform


class TestCreateContext:
    """Tests for create_context."""

    def test_memory_store_by_default(self):
        """Test the default wiring."""
        context = create_context(IngestorConfig())

        assert isinstance(context.store, InMemorySourceMapStore)
        assert context.resolver.cache is context.cache
        assert context.cache.ttl_seconds == 300
        assert context.cache.max_entries == 100

    def test_cache_settings_applied(self):
        """Test that cache settings come from configuration."""
        config = IngestorConfig(
            source_maps=SourceMapSettings(cache_ttl_seconds=30, cache_max_entries=5)
        )

        context = create_context(config)

        assert context.cache.ttl_seconds == 30
        assert context.cache.max_entries == 5

    async def test_clickhouse_store(self):
        """Test the ClickHouse provider."""
        config = IngestorConfig(
            storage=StorageConfig(provider="clickhouse", clickhouse=ClickHouseConfig())
        )

        context = create_context(config)

        assert isinstance(context.store, ClickHouseSourceMapStore)
        await context.close()

    def test_injected_store(self):
        """Test that an explicit store overrides the configured provider."""
        store = InMemorySourceMapStore()

        assert create_context(IngestorConfig(), store=store).store is store

    def test_contexts_are_independent(self):
        """Test that contexts share no state."""
        first = create_context(IngestorConfig())
        second = create_context(IngestorConfig())

        first.metrics.traces_parsed.inc()

        assert first.cache is not second.cache
        assert second.metrics.traces_parsed.get() == 0

    def test_parser_uses_in_app_settings(self, chrome_trace: str):
        """Test that the parser is bound to the configured rules."""
        config = IngestorConfig(in_app=InAppSettings(include_patterns=["loadUser-never"]))

        trace = create_context(config).parser.parse(chrome_trace, Platform.WEB)

        assert trace.in_app_frames == ()


class TestEndToEnd:
    """Tests running the full pipeline on one context."""

    async def test_parse_upload_resolve(self, chrome_trace: str, app_source_map: str):
        """Test parsing, uploading a map and resolving through the context."""
        context = create_context(IngestorConfig())
        await context.source_maps.upload("web-app", "2.3.1", "app.bundle.js", app_source_map)

        trace = context.parser.parse(chrome_trace, Platform.WEB)
        resolved = await context.resolver.resolve_stack(trace, "web-app", "2.3.1")

        top = resolved.top_frame
        assert top is not None
        assert top.resolved is True
        assert (top.original_file_name, top.original_line_number) == ("src/App.tsx", 10)
        assert context.metrics.frames_resolved.get() >= 1
        assert context.metrics.get_all_metrics()["parsing"]["traces"] == 1

    async def test_reupload_replaces_cached_map(self, chrome_trace: str, build_source_map):
        """Test that re-uploading a map is visible immediately."""
        context = create_context(IngestorConfig())
        trace = context.parser.parse(chrome_trace, Platform.WEB)

        await context.source_maps.upload(
            "web-app", "2.3.1", "app.bundle.js", build_source_map(42, "OASEA")
        )
        first = await context.resolver.resolve_stack(trace, "web-app", "2.3.1")

        await context.source_maps.upload(
            "web-app",
            "2.3.1",
            "app.bundle.js",
            build_source_map(42, "OASEA", sources=["src/Main.tsx"]),
        )
        second = await context.resolver.resolve_stack(trace, "web-app", "2.3.1")

        assert first.frames[0].original_file_name == "src/App.tsx"
        assert second.frames[0].original_file_name == "src/Main.tsx"

    @pytest.mark.parametrize("platform", [Platform.IOS, Platform.ANDROID])
    async def test_mobile_bundle(self, hermes_trace: str, build_source_map, platform):
        """Test resolving a React Native bundle frame."""
        context = create_context(IngestorConfig())
        # column 204811 on line 1 -> src/api.ts 5:4 "onError"
        await context.source_maps.upload(
            "rn-app",
            "1.0.0",
            "index.android.bundle",
            build_source_map(1, "2gwMAIIA", sources=["src/api.ts"], names=["onError"]),
        )

        trace = context.parser.parse(hermes_trace, platform)
        resolved = await context.resolver.resolve_stack(trace, "rn-app", "1.0.0")

        assert resolved.frames[0].original_file_name == "src/api.ts"
        assert resolved.frames[0].original_function_name == "onError"
