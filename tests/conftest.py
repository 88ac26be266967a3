"""Shared test fixtures for error-ingestor."""

import json

import pytest

from error_ingestor.adapters.storage.memory import InMemorySourceMapStore
from error_ingestor.core.source_map_cache import SourceMapCache
from error_ingestor.utils.metrics import MetricsRegistry


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _build_source_map(
    generated_line: int,
    mapping: str,
    sources: list[str] | None = None,
    names: list[str] | None = None,
) -> str:
    """Build a v3 source map with one mapping segment on a generated line.

    ``mapping`` is the base64 VLQ segment placed on the 1-based
    ``generated_line``.
    """
    return json.dumps(
        {
            "version": 3,
            "file": "app.bundle.js",
            "sources": sources if sources is not None else ["src/App.tsx"],
            "names": names if names is not None else ["render"],
            "mappings": ";" * (generated_line - 1) + mapping,
        }
    )


@pytest.fixture
def chrome_trace() -> str:
    """A V8 stack trace from a browser bundle."""
    return (
        "TypeError: Cannot read properties of undefined (reading 'map')\n"
        "    at render (https://example.com/static/js/app.bundle.js:42:7)\n"
        "    at async loadUser (https://example.com/static/js/app.bundle.js:10:3)\n"
        "    at https://example.com/static/js/app.bundle.js:1:99\n"
        "    at commitRoot (https://example.com/node_modules/react-dom/index.js:5:1)"
    )


@pytest.fixture
def firefox_trace() -> str:
    """A Firefox stack trace; Firefox omits the message line."""
    return (
        "render@https://example.com/static/js/app.bundle.js:42:7\n"
        "@https://example.com/static/js/app.bundle.js:1:99\n"
        "commitRoot@https://example.com/node_modules/react-dom/index.js:5:1"
    )


@pytest.fixture
def hermes_trace() -> str:
    """A React Native (Hermes) stack trace."""
    return (
        "Error: Network request failed\n"
        "    at onError (address at index.android.bundle:1:204811)\n"
        "    at anonymous (index.android.bundle:1:99)\n"
        "    at callFunctionReturnFlushedQueue (node_modules/react-native/Libraries/"
        "BatchedBridge/MessageQueue.js:1:2)"
    )


@pytest.fixture
def app_source_map() -> str:
    """Map generated 42:7 of app.bundle.js to src/App.tsx 10:2 ``render``."""
    # OASEA: column 7, source 0, source line +9, source column 2, name 0
    return _build_source_map(42, "OASEA")


@pytest.fixture
def clock() -> FakeClock:
    """A controllable clock for cache TTL tests."""
    return FakeClock()


@pytest.fixture
def metrics() -> MetricsRegistry:
    """A fresh metrics registry."""
    return MetricsRegistry()


@pytest.fixture
def store() -> InMemorySourceMapStore:
    """An empty in-memory source map store."""
    return InMemorySourceMapStore()


@pytest.fixture
def cache(
    store: InMemorySourceMapStore,
    clock: FakeClock,
    metrics: MetricsRegistry,
) -> SourceMapCache:
    """A source map cache over the in-memory store."""
    return SourceMapCache(store, clock=clock, metrics=metrics)


@pytest.fixture
def build_source_map():
    """Factory for small single-segment v3 source maps."""
    return _build_source_map
