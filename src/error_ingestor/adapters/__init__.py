"""Concrete implementations of provider interfaces."""

from .storage.clickhouse import ClickHouseSourceMapStore
from .storage.memory import InMemorySourceMapStore

__all__ = [
    "ClickHouseSourceMapStore",
    "InMemorySourceMapStore",
]
