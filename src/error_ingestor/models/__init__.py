"""Data models and transfer objects."""

from .source_map import OriginalPosition, SourceMapInfo, SourceMapRecord
from .stacktrace import (
    InAppConfig,
    InAppPattern,
    ParsedStackTrace,
    Platform,
    StackFrame,
    StackParserKind,
)

__all__ = [
    # Stack trace models
    "InAppConfig",
    "InAppPattern",
    "ParsedStackTrace",
    "Platform",
    "StackFrame",
    "StackParserKind",
    # Source map models
    "OriginalPosition",
    "SourceMapInfo",
    "SourceMapRecord",
]
