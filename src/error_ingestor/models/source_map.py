"""Data models for uploaded source maps and lookups against them."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SourceMapRecord:
    """A raw source map document as stored per app version and bundle file."""

    app_id: str
    app_version: str
    file_name: str
    source_map: str


@dataclass(frozen=True)
class SourceMapInfo:
    """Listing entry for a stored source map (document body omitted)."""

    file_name: str
    app_version: str
    created_at: datetime


@dataclass(frozen=True)
class OriginalPosition:
    """Original source location reported by a position lookup."""

    source: str
    line: int
    column: int
    name: str | None = None
