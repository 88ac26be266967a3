"""Protocol definitions for pluggable adapters."""

from .storage import SourceMapStore

__all__ = ["SourceMapStore"]
