"""Core business logic components.

This module exports the main components:
- StackTraceParser: Splits raw JavaScript stack traces into frames
- SourceMapCache: Bounded, time-limited cache of decoded source maps
- SourceMapResolver: Maps bundled frames back to original sources
- SourceMapService: Uploads and deletes source maps with cache invalidation
- IngestorContext: Wires the components around one store
"""

from error_ingestor.core.context import IngestorContext, create_context
from error_ingestor.core.frame_parser import parse_frame
from error_ingestor.core.in_app import is_in_app
from error_ingestor.core.position_lookup import SourceMapTable
from error_ingestor.core.source_map_cache import SourceMapCache
from error_ingestor.core.source_map_resolver import SourceMapResolver, extract_bundle_name
from error_ingestor.core.source_maps import SourceMapService
from error_ingestor.core.stack_parser import StackTraceParser, detect_parser, parse_stack_trace

__all__ = [
    "IngestorContext",
    "SourceMapCache",
    "SourceMapResolver",
    "SourceMapService",
    "SourceMapTable",
    "StackTraceParser",
    "create_context",
    "detect_parser",
    "extract_bundle_name",
    "is_in_app",
    "parse_frame",
    "parse_stack_trace",
]
