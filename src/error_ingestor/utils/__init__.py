"""Utility functions and helpers.

This module provides various utilities for the error ingestor:
- security: Secret redaction, cache key validation
- async_helpers: Error taxonomy and storage retry
- logging: Structured logging with secret sanitization
- metrics: Parsing, resolution and cache counters
"""

from error_ingestor.utils.async_helpers import (
    IngestorError,
    InvalidIdentifierError,
    SourceMapParseError,
    SourceMapUploadError,
    StorageError,
)
from error_ingestor.utils.logging import (
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)
from error_ingestor.utils.metrics import (
    Counter,
    Gauge,
    MetricsRegistry,
)
from error_ingestor.utils.security import (
    RedactionError,
    SecretRedactor,
    SecurityError,
)

__all__ = [
    # Metrics
    "Counter",
    "Gauge",
    # Errors
    "IngestorError",
    "InvalidIdentifierError",
    # Logging
    "LogFormat",
    "LogLevel",
    "MetricsRegistry",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
    "SourceMapParseError",
    "SourceMapUploadError",
    "StorageError",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
