"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    ClickHouseConfig,
    FileLoggingConfig,
    InAppSettings,
    IngestorConfig,
    LoggingConfig,
    RetryConfig,
    SourceMapSettings,
    StorageConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "IngestorConfig",
    # Sections
    "InAppSettings",
    "SourceMapSettings",
    "StorageConfig",
    "ClickHouseConfig",
    "RetryConfig",
    "LoggingConfig",
    "FileLoggingConfig",
]
