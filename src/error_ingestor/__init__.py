"""Stack trace parsing and source map resolution for error ingestion."""

from error_ingestor._version import __version__

__all__ = ["__version__"]
