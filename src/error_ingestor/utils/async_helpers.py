"""Async utility functions and the error taxonomy.

This module provides:
- Custom exceptions for the ingestion core and its collaborators
- Retry decorators with exponential backoff for storage adapters

Retries belong to adapters talking to remote services; the parsing and
resolution core never retries.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class IngestorError(Exception):
    """Base exception for all error-ingestor errors."""


class InvalidIdentifierError(IngestorError, ValueError):
    """An app id or version cannot be used to build a cache key."""


class SourceMapParseError(IngestorError):
    """A source map document could not be decoded."""


class StorageError(IngestorError):
    """The source map store failed to complete a request."""


class SourceMapUploadError(IngestorError):
    """Source map upload was rejected or only partially stored.

    Attributes:
        uploaded: Number of documents stored before the failure.
    """

    def __init__(self, message: str, uploaded: int = 0) -> None:
        super().__init__(message)
        self.uploaded = uploaded


# =============================================================================
# Retry Decorator
# =============================================================================


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts for debugging."""
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        log.warning(
            "retrying_operation",
            attempt=retry_state.attempt_number,
            exception_type=type(exception).__name__,
            exception_message=str(exception),
            wait_time=retry_state.next_action.sleep if retry_state.next_action else 0,
        )


TRANSIENT_ERRORS: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.NetworkError)


def create_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_on: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Create a customized retry decorator.

    Args:
        max_attempts: Maximum number of attempts.
        min_wait: Minimum wait time between retries (seconds).
        max_wait: Maximum wait time between retries (seconds).
        retry_on: Tuple of exception types to retry on.

    Returns:
        A retry decorator configured with the given parameters.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )
