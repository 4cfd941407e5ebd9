"""
Resilience patterns for pipeline execution.

Provides the pipeline's error taxonomy, the retry/abort classifier used by
provider fallback loops, and a sync retry decorator for flaky transports.
"""

import logging
import time
from collections.abc import Callable
from enum import Enum
from functools import wraps
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Error taxonomy
# -----------------------------------------------------------------------------


class PipelineError(Exception):
    """Base class for failures raised by pipeline services."""

    pass


class TransportFailure(PipelineError):
    """Network error, timeout, or non-2xx response from an upstream."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamFormatFailure(PipelineError):
    """Unparseable XML/JSON or a payload missing required fields."""

    pass


class QualityFailure(PipelineError):
    """Output judged generic/placeholder, or a no-op translation."""

    pass


class ConflictFailure(PipelineError):
    """Request would violate a one-per-key invariant."""

    def __init__(self, message: str, existing_id: Any = None):
        super().__init__(message)
        self.existing_id = existing_id


class ConfigurationFailure(PipelineError):
    """A required credential or setting is missing."""

    pass


class NotFoundFailure(PipelineError):
    """Referenced record does not exist."""

    pass


# -----------------------------------------------------------------------------
# Provider error classification
# -----------------------------------------------------------------------------


class RetryDecision(str, Enum):
    """What a provider fallback loop does after a failed attempt."""

    RETRY_NEXT = "retry_next"  # try the next (model, version) candidate
    ABORT_PROVIDER = "abort_provider"  # give up on this provider entirely


NOT_FOUND_PHRASES = ("404", "not found", "not_found")
FATAL_PHRASES = (
    "401",
    "403",
    "unauthorized",
    "forbidden",
    "permission",
    "api key",
    "api_key",
    "quota",
    "billing",
    "exceeded",
)


def classify_provider_error(status_code: int | None = None, message: str = "") -> RetryDecision:
    """
    Decide whether a failed provider attempt may move on to the next candidate.

    Only "not found" cycles: a 404 (or an exception whose message says so)
    means this model/version pair is not deployed for the caller. Auth and
    quota problems, and every other status, abort the provider.
    """
    if status_code is not None:
        if status_code == 404:
            return RetryDecision.RETRY_NEXT
        return RetryDecision.ABORT_PROVIDER

    text = (message or "").lower()
    if any(phrase in text for phrase in FATAL_PHRASES):
        return RetryDecision.ABORT_PROVIDER
    if any(phrase in text for phrase in NOT_FOUND_PHRASES):
        return RetryDecision.RETRY_NEXT
    return RetryDecision.ABORT_PROVIDER


# -----------------------------------------------------------------------------
# Retry Decorators
# -----------------------------------------------------------------------------


def with_sync_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_exceptions: tuple[type[Exception], ...] = (Exception,),
) -> Callable:
    """
    Decorator for sync functions with exponential backoff retry.

    Args:
        max_attempts: Maximum number of retry attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        retry_exceptions: Tuple of exception types to retry on
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as e:
                    last_exception = e
                    if attempt == max_attempts:
                        logger.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise

                    wait_time = min(min_wait * (2 ** (attempt - 1)), max_wait)
                    logger.warning(f"{func.__name__} attempt {attempt} failed: {e}. Retrying in {wait_time:.1f}s...")
                    time.sleep(wait_time)

            if last_exception:
                raise last_exception
            raise RuntimeError(f"{func.__name__} failed without exception")

        return wrapper

    return decorator
