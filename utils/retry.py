"""
Retry policy for remote fetches, built on tenacity.
"""

from typing import Callable
import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


class RetryableError(Exception):
    """The server answered, but asked (or failed) in a way worth retrying."""
    pass


def is_retryable_status(status_code: int) -> bool:
    """429 and 5xx are retried; any other error status is final."""
    return status_code == 429 or status_code >= 500


def is_transient(exc: BaseException) -> bool:
    """Connection resets, DNS failures and timeouts, plus RetryableError."""
    # Bad scheme or malformed request fails the same way every time
    if isinstance(exc, (httpx.UnsupportedProtocol, httpx.LocalProtocolError)):
        return False
    return isinstance(exc, (httpx.TransportError, RetryableError))


def async_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    predicate: Callable[[BaseException], bool] = is_transient,
) -> Callable:
    """
    Decorator for async functions with exponential backoff retry.

    The last exception is re-raised once attempts run out.

    Usage:
        @async_retry(max_attempts=settings.DOWNLOAD_MAX_RETRIES)
        async def fetch():
            ...
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(predicate),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
