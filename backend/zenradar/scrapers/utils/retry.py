"""Retry utilities with exponential backoff for HTTP requests."""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import httpx
import structlog


logger = structlog.get_logger(__name__)

# Network failures and retryable statuses (5xx, 429 raised as HTTPStatusError)
RETRYABLE_EXCEPTIONS = (
    httpx.HTTPStatusError,
    httpx.ConnectError,
    httpx.TimeoutException,
    httpx.ReadTimeout,
    httpx.ConnectTimeout,
    httpx.RemoteProtocolError,
)


def build_http_retry(attempts: int = 3, min_wait: float = 2, max_wait: float = 30):
    """Build a retry decorator for document fetches.

    Args:
        attempts: Total attempts including the first one
        min_wait: Minimum backoff in seconds
        max_wait: Maximum backoff in seconds

    Returns:
        tenacity retry decorator that re-raises the last exception
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
