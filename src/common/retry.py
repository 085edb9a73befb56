"""
Retry utilities using tenacity library.
Provides reusable retry decorators for the exporter's remote calls.
"""
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)
import logging

logger = logging.getLogger(__name__)


def retry_on_http_error(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 5.0
):
    """
    Retry decorator for transient HTTP failures (connect errors, timeouts).
    Non-2xx responses are not retried; callers interpret them.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time in seconds
        max_wait: Maximum wait time in seconds

    Returns:
        Retry decorator

    Example:
        @retry_on_http_error(max_attempts=2)
        def fetch_manifest(url):
            return requests.get(url, timeout=5)
    """
    import requests

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type((
            requests.ConnectionError,
            requests.Timeout
        )),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
