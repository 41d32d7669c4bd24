"""
Ticket Store Retry Logic

Opt-in retry with exponential backoff for transient ticketing API failures:
- Retries on 429 (rate limited) honouring the Retry-After header
- Retries on 502/503/504 gateway errors
- Retries on network errors (httpx.RequestError)

The stores themselves never retry. Retry is a caller decision, taken by
constructing the ticket client with enable_retry=True (the CLI does so unless
TICKET_STORE_NO_RETRY is set).
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from .errors import TransportError

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT = 2  # seconds
DEFAULT_MAX_WAIT = 30  # seconds

# HTTP status codes that should trigger retry
RETRYABLE_STATUS_CODES = {
    429,  # Too Many Requests (rate limited)
    502,  # Bad Gateway
    503,  # Service Unavailable
    504,  # Gateway Timeout
}


class RetryableTicketError(TransportError):
    """
    Transient ticketing API failure that may succeed when repeated.

    Preserves the Retry-After hint so the wait strategy can honour it.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ) -> None:
        self.retry_after: Optional[int] = retry_after
        super().__init__(message, status_code=status_code)


def _should_retry_exception(exc: BaseException) -> bool:
    """Determine if an exception should trigger a retry."""
    if isinstance(exc, RetryableTicketError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, httpx.RequestError):
        return True
    return False


class wait_retry_after(wait_base):
    """Wait for the server's Retry-After hint, falling back to another strategy."""

    def __init__(self, fallback: wait_base, max_wait: float) -> None:
        self.fallback = fallback
        self.max_wait = max_wait

    def __call__(self, retry_state: Any) -> float:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            exc = outcome.exception()
            if isinstance(exc, RetryableTicketError) and exc.retry_after is not None:
                return float(min(exc.retry_after, self.max_wait))
        return self.fallback(retry_state)


def _retry_kwargs(max_attempts: int, min_wait: float, max_wait: float) -> dict[str, Any]:
    return {
        "stop": stop_after_attempt(max_attempts),
        "wait": wait_retry_after(
            wait_exponential_jitter(initial=min_wait, max=max_wait, jitter=max_wait * 0.1),
            max_wait=max_wait,
        ),
        "retry": retry_if_exception(_should_retry_exception),
        "before_sleep": before_sleep_log(logger, logging.WARNING),
        "reraise": True,
    }


def ticket_retrying(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait: float = DEFAULT_MIN_WAIT,
    max_wait: float = DEFAULT_MAX_WAIT,
) -> AsyncRetrying:
    """
    Build an AsyncRetrying controller with the ticket retry policy.

    Used by the ticket client to wrap individual requests when retry is enabled.
    """
    return AsyncRetrying(**_retry_kwargs(max_attempts, min_wait, max_wait))


def classify_httpx_error(
    error: httpx.HTTPStatusError,
) -> Union[RetryableTicketError, TransportError]:
    """
    Classify an httpx HTTP status error as retryable or not.

    Returns:
        RetryableTicketError for transient errors (429, 503, etc.)
        TransportError for permanent errors (401, 422, etc.)
    """
    status_code = error.response.status_code
    message = _error_message(error)

    if status_code in RETRYABLE_STATUS_CODES:
        retry_after = error.response.headers.get("retry-after")
        return RetryableTicketError(
            message,
            status_code=status_code,
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
        )
    return TransportError(message, status_code=status_code)


def _error_message(error: httpx.HTTPStatusError) -> str:
    """Extract the platform's error message from a failed response."""
    try:
        error_json = error.response.json()
    except ValueError:
        return error.response.text or str(error)
    if isinstance(error_json, dict):
        return str(error_json.get("message") or error_json.get("error") or error)
    return str(error)
