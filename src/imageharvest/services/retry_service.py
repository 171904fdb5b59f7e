"""Retry service with exponential backoff for provider HTTP calls."""

import errno
import logging
import random
import socket
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar

import httpx
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_NETWORK_CODES = frozenset({
    "ECONNABORTED",
    "ENOTFOUND",
    "ECONNREFUSED",
    "ECONNRESET",
    "ETIMEDOUT",
})

RETRYABLE_STATUSES = frozenset({408, 429, 499, 500, 502, 503, 504})


class RetryOptions(BaseModel):
    """Backoff configuration for a single call site."""

    max_attempts: int = Field(3, ge=1, description="Total attempts including the first one")
    base_delay: float = Field(0.5, ge=0.0, description="Wait before the first retry, in seconds")
    factor: float = Field(2.0, ge=1.0, description="Exponential growth factor")
    jitter: float = Field(0.2, ge=0.0, le=1.0, description="Signed jitter as a fraction of the base wait")


def _iter_exception_chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def get_error_code(error: BaseException) -> Optional[str]:
    """
    Classify a transport failure into a network error code.

    Explicit ``code`` attributes win, then OS-level errors found anywhere in
    the exception chain, then the httpx exception hierarchy.
    """
    chain = list(_iter_exception_chain(error))

    for exc in chain:
        code = getattr(exc, "code", None)
        if isinstance(code, str) and code in RETRYABLE_NETWORK_CODES:
            return code

    for exc in chain:
        if isinstance(exc, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(exc, OSError) and exc.errno is not None:
            name = errno.errorcode.get(exc.errno)
            if name in RETRYABLE_NETWORK_CODES:
                return name

    for exc in chain:
        if isinstance(exc, httpx.ConnectTimeout):
            return "ETIMEDOUT"
        if isinstance(exc, httpx.TimeoutException):
            return "ECONNABORTED"
        if isinstance(exc, httpx.ConnectError):
            return "ECONNREFUSED"
        if isinstance(exc, (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError)):
            return "ECONNRESET"
        if isinstance(exc, TimeoutError):
            return "ETIMEDOUT"

    return None


def get_status_code(error: BaseException) -> Optional[int]:
    """Return the HTTP status carried by an openai or httpx error, if any."""
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status

    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status

    return None


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error is transient (network blip, rate limit, server error)."""
    if get_error_code(error) in RETRYABLE_NETWORK_CODES:
        return True

    return get_status_code(error) in RETRYABLE_STATUSES


class wait_exponential_signed_jitter(wait_base):
    """Wait ``base_delay * factor^(attempt-1)`` plus or minus a jitter fraction, never below zero."""

    def __init__(self, base_delay: float, factor: float, jitter: float) -> None:
        self.base_delay = base_delay
        self.factor = factor
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        base_wait = self.base_delay * self.factor ** (retry_state.attempt_number - 1)
        jitter_amount = base_wait * self.jitter * random.uniform(-1.0, 1.0)
        return max(0.0, base_wait + jitter_amount)


async def with_retry(
    fn: Callable[[int], Awaitable[T]],
    options: RetryOptions | None = None,
    **overrides: Any,
) -> T:
    """
    Execute an async callable with retry logic and exponential backoff.

    Args:
        fn: Async callable receiving the 1-based attempt number
        options: Retry options (defaults to RetryOptions())
        **overrides: Individual RetryOptions fields to override

    Returns:
        Result from fn

    Raises:
        Exception: The first non-retryable error, or the last error once
            all attempts are exhausted
    """
    config = options or RetryOptions()
    if overrides:
        config = config.model_copy(update=overrides)

    def _log_retry(retry_state: RetryCallState) -> None:
        wait_ms = round((retry_state.next_action.sleep if retry_state.next_action else 0) * 1000)
        logger.info(
            f"⏳ [RetryService] Retry attempt {retry_state.attempt_number}/{config.max_attempts} after {wait_ms}ms"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_exponential_signed_jitter(config.base_delay, config.factor, config.jitter),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=_log_retry,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            return await fn(attempt.retry_state.attempt_number)
