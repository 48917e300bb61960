"""
Async retry utilities with exponential backoff.

Provides retry_with_backoff for providers whose APIs answer bursts with 429
or transient 5xx responses.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from paper_retrieval.exceptions import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_status(status: Optional[int], retry_on: tuple = (429,)) -> bool:
    """429 (or anything in *retry_on*) and every 5xx status are retryable."""
    if status is None:
        return False
    return status in retry_on or status >= 500


def _status_of(error: Exception) -> Optional[int]:
    if isinstance(error, ProviderError):
        return error.status
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def _backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + random.random())
    return delay


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on: tuple = (429,),
    context: str = "Request",
) -> T:
    """
    Execute an async function with exponential backoff retry.

    Only rate limiting (429) and server errors (5xx) are retried; any other
    exception propagates on the first occurrence.

    Args:
        func: Zero-argument coroutine factory (called once per attempt)
        max_retries: Maximum number of retry attempts after the first call
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        jitter: Add random jitter to prevent thundering herd
        retry_on: Non-5xx HTTP status codes to retry on
        context: Label used in log messages

    Returns:
        Whatever ``func`` returns

    Raises:
        The last error once all retries are exhausted
    """
    for attempt in range(max_retries + 1):
        try:
            result = await func()
        except (ProviderError, httpx.HTTPStatusError) as e:
            status = _status_of(e)
            if not is_retryable_status(status, retry_on) or attempt >= max_retries:
                raise

            delay = _backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
            logger.warning(
                f"{context} failed with {status}, "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{max_retries})"
            )
            await asyncio.sleep(delay)
            continue

        # Raw httpx responses are inspected instead of raised
        if isinstance(result, httpx.Response) and is_retryable_status(result.status_code, retry_on):
            if attempt >= max_retries:
                result.raise_for_status()
                return result

            delay = _backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
            retry_after = result.headers.get("Retry-After")
            if retry_after:
                try:
                    delay = max(delay, float(retry_after))
                except ValueError:
                    pass

            logger.warning(
                f"{context} failed with {result.status_code}, "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{max_retries})"
            )
            await asyncio.sleep(delay)
            continue

        return result

    raise RuntimeError("Unexpected retry loop exit")
