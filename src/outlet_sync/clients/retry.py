"""Bounded retry with exponential backoff for remote calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..errors import (
    PublishConflictError,
    PublishRateLimitError,
    TransportError,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(error: BaseException) -> bool:
    """Errors worth another attempt: no response, 5xx, rate limits, stale revisions."""
    if isinstance(error, (TransportError, PublishRateLimitError, PublishConflictError)):
        return True
    if isinstance(error, UpstreamServiceError):
        return error.retryable
    return False


async def call_with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    backoff_seconds: float,
    description: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``operation()``, retrying transient failures up to ``max_retries`` times."""
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as error:
            if not is_transient(error):
                raise
            attempt += 1
            if attempt > max_retries:
                logger.warning("%s failed after %d attempts: %s", description, attempt, error)
                raise
            wait_time = backoff_seconds * (2 ** (attempt - 1))
            logger.info(
                "%s failed (%s), retrying in %.1fs (attempt %d/%d)",
                description,
                error,
                wait_time,
                attempt,
                max_retries,
            )
            await sleep(wait_time)
