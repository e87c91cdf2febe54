"""Retry engine with linear backoff.

:func:`run_with_retry` attempts a unit of work once and, on failure, retries
it up to :attr:`~offlinekit.models.RetryPolicy.max_retries` times, sleeping
between attempts with :func:`asyncio.sleep` so that other tasks on the event
loop keep running. When the retries are exhausted the last exception is
re-raised as-is: it is neither wrapped nor swallowed.

The delay before retry *n* is ``base_delay_seconds * n`` when
``exponential_backoff`` is set (100 ms, 200 ms, 300 ms, ... for a 100 ms
base) and a flat ``base_delay_seconds`` otherwise.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from offlinekit.models import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def compute_delay(policy: RetryPolicy, attempt: int) -> float:
    """Return the delay in seconds before retry number *attempt* (1-indexed)."""
    if policy.exponential_backoff:
        return policy.base_delay_seconds * attempt
    return policy.base_delay_seconds


async def run_with_retry(
    work: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run *work* until it succeeds or *policy* allows no more retries.

    Args:
        work: Zero-argument coroutine function performing one attempt.
        policy: Bounds the number of retries and the delay between them.
        sleep: Awaitable sleep used between attempts. Defaults to
            :func:`asyncio.sleep`; tests pass a recording fake.

    Returns:
        The result of the first successful attempt.

    Raises:
        Exception: Whatever the last attempt raised, unchanged.
    """
    attempt = 0
    while True:
        try:
            return await work()
        except Exception as exc:
            if attempt >= policy.max_retries:
                if policy.max_retries:
                    logger.debug("Giving up after %d attempts: %s", attempt + 1, exc)
                raise
            attempt += 1
            delay = compute_delay(policy, attempt)
            logger.debug(
                "Attempt failed: %s, retrying in %.3fs (retry %d/%d)",
                exc, delay, attempt, policy.max_retries,
            )
            await sleep(delay)
