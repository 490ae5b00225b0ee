"""Deadline-driven polling.

A poll computes its deadline once, when it starts, and re-evaluates the
predicate every tick until the predicate is truthy or a check observes that
the deadline has passed. An evaluation that is already running always
completes; only the next one is skipped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

log = logging.getLogger(__name__)

TICK_MS = 100
MIN_TICK_MS = 1


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


async def poll_until(
    predicate: Callable[[], Awaitable[Any] | Any],
    timeout_ms: float,
    tick_ms: float = TICK_MS,
    *,
    tolerate_errors: bool = False,
) -> bool:
    """Evaluate predicate until it is truthy or timeout_ms elapses.

    Returns True on success and False when the deadline is exceeded; a
    timeout is never raised here, callers decide whether it is an error.
    The predicate is evaluated at least once, even for timeout_ms <= 0.

    tolerate_errors: when True an exception from the predicate counts as
    "not yet satisfied" (e.g. probing for an alert); when False it
    propagates immediately (e.g. existence checks).

    tick_ms below MIN_TICK_MS is raised to it so the loop always yields.
    """
    deadline = now_ms() + timeout_ms
    attempts = 0

    while True:
        attempts += 1
        try:
            result = predicate()
            if inspect.isawaitable(result):
                result = await result
            if result:
                return True
        except Exception as exc:
            if not tolerate_errors:
                raise
            log.debug('Poll attempt %d failed: %s', attempts, exc)

        if now_ms() >= deadline:
            log.debug('Poll gave up after %d attempt(s) (%sms)', attempts, timeout_ms)
            return False

        await asyncio.sleep(max(tick_ms, MIN_TICK_MS) / 1000)
