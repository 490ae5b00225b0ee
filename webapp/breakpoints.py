"""Process-wide suspension points around instrumented actions.

A debugging controller arms a breakpoint with add_before_breakpoint() or
add_after_breakpoint(); every action that reaches the matching suspension
point then waits until resolve_before()/resolve_after() is called. The
module-level `async_breakpoints` instance is shared by all sessions on
purpose: pausing is meant to stop every running browser uniformly.

Waiters are plain futures created on the waiting loop, so one instance can
serve sessions running on different event loops.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from webapp.errors import BreakStackError

log = logging.getLogger(__name__)

BEFORE = 'before'
AFTER = 'after'

StateObserver = Callable[[bool], None]


class AsyncBreakpoints:
    """Before/after instruction breakpoints."""

    def __init__(self) -> None:
        self._active: dict[str, bool] = {BEFORE: False, AFTER: False}
        self._waiters: dict[str, list[asyncio.Future]] = {BEFORE: [], AFTER: []}

    # -- Controller side -------------------------------------------------

    def add_before_breakpoint(self) -> None:
        self._active[BEFORE] = True

    def add_after_breakpoint(self) -> None:
        self._active[AFTER] = True

    def resolve_before(self) -> None:
        self._release(BEFORE)

    def resolve_after(self) -> None:
        self._release(AFTER)

    def is_before_active(self) -> bool:
        return self._active[BEFORE]

    def is_after_active(self) -> bool:
        return self._active[AFTER]

    def break_stack(self) -> None:
        """Disarm both breakpoints and fail every suspended waiter."""
        for kind in (BEFORE, AFTER):
            self._active[kind] = False
            waiters, self._waiters[kind] = self._waiters[kind], []
            for fut in waiters:
                if not fut.done():
                    fut.get_loop().call_soon_threadsafe(
                        _set_exception, fut, BreakStackError('Breakpoint stack was broken'),
                    )

    def _release(self, kind: str) -> None:
        self._active[kind] = False
        waiters, self._waiters[kind] = self._waiters[kind], []
        for fut in waiters:
            if not fut.done():
                fut.get_loop().call_soon_threadsafe(_set_result, fut)
        if waiters:
            log.debug('Released %d waiter(s) at %s breakpoint', len(waiters), kind)

    # -- Action side -----------------------------------------------------

    async def wait_before(self, on_state_change: StateObserver | None = None) -> None:
        await self._wait(BEFORE, on_state_change)

    async def wait_after(self, on_state_change: StateObserver | None = None) -> None:
        await self._wait(AFTER, on_state_change)

    async def _wait(self, kind: str, on_state_change: StateObserver | None) -> None:
        if not self._active[kind]:
            return

        fut = asyncio.get_running_loop().create_future()
        self._waiters[kind].append(fut)
        if on_state_change is not None:
            on_state_change(True)
        try:
            await fut
        finally:
            if on_state_change is not None:
                on_state_change(False)


def _set_result(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(None)


def _set_exception(fut: asyncio.Future, exc: BaseException) -> None:
    if not fut.done():
        fut.set_exception(exc)


async_breakpoints = AsyncBreakpoints()
