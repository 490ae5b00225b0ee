"""Hard and soft assertions with reporting hooks.

Each check builds an assert message describing the comparison, then calls
on_success or on_error with an AssertionMeta. A hard Assertion raises
AssertionError on failure; a soft one records the message in
error_messages and lets the test continue.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssertionMeta:
    assert_message: str
    success_message: str = ''
    is_soft: bool = False


AssertionHook = Callable[[AssertionMeta], Awaitable[None]]


class Assertion:
    """Async assertion set.

    Args:
        is_soft: Collect failures instead of raising.
        on_success: async hook(meta) after a passing check.
        on_error: async hook(meta) after a failing check.
    """

    def __init__(
        self,
        is_soft: bool = False,
        on_success: AssertionHook | None = None,
        on_error: AssertionHook | None = None,
    ) -> None:
        self.is_soft = is_soft
        self.error_messages: list[str] = []
        self._on_success = on_success
        self._on_error = on_error

    async def equal(self, actual: Any, expected: Any, message: str = '') -> bool:
        return await self._check(
            actual == expected,
            f'[assert] equal({actual!r}, {expected!r})', message,
        )

    async def not_equal(self, actual: Any, expected: Any, message: str = '') -> bool:
        return await self._check(
            actual != expected,
            f'[assert] not_equal({actual!r}, {expected!r})', message,
        )

    async def is_true(self, value: Any, message: str = '') -> bool:
        return await self._check(value is True, f'[assert] is_true({value!r})', message)

    async def is_false(self, value: Any, message: str = '') -> bool:
        return await self._check(value is False, f'[assert] is_false({value!r})', message)

    async def include(self, haystack: Any, needle: Any, message: str = '') -> bool:
        return await self._check(
            _contains(haystack, needle),
            f'[assert] include({haystack!r}, {needle!r})', message,
        )

    async def not_include(self, haystack: Any, needle: Any, message: str = '') -> bool:
        return await self._check(
            not _contains(haystack, needle),
            f'[assert] not_include({haystack!r}, {needle!r})', message,
        )

    async def match(self, value: str, pattern: str | re.Pattern, message: str = '') -> bool:
        matched = re.search(pattern, str(value)) is not None
        shown = pattern.pattern if isinstance(pattern, re.Pattern) else pattern
        return await self._check(matched, f'[assert] match({value!r}, /{shown}/)', message)

    async def _check(self, passed: bool, assert_message: str, success_message: str) -> bool:
        meta = AssertionMeta(assert_message, success_message, self.is_soft)

        if passed:
            if self._on_success is not None:
                await self._on_success(meta)
            return True

        if self._on_error is not None:
            await self._on_error(meta)

        error_message = f'{success_message}: {assert_message}' if success_message else assert_message
        if self.is_soft:
            self.error_messages.append(error_message)
            log.debug('Soft assertion failed: %s', error_message)
            return False
        raise AssertionError(error_message)


def _contains(haystack: Any, needle: Any) -> bool:
    try:
        return needle in haystack
    except TypeError:
        return False
