"""Step-aware logger used by instrumented actions.

Wraps a stdlib logger. Steps nest: every start_step() indents subsequent
lines until the matching end_step(). File references (screenshots) are
logged as regular lines tagged with their log type.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

VERBOSE = 5
logging.addLevelName(VERBOSE, 'VERBOSE')

LOG_TYPE_SCREENSHOT = 'screenshot'

STEP_LOGGER_NAME = 'webapp.steps'
DEFAULT_PREFIX = '[web-application]'


class StepLogger:
    """Leveled text logging with step framing.

    Args:
        prefix: Prepended to every line (e.g. '[web-application]').
        logger: Target stdlib logger. Defaults to 'webapp.steps'.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX, logger: logging.Logger | None = None) -> None:
        self.prefix = prefix
        self._log = logger or logging.getLogger(STEP_LOGGER_NAME)
        self._open_steps: list[str] = []

    @property
    def open_steps(self) -> tuple[str, ...]:
        return tuple(self._open_steps)

    def _emit(self, level: int, message: str, *args: object, **kwargs) -> None:
        indent = '  ' * len(self._open_steps)
        self._log.log(level, '%s %s' % (self.prefix, indent) + str(message), *args, **kwargs)

    # -- Steps ---------------------------------------------------------------

    def start_step(self, message: str) -> None:
        self._emit(logging.INFO, '> %s', message)
        self._open_steps.append(message)

    def end_step(self, message: str) -> None:
        if message in self._open_steps:
            # Close the innermost matching step; anything opened after it
            # without being closed is dropped with it.
            idx = len(self._open_steps) - 1 - self._open_steps[::-1].index(message)
            del self._open_steps[idx:]
        else:
            self._emit(logging.WARNING, 'Closing a step that is not open: %s', message)
        self._emit(logging.DEBUG, '< %s', message)

    async def step_success(self, message: str, callback: Callable[[], Awaitable[None]] | None = None) -> None:
        await self._step(logging.INFO, message, callback)

    async def step_error(self, message: str, callback: Callable[[], Awaitable[None]] | None = None) -> None:
        await self._step(logging.ERROR, message, callback)

    async def _step(self, level: int, message: str, callback: Callable[[], Awaitable[None]] | None) -> None:
        self._emit(level, '> %s', message)
        self._open_steps.append(message)
        try:
            if callback is not None:
                await callback()
        finally:
            self.end_step(message)

    # -- Plain lines ---------------------------------------------------------

    def verbose(self, message: str, *args: object) -> None:
        self._emit(VERBOSE, message, *args)

    def debug(self, message: str, *args: object) -> None:
        self._emit(logging.DEBUG, message, *args)

    def info(self, message: str, *args: object) -> None:
        self._emit(logging.INFO, message, *args)

    def warning(self, message: str, *args: object) -> None:
        self._emit(logging.WARNING, message, *args)

    def error(self, message: str, *args: object, exc_info: bool = False) -> None:
        self._emit(logging.ERROR, message, *args, exc_info=exc_info)

    def file(self, path: str, log_type: str = LOG_TYPE_SCREENSHOT) -> None:
        self._emit(logging.INFO, '[%s] %s', log_type, path)
