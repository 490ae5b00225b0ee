"""Instrumented action execution.

An Action is a named triple: a display-message function, an error-message
function and the origin function doing the work. ActionEngine.wrap() turns
an Action into a callable that, per invocation:

  1. renders the step message (eagerly, at call time; a rendering
     failure settles the result with ActionStartError and runs nothing),
  2. waits on the before-instruction breakpoint,
  3. opens a step in the logger and marks the execution context busy,
  4. runs the origin (sync or async),
  5. on success runs the success hook, on failure rewrites the error
     message through the interceptor and runs the failure hook,
  6. closes the step and frees the context,
  7. waits on the after-instruction breakpoint,
  8. settles with the origin's result or error.

Actions invoked while a step is already open (an action calling another
action) skip steps 2, 3, 6 and 7: they run inside the parent's step and
only log their message at debug level.

The invocation starts as soon as the wrapper is called and is represented
by a PendingResult, which can be awaited and carries if_error() for
replacing the error message of that one invocation:

    await app.click(ROOT.submit).if_error('Submit button is missing')
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Generator, Iterator
from dataclasses import dataclass
from typing import Any

from webapp.breakpoints import AsyncBreakpoints, async_breakpoints
from webapp.errors import ActionStartError, InterceptorConfigError, WebAppError
from webapp.step_logger import StepLogger

log = logging.getLogger(__name__)

ErrorInterceptor = Callable[..., str]
SuccessHook = Callable[[str], Awaitable[None]]
FailureHook = Callable[[BaseException], Awaitable[None]]


def default_error_message(error: BaseException, *args: Any, **kwargs: Any) -> str:
    return str(error)


@dataclass(frozen=True)
class Action:
    """A named, instrumentable unit of work."""

    name: str
    origin: Callable[..., Any]
    display: Callable[..., str]
    error: ErrorInterceptor = default_error_message


class ActionRegistry:
    """Explicit name -> Action table."""

    def __init__(self) -> None:
        self._actions: dict[str, Action] = {}

    def register(self, action: Action) -> Action:
        if action.name in self._actions:
            raise ValueError(f'Action already registered: {action.name}')
        self._actions[action.name] = action
        return action

    def get(self, name: str) -> Action:
        try:
            return self._actions[name]
        except KeyError:
            raise KeyError(f'Unknown action: {name}') from None

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __iter__(self) -> Iterator[str]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)


@dataclass
class ExecutionContext:
    """Per-session execution state. One open step at a time."""

    step_open: bool = False
    steps_started: int = 0


class PendingResult:
    """Awaitable handle on one running action invocation."""

    def __init__(self, name: str, message: str, interceptor: ErrorInterceptor) -> None:
        self.name = name
        self.message = message
        self._interceptor = interceptor
        self._future: asyncio.Future | None = None

    def _attach(self, future: asyncio.Future) -> None:
        self._future = future

    @classmethod
    def failed(cls, name: str, message: str, error: BaseException) -> PendingResult:
        pending = cls(name, message, default_error_message)
        future = asyncio.get_running_loop().create_future()
        future.set_exception(error)
        pending._attach(future)
        return pending

    @property
    def interceptor(self) -> ErrorInterceptor:
        return self._interceptor

    def if_error(self, interceptor: str | ErrorInterceptor | None) -> PendingResult:
        """Replace the error message used if this invocation fails.

        interceptor is either the replacement message or a callable
        (error, *args, **kwargs) -> str. None returns a result failing with
        InterceptorConfigError; the running invocation is left untouched.
        Has no effect once the invocation has settled.
        """
        if interceptor is None:
            return PendingResult.failed(
                self.name, self.message,
                InterceptorConfigError('Error interceptor can not be empty'),
            )
        if self.done():
            return self
        if callable(interceptor):
            self._interceptor = interceptor
        else:
            text = str(interceptor)
            self._interceptor = lambda error, *args, **kwargs: text
        return self

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def cancel(self) -> bool:
        """Cancel the running invocation. Its step is still closed."""
        return self._future is not None and self._future.cancel()

    def __await__(self) -> Generator[Any, None, Any]:
        if self._future is None:
            raise RuntimeError(f'Action {self.name} was never started')
        return self._future.__await__()

    def __repr__(self) -> str:
        state = 'done' if self.done() else 'pending'
        return f'<PendingResult {self.name} {state}>'


async def _invoke(origin: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
    result = origin(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def _with_message(error: Exception, message: str) -> Exception:
    """Return error carrying message, or a WebAppError wrapping it.

    Some exception types render their own text regardless of args
    (KeyError quotes it, UnicodeDecodeError ignores it); those are replaced
    by a WebAppError chained to the original.
    """
    if message == str(error):
        return error
    previous = error.args
    error.args = (message,)
    if str(error) == message:
        return error
    error.args = previous
    replacement = WebAppError(message)
    replacement.__cause__ = error
    return replacement


class ActionEngine:
    """Runs registered actions with step logging, breakpoints and hooks.

    Args:
        context: Execution state of the owning session.
        logger: Step logger receiving start/end framing.
        breakpoints: Suspension points; the process-wide instance by default.
        on_success: async hook(action_name) after a successful top-level action.
        on_failure: async hook(error) after a failed top-level action.
    """

    def __init__(
        self,
        context: ExecutionContext,
        logger: StepLogger,
        breakpoints: AsyncBreakpoints | None = None,
        on_success: SuccessHook | None = None,
        on_failure: FailureHook | None = None,
    ) -> None:
        self.context = context
        self.registry = ActionRegistry()
        self._logger = logger
        self._breakpoints = breakpoints or async_breakpoints
        self._on_success = on_success
        self._on_failure = on_failure

    def register(self, action: Action) -> Callable[..., PendingResult]:
        self.registry.register(action)
        return self.wrap(action)

    def call(self, name: str, *args: Any, **kwargs: Any) -> PendingResult:
        return self.start(self.registry.get(name), args, kwargs)

    def wrap(self, action: Action) -> Callable[..., PendingResult]:
        def instrumented(*args: Any, **kwargs: Any) -> PendingResult:
            return self.start(action, args, kwargs)

        instrumented.__name__ = action.name
        instrumented.__doc__ = getattr(action.origin, '__doc__', None)
        instrumented.origin = action.origin  # type: ignore[attr-defined]
        return instrumented

    def start(self, action: Action, args: tuple, kwargs: dict) -> PendingResult:
        try:
            message = action.display(*args, **kwargs)
        except Exception as exc:
            error = ActionStartError(f'Failed to render step message for {action.name}: {exc}')
            error.__cause__ = exc
            return PendingResult.failed(action.name, '', error)

        loop = asyncio.get_running_loop()
        pending = PendingResult(action.name, message, action.error)
        if self.context.step_open:
            coro = self._run_nested(action, message, args, kwargs, pending)
        else:
            coro = self._run(action, message, args, kwargs, pending)
        pending._attach(loop.create_task(coro))
        return pending

    # ------------------------------------------------------------------
    # Execution paths
    # ------------------------------------------------------------------

    async def _run_nested(
        self, action: Action, message: str, args: tuple, kwargs: dict, pending: PendingResult,
    ) -> Any:
        self._logger.debug(message)
        try:
            return await _invoke(action.origin, args, kwargs)
        except Exception as exc:
            raise self._intercept(exc, pending, args, kwargs)

    async def _run(
        self, action: Action, message: str, args: tuple, kwargs: dict, pending: PendingResult,
    ) -> Any:
        await self._breakpoints.wait_before(self._stopped_before)

        # Another top-level action may have opened a step while this one
        # sat at the breakpoint.
        if self.context.step_open:
            return await self._run_nested(action, message, args, kwargs, pending)

        error: Exception | None = None
        result: Any = None

        self._logger.start_step(message)
        self.context.step_open = True
        self.context.steps_started += 1
        try:
            result = await _invoke(action.origin, args, kwargs)
        except Exception as exc:
            error = self._intercept(exc, pending, args, kwargs)
            await self._run_hook(self._on_failure, error)
        else:
            await self._run_hook(self._on_success, action.name)
        finally:
            self._logger.end_step(message)
            self.context.step_open = False

        await self._breakpoints.wait_after(self._stopped_after)

        if error is not None:
            raise error
        return result

    def _intercept(self, error: Exception, pending: PendingResult, args: tuple, kwargs: dict) -> Exception:
        try:
            message = pending.interceptor(error, *args, **kwargs)
        except Exception:
            log.warning('Error interceptor for %s failed', pending.name, exc_info=True)
            return error
        return _with_message(error, str(message))

    async def _run_hook(self, hook: Callable[[Any], Awaitable[None]] | None, arg: Any) -> None:
        if hook is None:
            return
        try:
            await hook(arg)
        except Exception as exc:
            self._logger.warning('Action hook failed: %s', exc)

    def _stopped_before(self, state: bool) -> None:
        if state:
            self._logger.debug('Debug: Stopped in breakpoint before instruction execution')

    def _stopped_after(self, state: bool) -> None:
        if state:
            self._logger.debug('Debug: Stopped in breakpoint after instruction execution')
