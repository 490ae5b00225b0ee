"""Error taxonomy for instrumented browser actions.

Every failure that reaches a caller is one of these (or a plain exception
raised by test code running inside an action). Best-effort sub-steps such
as screenshots never surface here; they are logged and dropped.
"""

from __future__ import annotations


class WebAppError(Exception):
    """Base class for all errors raised by the webapp package."""


class WaitTimeoutError(WebAppError, TimeoutError):
    """A wait or poll ran past its deadline."""


class ElementNotFoundError(WebAppError, LookupError):
    """A required element is absent."""


class InterceptorConfigError(WebAppError, ValueError):
    """An invalid error interceptor was attached to a pending action."""


class ActionStartError(WebAppError):
    """The step message of an action could not be rendered."""


class BreakStackError(WebAppError):
    """Suspended actions were aborted by the breakpoint controller."""


class DriverError(WebAppError):
    """The driver rejected a command.

    error: W3C error code, e.g. 'no such element' or 'timeout'.
    status: HTTP status of the driver response (0 for transport failures).
    """

    def __init__(self, message: str, error: str = 'unknown error', status: int = 0) -> None:
        super().__init__(message)
        self.error = error
        self.status = status
