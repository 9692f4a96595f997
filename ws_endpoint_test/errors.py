"""Errors raised to callers of the test engine and the reporting layer.

Protocol level failures are never raised: they are recorded in the event log
of the returned result.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ws_endpoint_test.models.result import TestResult


class WsTestError(Exception):
    """Base class for errors raised by this package."""


class InputError(WsTestError):
    """Raised when a run cannot start because of invalid input."""


class DeadlineError(WsTestError):
    """Raised when the transport refuses to set a read or write deadline.

    The partially recorded result of the aborted run is attached when known.
    """

    def __init__(self, message: str, *, result: "TestResult | None" = None) -> None:
        super().__init__(message)
        self.result = result


class RecordWriteError(WsTestError):
    """Raised when a result record cannot be persisted."""
