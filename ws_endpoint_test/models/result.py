"""Models for test execution results."""

from collections.abc import Sequence
from datetime import datetime

from pydantic import Field

from ws_endpoint_test.models.base import Model
from ws_endpoint_test.models.definition import WebSocketTest
from ws_endpoint_test.models.log import Event, Step
from ws_endpoint_test.models.message import ReceivedMessage
from ws_endpoint_test.outcomes import READ_FAILURES, WRITE_FAILURES


class TestResult(Model):
    """Everything recorded during a single run of a test."""

    __test__ = False

    id: str = Field(..., description="Unique run identifier")
    test: WebSocketTest = Field(..., description="Test definition that was run")
    started_at: datetime
    connect_ok: bool = False
    messages_received: int = 0
    messages: Sequence[ReceivedMessage] = Field(default_factory=list)
    server_close_code: int = Field(
        default=0, description="Close code sent by the server (0 if none)"
    )
    close_ok: bool = Field(
        default=False, description="True if the client closed the connection"
    )
    log: Sequence[Event] = Field(default_factory=list)

    def is_success(self) -> bool:
        """Evaluate the run against the expectations of its test.

        Fails on a close code or message count mismatch, when the run took
        longer than ``max_duration``, on any failed write and on any failed
        read in the message reading phase. Read failures while waiting for a
        server close are left to the close code check.
        """
        test = self.test

        if test.expect_server_close and self.server_close_code != (
            test.expect_server_close
        ):
            return False

        if test.expect_messages and self.messages_received != test.expect_messages:
            return False

        if test.max_duration:
            if not self.log:
                return False
            if self.log[-1].created_at > test.max_duration:
                return False

        for event in self.log:
            if event.kind in WRITE_FAILURES:
                return False
            if event.step == Step.READ_MESSAGE and event.kind in READ_FAILURES:
                return False

        return True
