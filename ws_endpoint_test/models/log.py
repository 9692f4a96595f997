"""Models for the event log recorded during a test run."""

from enum import StrEnum
from typing import Self

from pydantic import Field

from ws_endpoint_test.models.base import Model
from ws_endpoint_test.models.duration import DurationMS


class EventKind(StrEnum):
    """What happened during one step of a run."""

    CONNECT = "connect"
    CONNECT_SUCCESS = "connect_success"
    CONNECT_FAIL = "connect_fail"
    SERVER_CLOSED_CONNECTION = "server_closed_connection"
    SET_READ_DEADLINE_FAILED = "set_read_deadline_failed"
    SET_WRITE_DEADLINE_FAILED = "set_write_deadline_failed"
    READ_MESSAGE = "read_message"
    READ_MESSAGE_TIMEOUT = "read_message_timeout"
    READ_MESSAGE_NET_ERROR = "read_message_net_error"
    READ_MESSAGE_ERROR = "read_message_error"
    READ_MESSAGE_SUCCESS = "read_message_success"
    WRITE_MESSAGE = "write_message"
    WRITE_MESSAGE_TIMEOUT = "write_message_timeout"
    WRITE_MESSAGE_NET_ERROR = "write_message_net_error"
    WRITE_MESSAGE_ERROR = "write_message_error"
    WRITE_MESSAGE_SUCCESS = "write_message_success"
    CLIENT_CLOSE_CONNECTION = "client_close_connection"
    CLIENT_CLOSE_CONNECTION_SUCCESS = "client_close_connection_success"
    CLIENT_CLOSE_CONNECTION_FAILED = "client_close_connection_failed"


class Step(StrEnum):
    """Protocol phase that produced an event."""

    CONNECT = "connect"
    SEND_TEXT = "send-text"
    READ_MESSAGE = "read-message"
    CLIENT_CLOSE = "client-close"
    EXPECTED_SERVER_CLOSE = "expected-server-close"
    UNEXPECTED_SERVER_CLOSE = "unexpected-server-close"


class ErrorDetail(Model):
    """Description of an error attached to an event."""

    type: str = Field(..., description="Exception class name")
    message: str = Field(default="", description="Exception message")

    @classmethod
    def from_exception(cls, exc: BaseException) -> Self:
        """Describe an exception."""
        return cls(type=type(exc).__name__, message=str(exc))


class Event(Model):
    """A single timestamped entry of the event log.

    ``value`` holds the frame type of a received message or the close code
    sent by the server.
    """

    created_at: DurationMS = Field(..., description="Time since the run started")
    kind: EventKind
    step: Step
    message: str = ""
    value: int | str | None = None
    error: ErrorDetail | None = None
