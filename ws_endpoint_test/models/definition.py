"""Models for WebSocket test definitions loaded from tests files."""

from pydantic import Field

from ws_endpoint_test.models.base import Model
from ws_endpoint_test.models.duration import SECOND, Duration

DEFAULT_HANDSHAKE_TIMEOUT = Duration(30 * SECOND)
DEFAULT_MESSAGE_READ_TIMEOUT = Duration(SECOND)
DEFAULT_MESSAGE_WRITE_TIMEOUT = Duration(SECOND)


class WebSocketTest(Model):
    """Target and expectations of a single WebSocket endpoint test."""

    __test__ = False

    name: str = Field(..., description="Test name, used in output filenames")
    url: str = Field(..., description="WebSocket endpoint to test")
    handshake_timeout: Duration = Field(
        default=Duration(0), description="Opening handshake timeout (default 30s)"
    )
    message_read_timeout: Duration = Field(
        default=Duration(0), description="Per message read timeout (default 1s)"
    )
    message_write_timeout: Duration = Field(
        default=Duration(0), description="Per message write timeout (default 1s)"
    )
    send_text_message: str | None = Field(
        default=None, description="Text message sent right after connecting"
    )
    expect_messages: int = Field(
        default=0,
        ge=0,
        description="Number of messages the server must send for success",
    )
    # 1000 is a normal close, 1011 a server error
    expect_server_close: int = Field(
        default=0, description="Close code expected from the server (0 = unchecked)"
    )
    max_duration: Duration = Field(
        default=Duration(0),
        description="Fail when the run takes longer than this (0 = unchecked)",
    )
    sleep: Duration = Field(default=Duration(0), description="Pause between runs")

    def with_defaults(self) -> "WebSocketTest":
        """Return a copy with unset timeouts replaced by their defaults."""
        return self.model_copy(
            update={
                "handshake_timeout": self.handshake_timeout
                or DEFAULT_HANDSHAKE_TIMEOUT,
                "message_read_timeout": self.message_read_timeout
                or DEFAULT_MESSAGE_READ_TIMEOUT,
                "message_write_timeout": self.message_write_timeout
                or DEFAULT_MESSAGE_WRITE_TIMEOUT,
            }
        )
