"""Abstract WebSocket transport used by the test engine."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from ws_endpoint_test.models.message import FrameType

type CloseObserver = Callable[[int, str], None]

# Reported for a close frame without a status code.
NO_STATUS_RECEIVED = 1005
# Reported when the peer goes away without sending a close frame.
ABNORMAL_CLOSURE = 1006


class TransportError(Exception):
    """Base class for errors raised by transports."""


class ConnectError(TransportError):
    """Raised when a connection cannot be established."""


class PeerClosedError(TransportError):
    """Raised when the peer closed the connection."""

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"connection closed by peer: {code} {reason}".rstrip())
        self.code = code
        self.reason = reason


class NetworkError(TransportError):
    """Raised on transport level failures such as a connection reset."""


class ProtocolError(TransportError):
    """Raised on any other failure while exchanging messages."""


@dataclass(frozen=True, kw_only=True)
class Frame:
    """A data frame received from the peer."""

    type: FrameType
    data: str | bytes


class Connection(ABC):
    """A connected, full duplex WebSocket message channel.

    Reads and writes are bounded by deadlines expressed in event loop time
    (``asyncio.get_running_loop().time()``). A call whose deadline expires
    raises ``TimeoutError``. Other failures raise ``TransportError``
    subclasses.
    """

    @abstractmethod
    def set_read_deadline(self, deadline: float | None) -> None:
        """Set the deadline for subsequent reads.

        Raises:
            DeadlineError: If the deadline cannot be applied

        """

    @abstractmethod
    def set_write_deadline(self, deadline: float | None) -> None:
        """Set the deadline for subsequent writes.

        Raises:
            DeadlineError: If the deadline cannot be applied

        """

    @abstractmethod
    def on_close(self, observer: CloseObserver) -> None:
        """Register a callback invoked with the code and reason of a peer close."""

    @abstractmethod
    async def read(self) -> Frame:
        """Read the next data frame.

        Raises:
            PeerClosedError: If the peer closed the connection
            TimeoutError: If the read deadline expired

        """

    @abstractmethod
    async def write_text(self, text: str) -> None:
        """Send a text frame."""

    @abstractmethod
    async def close(self, code: int = 1000) -> None:
        """Send a close frame with the given code."""

    @abstractmethod
    async def release(self) -> None:
        """Release the underlying connection. Safe to call more than once."""


class WebSocketTransport(ABC):
    """Factory for WebSocket connections."""

    @abstractmethod
    async def connect(self, url: str, *, handshake_timeout: float) -> Connection:
        """Open a connection to ``url``.

        Raises:
            ConnectError: If the connection or the opening handshake fails

        """
