"""WebSocket transports used by the test engine."""

from ws_endpoint_test.transport.aiohttp_client import (
    AiohttpConnection,
    AiohttpTransport,
)
from ws_endpoint_test.transport.base import (
    Connection,
    ConnectError,
    Frame,
    NetworkError,
    PeerClosedError,
    ProtocolError,
    TransportError,
    WebSocketTransport,
)
from ws_endpoint_test.transport.config import TransportConfig

__all__ = [
    "AiohttpConnection",
    "AiohttpTransport",
    "ConnectError",
    "Connection",
    "Frame",
    "NetworkError",
    "PeerClosedError",
    "ProtocolError",
    "TransportConfig",
    "TransportError",
    "WebSocketTransport",
]
