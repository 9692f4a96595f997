"""WebSocket transport implemented with the aiohttp client."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp
from yarl import URL

from ws_endpoint_test.errors import DeadlineError
from ws_endpoint_test.transport.base import (
    ABNORMAL_CLOSURE,
    NO_STATUS_RECEIVED,
    CloseObserver,
    ConnectError,
    Connection,
    Frame,
    NetworkError,
    PeerClosedError,
    ProtocolError,
    TransportError,
    WebSocketTransport,
)
from ws_endpoint_test.transport.config import TransportConfig

log = logging.getLogger(__name__)

WEBSOCKET_SCHEMES = frozenset({"ws", "wss", "http", "https"})


def _receive_error(exc: BaseException) -> TransportError:
    """Wrap an error reported by the aiohttp reader."""
    if isinstance(exc, aiohttp.ClientConnectionError | ConnectionError):
        return NetworkError(str(exc) or type(exc).__name__)
    return ProtocolError(str(exc) or type(exc).__name__)


class AiohttpConnection(Connection):
    """Connection backed by an ``aiohttp.ClientWebSocketResponse``."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws
        self._read_deadline: float | None = None
        self._write_deadline: float | None = None
        self._observers: list[CloseObserver] = []
        self._peer_close_code = 0

    def set_read_deadline(self, deadline: float | None) -> None:
        """Set the deadline for subsequent reads."""
        if self._ws.closed:
            raise DeadlineError("cannot set read deadline on a closed connection")
        self._read_deadline = deadline

    def set_write_deadline(self, deadline: float | None) -> None:
        """Set the deadline for subsequent writes."""
        if self._ws.closed:
            raise DeadlineError("cannot set write deadline on a closed connection")
        self._write_deadline = deadline

    def on_close(self, observer: CloseObserver) -> None:
        """Register a callback for close frames sent by the server."""
        self._observers.append(observer)

    async def read(self) -> Frame:
        """Read the next text or binary frame.

        Control frames are handled by aiohttp; a close frame from the server
        surfaces as ``PeerClosedError``.
        """
        async with asyncio.timeout_at(self._read_deadline):
            msg = await self._ws.receive()

        if msg.type is aiohttp.WSMsgType.TEXT:
            return Frame(type="text", data=msg.data)
        if msg.type is aiohttp.WSMsgType.BINARY:
            return Frame(type="binary", data=msg.data)
        if msg.type is aiohttp.WSMsgType.CLOSE:
            code = msg.data or NO_STATUS_RECEIVED
            self._peer_close_code = code
            reason = msg.extra or ""
            for observer in self._observers:
                observer(code, reason)
            raise PeerClosedError(code, reason)
        if msg.type is aiohttp.WSMsgType.ERROR:
            raise _receive_error(msg.data) from msg.data

        # CLOSING or CLOSED: the connection went away
        exc = self._connection_error()
        if exc is None or isinstance(exc, aiohttp.ServerDisconnectedError):
            raise PeerClosedError(
                self._peer_close_code or ABNORMAL_CLOSURE, "unexpected EOF"
            )
        raise _receive_error(exc) from exc

    def _connection_error(self) -> BaseException | None:
        """Return the error that ended the connection, if any was recorded."""
        if (exc := self._ws.exception()) is not None:
            return exc
        # receive() reports reader errors such as a reset as a plain CLOSED
        # message; the reader keeps the original error
        reader = getattr(self._ws, "_reader", None)
        if reader is None:
            return None
        return reader.exception()

    async def write_text(self, text: str) -> None:
        """Send a text frame."""
        async with asyncio.timeout_at(self._write_deadline):
            try:
                await self._ws.send_str(text)
            except TimeoutError:
                raise
            except (aiohttp.ClientConnectionError, ConnectionError) as e:
                raise NetworkError(str(e) or type(e).__name__) from e

    async def close(self, code: int = aiohttp.WSCloseCode.OK) -> None:
        """Send a close frame and wait briefly for the server's reply.

        A server that does not answer the close frame in time is not an error.
        """
        await self._ws.close(code=code)
        exc = self._ws.exception()
        if exc is not None and not isinstance(exc, TimeoutError):
            raise NetworkError(f"failed to close connection: {exc}") from exc

    async def release(self) -> None:
        """Close the connection if it is still open."""
        if not self._ws.closed:
            await self._ws.close(code=aiohttp.WSCloseCode.GOING_AWAY)


@dataclass(frozen=True, kw_only=True)
class AiohttpTransport(WebSocketTransport):
    """Transport opening WebSocket connections with a shared client session."""

    config: TransportConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: TransportConfig
    ) -> AsyncGenerator["AiohttpTransport", None]:
        """Create transport with managed session lifecycle."""
        async with aiohttp.ClientSession(trust_env=config.trust_env) as session:
            yield cls(config=config, session=session)

    async def connect(self, url: str, *, handshake_timeout: float) -> Connection:
        """Open a WebSocket connection within ``handshake_timeout`` seconds."""
        try:
            target = URL(url)
        except ValueError as e:
            raise ConnectError(f"invalid URL {url!r}: {e}") from e
        if target.scheme not in WEBSOCKET_SCHEMES:
            raise ConnectError(f"unsupported URL scheme {target.scheme!r} in {url!r}")

        log.debug("Opening WebSocket connection to %s", target)
        try:
            async with asyncio.timeout(handshake_timeout):
                ws = await self.session.ws_connect(
                    target,
                    timeout=aiohttp.ClientWSTimeout(
                        ws_receive=None, ws_close=self.config.close_timeout
                    ),
                    max_msg_size=self.config.max_msg_size,
                )
        except TimeoutError as e:
            raise ConnectError(
                f"handshake did not complete within {handshake_timeout} seconds"
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            raise ConnectError(str(e) or type(e).__name__) from e

        return AiohttpConnection(ws)
