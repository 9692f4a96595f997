"""Execution engine driving a single run of a WebSocket test.

A run walks through connect, an optional send, a bounded read loop, a final
read that checks how the server ends the session, and a client initiated
close. Every I/O outcome is recorded in the event log of the returned
``TestResult``; protocol failures end the run but are never raised.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ws_endpoint_test.errors import DeadlineError, InputError
from ws_endpoint_test.models.definition import WebSocketTest
from ws_endpoint_test.models.duration import DurationMS
from ws_endpoint_test.models.log import ErrorDetail, Event, EventKind, Step
from ws_endpoint_test.models.message import (
    BinaryMessage,
    ReceivedMessage,
    TextMessage,
)
from ws_endpoint_test.models.result import TestResult
from ws_endpoint_test.outcomes import READ_KINDS, WRITE_KINDS, Outcome, classify
from ws_endpoint_test.transport.base import (
    Connection,
    Frame,
    PeerClosedError,
    TransportError,
    WebSocketTransport,
)

log = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000


def new_run_id() -> str:
    """Generate a random run identifier."""
    return str(uuid.uuid4())


@dataclass(kw_only=True)
class RunRecorder:
    """Mutable state of a run in progress.

    Owned by a single run; ``finish`` freezes it into a ``TestResult``.
    """

    id: str
    test: WebSocketTest
    started_at: datetime
    origin: float
    connect_ok: bool = False
    server_close_code: int = 0
    close_ok: bool = False
    messages: list[ReceivedMessage] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    @classmethod
    def start(cls, run_id: str, test: WebSocketTest) -> "RunRecorder":
        """Start recording a run now."""
        return cls(
            id=run_id,
            test=test,
            started_at=datetime.now(UTC),
            origin=asyncio.get_running_loop().time(),
        )

    def elapsed(self) -> DurationMS:
        """Time since the run started."""
        seconds = asyncio.get_running_loop().time() - self.origin
        return DurationMS(round(seconds * 1e9))

    def add(
        self,
        kind: EventKind,
        step: Step,
        *,
        message: str = "",
        value: int | str | None = None,
        error: BaseException | None = None,
    ) -> Event:
        """Append an event to the log."""
        event = Event(
            created_at=self.elapsed(),
            kind=kind,
            step=step,
            message=message,
            value=value,
            error=ErrorDetail.from_exception(error) if error is not None else None,
        )
        self.events.append(event)
        return event

    def add_message(self, frame: Frame) -> None:
        """Append a received frame to the messages."""
        message: ReceivedMessage
        if frame.type == "binary":
            message = BinaryMessage(received_at=self.elapsed(), body=frame.data)
        else:
            message = TextMessage(received_at=self.elapsed(), body=frame.data)
        self.messages.append(message)

    def finish(self) -> TestResult:
        """Freeze the recorded state into a result."""
        return TestResult(
            id=self.id,
            test=self.test,
            started_at=self.started_at,
            connect_ok=self.connect_ok,
            messages_received=len(self.messages),
            messages=list(self.messages),
            server_close_code=self.server_close_code,
            close_ok=self.close_ok,
            log=list(self.events),
        )


async def run_test(
    transport: WebSocketTransport,
    test: WebSocketTest,
    *,
    id_factory: Callable[[], str] = new_run_id,
) -> TestResult:
    """Run a test once and return everything that was recorded.

    Args:
        transport: Transport used to open the connection
        test: Test definition; unset timeouts get their defaults
        id_factory: Generates the run identifier

    Returns:
        The finished result, also when the connection or any exchange failed

    Raises:
        InputError: If the test has no name or no run id can be generated
        DeadlineError: If the transport cannot set a read or write deadline

    """
    if not test.name:
        raise InputError("test name cannot be empty")
    try:
        run_id = id_factory()
    except Exception as e:
        raise InputError(f"cannot generate run id: {e}") from e

    test = test.with_defaults()
    log.info("%s new test %s", run_id, test.model_dump_json())

    run = RunRecorder.start(run_id, test)

    run.add(EventKind.CONNECT, Step.CONNECT, message=test.url)
    log.info("%s Connecting to %s", run_id, test.url)
    try:
        conn = await transport.connect(
            test.url, handshake_timeout=test.handshake_timeout.total_seconds()
        )
    except TransportError as e:
        run.add(EventKind.CONNECT_FAIL, Step.CONNECT, error=e)
        log.warning("%s Cannot connect to websocket: %s", run_id, e)
        return run.finish()

    run.add(EventKind.CONNECT_SUCCESS, Step.CONNECT)
    run.connect_ok = True
    conn.on_close(
        lambda code, reason: log.info(
            "%s close frame received: %d %s", run_id, code, reason
        )
    )
    log.info("%s connected", run_id)

    try:
        await _exchange(conn, run)
    finally:
        await conn.release()

    return run.finish()


async def _exchange(conn: Connection, run: RunRecorder) -> None:
    """Send, read and close; returns as soon as a step ends the run."""
    test = run.test

    if test.send_text_message:
        if not await _send_text(conn, run):
            return

    # Always read at least one message
    while len(run.messages) < max(test.expect_messages, 1):
        if not await _read(conn, run, Step.READ_MESSAGE):
            return

    if test.expect_server_close:
        if not await _read(conn, run, Step.EXPECTED_SERVER_CLOSE):
            return
    elif not await _read(
        conn, run, Step.UNEXPECTED_SERVER_CLOSE, ignore_timeout=True
    ):
        return

    await _client_close(conn, run)


def _deadline(seconds: float) -> float:
    return asyncio.get_running_loop().time() + seconds


async def _send_text(conn: Connection, run: RunRecorder) -> bool:
    step = Step.SEND_TEXT
    try:
        conn.set_write_deadline(
            _deadline(run.test.message_write_timeout.total_seconds())
        )
    except DeadlineError as e:
        run.add(EventKind.SET_WRITE_DEADLINE_FAILED, step, error=e)
        raise DeadlineError(str(e), result=run.finish()) from e

    run.add(EventKind.WRITE_MESSAGE, step)
    try:
        await conn.write_text(run.test.send_text_message or "")
    except Exception as e:
        return _record_failure(run, step, WRITE_KINDS, e)

    run.add(EventKind.WRITE_MESSAGE_SUCCESS, step)
    return True


async def _read(
    conn: Connection, run: RunRecorder, step: Step, *, ignore_timeout: bool = False
) -> bool:
    try:
        conn.set_read_deadline(
            _deadline(run.test.message_read_timeout.total_seconds())
        )
    except DeadlineError as e:
        run.add(EventKind.SET_READ_DEADLINE_FAILED, step, error=e)
        raise DeadlineError(str(e), result=run.finish()) from e

    run.add(EventKind.READ_MESSAGE, step)
    try:
        frame = await conn.read()
    except Exception as e:
        return _record_failure(
            run, step, READ_KINDS, e, ignore_timeout=ignore_timeout
        )

    run.add(EventKind.READ_MESSAGE_SUCCESS, step, value=frame.type)
    run.add_message(frame)
    log.info("%s received %s message: %r", run.id, frame.type, frame.data)
    return True


def _record_failure(
    run: RunRecorder,
    step: Step,
    kinds: Mapping[Outcome, EventKind],
    exc: Exception,
    *,
    ignore_timeout: bool = False,
) -> bool:
    """Log a failed read or write; returns whether the run goes on."""
    outcome = classify(exc)
    kind = kinds[outcome]

    if isinstance(exc, PeerClosedError):
        run.server_close_code = exc.code
        run.add(kind, step, message=exc.reason, value=exc.code, error=exc)
        log.info(
            "%s connection closed by server: %d %s", run.id, exc.code, exc.reason
        )
        return False

    if outcome is Outcome.TIMEOUT:
        run.add(kind, step)
        log.info("%s %s timed out", run.id, step)
        return ignore_timeout

    run.add(kind, step, error=exc)
    log.warning("%s %s failed: %s: %s", run.id, step, type(exc).__name__, exc)
    return False


async def _client_close(conn: Connection, run: RunRecorder) -> None:
    step = Step.CLIENT_CLOSE
    run.add(EventKind.CLIENT_CLOSE_CONNECTION, step)
    log.info("%s Requesting connection closure", run.id)
    try:
        await conn.close(NORMAL_CLOSURE)
    except Exception as e:
        run.add(EventKind.CLIENT_CLOSE_CONNECTION_FAILED, step, error=e)
        log.warning("%s Error while closing websocket: %s", run.id, e)
        return

    run.add(EventKind.CLIENT_CLOSE_CONNECTION_SUCCESS, step)
    run.close_ok = True
