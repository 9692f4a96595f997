"""Classification of read and write outcomes into event kinds.

``classify`` is the single place where transport errors are interpreted; the
kind tables derived from it drive both the event log and the success verdict.
"""

from collections.abc import Mapping
from enum import StrEnum

from ws_endpoint_test.models.log import EventKind
from ws_endpoint_test.transport.base import NetworkError, PeerClosedError


class Outcome(StrEnum):
    """Result of a single read or write attempt."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    PEER_CLOSED = "peer_closed"
    NETWORK_ERROR = "network_error"
    ERROR = "error"


def classify(exc: BaseException | None) -> Outcome:
    """Classify the error raised by a read or write, ``None`` meaning success."""
    if exc is None:
        return Outcome.SUCCESS
    if isinstance(exc, PeerClosedError):
        return Outcome.PEER_CLOSED
    if isinstance(exc, TimeoutError):
        return Outcome.TIMEOUT
    if isinstance(exc, NetworkError):
        return Outcome.NETWORK_ERROR
    return Outcome.ERROR


READ_KINDS: Mapping[Outcome, EventKind] = {
    Outcome.SUCCESS: EventKind.READ_MESSAGE_SUCCESS,
    Outcome.TIMEOUT: EventKind.READ_MESSAGE_TIMEOUT,
    Outcome.PEER_CLOSED: EventKind.SERVER_CLOSED_CONNECTION,
    Outcome.NETWORK_ERROR: EventKind.READ_MESSAGE_NET_ERROR,
    Outcome.ERROR: EventKind.READ_MESSAGE_ERROR,
}

WRITE_KINDS: Mapping[Outcome, EventKind] = {
    Outcome.SUCCESS: EventKind.WRITE_MESSAGE_SUCCESS,
    Outcome.TIMEOUT: EventKind.WRITE_MESSAGE_TIMEOUT,
    Outcome.PEER_CLOSED: EventKind.SERVER_CLOSED_CONNECTION,
    Outcome.NETWORK_ERROR: EventKind.WRITE_MESSAGE_NET_ERROR,
    Outcome.ERROR: EventKind.WRITE_MESSAGE_ERROR,
}

_FAILURES = (Outcome.TIMEOUT, Outcome.NETWORK_ERROR, Outcome.ERROR)

READ_FAILURES = frozenset(READ_KINDS[outcome] for outcome in _FAILURES)
WRITE_FAILURES = frozenset(WRITE_KINDS[outcome] for outcome in _FAILURES)
