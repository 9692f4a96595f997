"""Models for messages received from the tested endpoint."""

from typing import Annotated, Literal

from pydantic import Field

from ws_endpoint_test.models.base import Model
from ws_endpoint_test.models.duration import DurationMS

type FrameType = Literal["text", "binary"]


class TextMessage(Model):
    """A text frame received from the server."""

    type: Literal["text"] = "text"
    received_at: DurationMS
    body: str


class BinaryMessage(Model):
    """A binary frame received from the server."""

    type: Literal["binary"] = "binary"
    received_at: DurationMS
    body: bytes


ReceivedMessage = Annotated[
    TextMessage | BinaryMessage, Field(discriminator="type")
]
