"""Wire codec for VSS messages.

The dispatcher treats the codec as an opaque encode/decode pair over byte
buffers. JsonCodec is the default implementation, built on pydantic's JSON
serialization.
"""

from __future__ import annotations

from typing import Final, Protocol, TypeVar, runtime_checkable

from pydantic import ValidationError

from vss_client.models import VssMessage

M = TypeVar("M", bound=VssMessage)

JSON_CONTENT_TYPE: Final[str] = "application/json"


class DecodeError(Exception):
    """Raised when bytes cannot be decoded into the expected message type.

    Attributes:
        message_type: Name of the message type that was expected.
        cause: Underlying parser/validation error, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        message_type: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message_type = message_type
        self.cause = cause


@runtime_checkable
class Codec(Protocol):
    """Encode/decode contract used by VssClient."""

    @property
    def content_type(self) -> str:
        """MIME type sent alongside encoded bodies."""
        ...

    def encode(self, message: VssMessage) -> bytes:
        """Serialize a message into bytes."""
        ...

    def decode(self, data: bytes, message_type: type[M]) -> M:
        """Deserialize bytes into message_type.

        Raises:
            DecodeError: If data is not a valid encoding of message_type.
        """
        ...


class JsonCodec:
    """JSON codec backed by pydantic models.

    Bytes fields are base64-encoded. Unknown fields are ignored on decode so
    newer servers stay readable. An empty body decodes as a message with all
    fields at their defaults, so bare acknowledgements need no payload.
    """

    @property
    def content_type(self) -> str:
        return JSON_CONTENT_TYPE

    def encode(self, message: VssMessage) -> bytes:
        return message.model_dump_json().encode("utf-8")

    def decode(self, data: bytes, message_type: type[M]) -> M:
        if not data:
            data = b"{}"
        try:
            return message_type.model_validate_json(data)
        except ValidationError as e:
            raise DecodeError(
                f"Failed to decode {message_type.__name__}: {e.error_count()} validation error(s)",
                message_type=message_type.__name__,
                cause=e,
            ) from e
