"""VSS wire data models.

Defines the request/response messages exchanged with a Versioned Storage
Service (VSS) server:
- KeyValue: a key paired with its opaque version and byte payload
- Get / Put / Delete / ListKeyVersions request and response messages
- ErrorResponse and ErrorCode for non-success statuses

All messages are immutable. Byte payloads are base64-encoded in the JSON
wire form so arbitrary binary values survive a round-trip.
"""

from __future__ import annotations

import base64
import binascii
from enum import IntEnum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationInfo,
)


def _decode_wire_bytes(value: Any, info: ValidationInfo) -> Any:
    """Decode base64 text when validating from the JSON wire form."""
    if info.mode == "json" and isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"invalid base64 payload: {e}") from e
    return value


def _encode_wire_bytes(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


WireBytes = Annotated[
    bytes,
    BeforeValidator(_decode_wire_bytes),
    PlainSerializer(_encode_wire_bytes, return_type=str, when_used="json"),
]


class VssMessage(BaseModel):
    """Base class for all VSS wire messages."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class KeyValue(VssMessage):
    """A key, its version and its value.

    Attributes:
        key: Opaque key, unique within a store.
        version: Server-assigned version. On writes this is the expected
            current version; None means create or overwrite unconditionally.
            Versions are compared for equality only, never computed locally.
        value: Byte payload. Empty for payload-free listings.
    """

    key: str
    version: int | None = None
    value: WireBytes = b""


class GetObjectRequest(VssMessage):
    """Fetch the current value of a single key.

    Attributes:
        store_id: Namespace the key belongs to.
        key: Key to fetch.
    """

    store_id: str = Field(min_length=1)
    key: str


class GetObjectResponse(VssMessage):
    """Response to GetObjectRequest.

    A success response must carry a value. A missing value is a server
    contract violation, not "key absent".
    """

    value: KeyValue | None = None


class PutObjectRequest(VssMessage):
    """Write multiple items as a single all-or-nothing transaction.

    Attributes:
        store_id: Namespace the items belong to.
        transaction_items: Items to create or update, in order. Keys must be
            unique within the request (enforced server-side).
        delete_items: Items to delete in the same transaction.
        global_version: Optional store-wide expected version.
    """

    store_id: str = Field(min_length=1)
    transaction_items: list[KeyValue] = Field(default_factory=list)
    delete_items: list[KeyValue] = Field(default_factory=list)
    global_version: int | None = None


class PutObjectResponse(VssMessage):
    """Acknowledgement of a committed Put transaction."""


class DeleteObjectRequest(VssMessage):
    """Delete a single key.

    Attributes:
        store_id: Namespace the key belongs to.
        key: Key to delete.
        version: Optional expected version; None deletes unconditionally.
    """

    store_id: str = Field(min_length=1)
    key: str
    version: int | None = None


class DeleteObjectResponse(VssMessage):
    """Acknowledgement of a delete."""


class ListKeyVersionsRequest(VssMessage):
    """List keys and their current versions in a store.

    Attributes:
        store_id: Namespace to enumerate.
        key_prefix: Only return keys starting with this prefix.
        page_size: Maximum number of entries per page (server may cap it).
        page_token: Continuation token from a previous response.
    """

    store_id: str = Field(min_length=1)
    key_prefix: str | None = None
    page_size: int | None = Field(default=None, gt=0)
    page_token: str | None = None


class ListKeyVersionsResponse(VssMessage):
    """One page of (key, version) pairs.

    Attributes:
        key_versions: Ordered entries. Values are left empty.
        next_page_token: Token for the next page, None on the last page.
        global_version: Store-wide version, when the server tracks one.
    """

    key_versions: list[KeyValue] = Field(default_factory=list)
    next_page_token: str | None = None
    global_version: int | None = None


class ErrorCode(IntEnum):
    """Application-level error codes returned in ErrorResponse."""

    UNKNOWN = 0
    CONFLICT_EXCEPTION = 1
    INVALID_REQUEST_EXCEPTION = 2
    INTERNAL_SERVER_EXCEPTION = 3
    NO_SUCH_KEY_EXCEPTION = 4
    AUTH_EXCEPTION = 5


class ErrorResponse(VssMessage):
    """Diagnostic body attached by the server to non-success statuses."""

    error_code: ErrorCode = ErrorCode.UNKNOWN
    message: str = ""
