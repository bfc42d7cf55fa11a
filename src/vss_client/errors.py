"""VSS client error types and response classification.

Every failure surfaced by VssClient is a VssError subclass carrying an
ErrorKind and a default retryability flag:

- VssTransportError: the call never produced a status (connect, timeout, DNS)
- VssClientError: 4xx status; subclasses refine it by the server's ErrorCode
- VssServerError: 5xx (or any other non-success) status
- MalformedResponseError: success status but an undecodable body
- ServerContractViolationError: success status, well-formed body, but a
  mandatory field is missing

Client and server errors keep the raw status code and the exact body bytes.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from vss_client.codec import DecodeError
from vss_client.models import ErrorCode, ErrorResponse

if TYPE_CHECKING:
    from vss_client.codec import Codec

logger = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    """Semantic category of a failed VSS call."""

    TRANSPORT = "transport"
    CLIENT = "client"
    SERVER = "server"
    MALFORMED_RESPONSE = "malformed_response"
    CONTRACT_VIOLATION = "contract_violation"
    UNKNOWN = "unknown"


class VssError(Exception):
    """Base exception for VSS client operations.

    Attributes:
        message: Human-readable error message.
        operation: Client operation that failed (e.g. "put_object").
    """

    kind: ErrorKind = ErrorKind.UNKNOWN
    retryable: bool = False

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        return " ".join(parts)


class VssTransportError(VssError):
    """Raised when the underlying call could not complete.

    Not traceable to a status code. Retryable by default.
    """

    kind = ErrorKind.TRANSPORT
    retryable = True

    def __init__(
        self,
        message: str = "Transport failure",
        *,
        operation: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, operation=operation)
        self.cause = cause


class VssResponseError(VssError):
    """Base for errors derived from a non-success status.

    Attributes:
        status_code: HTTP status returned by the server.
        body: Raw response body, unmodified.
        error_code: ErrorCode decoded from the body, None if undecodable.
        server_message: Diagnostic message decoded from the body, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: bytes,
        error_code: ErrorCode | None = None,
        server_message: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation)
        self.status_code = status_code
        self.body = body
        self.error_code = error_code
        self.server_message = server_message

    def __str__(self) -> str:
        return f"{super().__str__()} status={self.status_code}"


class VssClientError(VssResponseError):
    """4xx status: bad request shape, conflict, missing key or auth failure."""

    kind = ErrorKind.CLIENT
    retryable = False


class ConflictError(VssClientError):
    """Expected version did not match the stored version."""


class InvalidRequestError(VssClientError):
    """Server rejected the request as invalid."""


class NoSuchKeyError(VssClientError):
    """Requested key does not exist."""


class AuthError(VssClientError):
    """Request was not authenticated or not authorized."""


class VssServerError(VssResponseError):
    """5xx (or otherwise unexpected) status. Retryable by default."""

    kind = ErrorKind.SERVER
    retryable = True


class MalformedResponseError(VssError):
    """Success status, but the body does not satisfy the expected shape.

    Attributes:
        status_code: HTTP status returned by the server.
        body: Raw response body, unmodified.
        cause: Decode error, if the body could not be parsed at all.
    """

    kind = ErrorKind.MALFORMED_RESPONSE
    retryable = False

    def __init__(
        self,
        message: str = "Malformed response",
        *,
        status_code: int,
        body: bytes,
        operation: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, operation=operation)
        self.status_code = status_code
        self.body = body
        self.cause = cause


class ServerContractViolationError(MalformedResponseError):
    """Success status with a well-formed body that omits a mandatory field.

    Signals a server-side bug. Distinct from undecodable bytes.
    """

    kind = ErrorKind.CONTRACT_VIOLATION


_CLIENT_ERRORS_BY_CODE: dict[ErrorCode, type[VssClientError]] = {
    ErrorCode.CONFLICT_EXCEPTION: ConflictError,
    ErrorCode.INVALID_REQUEST_EXCEPTION: InvalidRequestError,
    ErrorCode.NO_SUCH_KEY_EXCEPTION: NoSuchKeyError,
    ErrorCode.AUTH_EXCEPTION: AuthError,
}


def is_success_status(status_code: int) -> bool:
    """Return True for 2xx statuses."""
    return 200 <= status_code < 300


def _decode_error_body(body: bytes, codec: Codec) -> ErrorResponse | None:
    """Best-effort decode of the server's ErrorResponse body."""
    if not body:
        return None
    try:
        return codec.decode(body, ErrorResponse)
    except DecodeError:
        logger.debug("Error body is not a decodable ErrorResponse (%d bytes)", len(body))
        return None


def classify_response(
    status_code: int,
    body: bytes,
    codec: Codec,
    *,
    operation: str | None = None,
) -> VssResponseError:
    """Map a non-success (status, body) pair to a typed error.

    The status range alone decides client vs server. A decodable
    ErrorResponse body only refines the client error subclass and fills in
    error_code / server_message.

    Args:
        status_code: Non-success HTTP status.
        body: Raw response body.
        codec: Codec used to decode the optional ErrorResponse.
        operation: Client operation name for diagnostics.

    Returns:
        VssClientError (or subclass) for 4xx, VssServerError otherwise.
    """
    error_response = _decode_error_body(body, codec)
    error_code = error_response.error_code if error_response is not None else None
    server_message = error_response.message if error_response is not None else None

    if 400 <= status_code < 500:
        error_cls: type[VssResponseError] = VssClientError
        if error_code is not None:
            error_cls = _CLIENT_ERRORS_BY_CODE.get(error_code, VssClientError)
        label = "Client error"
    else:
        error_cls = VssServerError
        label = "Server error"

    message = f"{label}: HTTP {status_code}"
    if server_message:
        message = f"{message}: {server_message}"

    return error_cls(
        message,
        status_code=status_code,
        body=body,
        error_code=error_code,
        server_message=server_message,
        operation=operation,
    )
