"""Async client for a Versioned Storage Service (VSS).

Provides get / put / delete / list access to a remote key-value store whose
values carry server-assigned versions for optimistic concurrency control.

Environment Variables:
    VSS_BASE_URL: VSS server endpoint (used by VssClient.from_env)
    VSS_OTEL_ENABLED: Set to "1" to emit OpenTelemetry spans
"""

from vss_client.client import VssClient
from vss_client.codec import Codec, DecodeError, JsonCodec
from vss_client.config import VssClientConfig, VssConfigError, load_config_from_env
from vss_client.errors import (
    AuthError,
    ConflictError,
    ErrorKind,
    InvalidRequestError,
    MalformedResponseError,
    NoSuchKeyError,
    ServerContractViolationError,
    VssClientError,
    VssError,
    VssResponseError,
    VssServerError,
    VssTransportError,
)
from vss_client.models import (
    DeleteObjectRequest,
    DeleteObjectResponse,
    ErrorCode,
    ErrorResponse,
    GetObjectRequest,
    GetObjectResponse,
    KeyValue,
    ListKeyVersionsRequest,
    ListKeyVersionsResponse,
    PutObjectRequest,
    PutObjectResponse,
)
from vss_client.retry import (
    ExponentialBackoffRetryPolicy,
    FilteredRetryPolicy,
    JitteredRetryPolicy,
    MaxAttemptsRetryPolicy,
    NoRetryPolicy,
    RetryAfter,
    RetryDecision,
    RetryPolicy,
    Stop,
)
from vss_client.transport import HttpxTransport, Transport, TransportResponse

__all__ = [
    "VssClient",
    "VssClientConfig",
    "VssConfigError",
    "load_config_from_env",
    "Codec",
    "JsonCodec",
    "DecodeError",
    "Transport",
    "HttpxTransport",
    "TransportResponse",
    "KeyValue",
    "GetObjectRequest",
    "GetObjectResponse",
    "PutObjectRequest",
    "PutObjectResponse",
    "DeleteObjectRequest",
    "DeleteObjectResponse",
    "ListKeyVersionsRequest",
    "ListKeyVersionsResponse",
    "ErrorCode",
    "ErrorResponse",
    "ErrorKind",
    "VssError",
    "VssTransportError",
    "VssResponseError",
    "VssClientError",
    "ConflictError",
    "InvalidRequestError",
    "NoSuchKeyError",
    "AuthError",
    "VssServerError",
    "MalformedResponseError",
    "ServerContractViolationError",
    "RetryPolicy",
    "RetryDecision",
    "Stop",
    "RetryAfter",
    "NoRetryPolicy",
    "ExponentialBackoffRetryPolicy",
    "MaxAttemptsRetryPolicy",
    "JitteredRetryPolicy",
    "FilteredRetryPolicy",
]
