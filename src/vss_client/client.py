"""Thin async client for a Versioned Storage Service (VSS).

VssClient maps the four VSS operations onto POST calls against a single base
endpoint:

    get_object        -> {base_url}/getObject
    put_object        -> {base_url}/putObjects
    delete_object     -> {base_url}/deleteObject
    list_key_versions -> {base_url}/listKeyVersions

Only put_object is retried, under the configured RetryPolicy; every other
operation makes exactly one attempt and surfaces the first classified error.
The client holds no mutable state and may be shared across concurrent tasks.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Final, TypeVar

import httpx

from vss_client.codec import Codec, DecodeError, JsonCodec
from vss_client.config import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    VssClientConfig,
    load_config_from_env,
    validate_base_url,
)
from vss_client.errors import (
    MalformedResponseError,
    ServerContractViolationError,
    VssTransportError,
    classify_response,
    is_success_status,
)
from vss_client.models import (
    DeleteObjectRequest,
    DeleteObjectResponse,
    GetObjectRequest,
    GetObjectResponse,
    ListKeyVersionsRequest,
    ListKeyVersionsResponse,
    PutObjectRequest,
    PutObjectResponse,
    VssMessage,
)
from vss_client.retry import ExponentialBackoffRetryPolicy, RetryPolicy, retry
from vss_client.tracing import traced_vss_operation
from vss_client.transport import HttpxTransport, Transport, TransportResponse

logger = logging.getLogger(__name__)

GET_OBJECT_PATH: Final[str] = "/getObject"
PUT_OBJECTS_PATH: Final[str] = "/putObjects"
DELETE_OBJECT_PATH: Final[str] = "/deleteObject"
LIST_KEY_VERSIONS_PATH: Final[str] = "/listKeyVersions"

R = TypeVar("R", bound=VssMessage)


def default_retry_policy() -> RetryPolicy:
    """Exponential backoff from 10ms, bounded to 10 attempts."""
    return ExponentialBackoffRetryPolicy(DEFAULT_BASE_DELAY_SECONDS).with_max_attempts(
        DEFAULT_MAX_ATTEMPTS
    )


class VssClient:
    """Async client for a hosted VSS instance.

    The API mirrors the server-side API one-to-one. For request/response
    semantics see the message types in vss_client.models.
    """

    def __init__(
        self,
        base_url: str,
        retry_policy: RetryPolicy | None = None,
        *,
        transport: Transport | None = None,
        codec: Codec | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: VSS server endpoint, e.g. "https://vss.example.com/vss".
            retry_policy: Policy applied to put_object failures.
                Defaults to default_retry_policy().
            transport: Transport used for calls. Defaults to an HttpxTransport
                owning its own httpx.AsyncClient.
            codec: Wire codec. Defaults to JsonCodec.

        Raises:
            ValueError: If base_url is not an absolute http(s) URL.
        """
        self._base_url = validate_base_url(base_url)
        self._retry_policy = retry_policy if retry_policy is not None else default_retry_policy()
        self._transport = transport if transport is not None else HttpxTransport()
        self._codec = codec if codec is not None else JsonCodec()

    @classmethod
    def from_http_client(
        cls,
        base_url: str,
        http_client: httpx.AsyncClient,
        retry_policy: RetryPolicy | None = None,
    ) -> VssClient:
        """Build a client on top of an existing httpx.AsyncClient.

        The http_client is borrowed: closing the VssClient leaves it open.
        """
        return cls(base_url, retry_policy, transport=HttpxTransport(http_client))

    @classmethod
    def from_config(cls, config: VssClientConfig) -> VssClient:
        """Build a client and its retry policy from configuration."""
        return cls(
            config.base_url,
            config.build_retry_policy(),
            transport=HttpxTransport(timeout_seconds=config.timeout_seconds),
        )

    @classmethod
    def from_env(cls) -> VssClient:
        """Build a client from VSS_* environment variables.

        Raises:
            VssConfigError: If the environment is missing or invalid.
        """
        return cls.from_config(load_config_from_env())

    @property
    def base_url(self) -> str:
        """The VSS server endpoint."""
        return self._base_url

    @property
    def retry_policy(self) -> RetryPolicy:
        """Policy applied to put_object failures."""
        return self._retry_policy

    async def aclose(self) -> None:
        """Release the transport."""
        await self._transport.aclose()

    async def __aenter__(self) -> VssClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _send(self, operation: str, path: str, request: VssMessage) -> TransportResponse:
        """Encode request and POST it, returning a success response.

        Raises:
            VssTransportError: If the transport could not complete the call.
            VssClientError: On a 4xx status.
            VssServerError: On any other non-success status.
        """
        url = f"{self._base_url}{path}"
        body = self._codec.encode(request)

        try:
            raw = await self._transport.send(url, body, content_type=self._codec.content_type)
        except VssTransportError as e:
            if e.operation is None:
                e.operation = operation
            raise

        if not is_success_status(raw.status_code):
            error = classify_response(
                raw.status_code, raw.content, self._codec, operation=operation
            )
            logger.debug("%s failed: %s", operation, error)
            raise error

        return raw

    def _decode(self, operation: str, raw: TransportResponse, response_type: type[R]) -> R:
        """Decode a success body.

        Raises:
            MalformedResponseError: If the body is not a valid response_type.
        """
        try:
            return self._codec.decode(raw.content, response_type)
        except DecodeError as e:
            raise MalformedResponseError(
                f"Failed to decode {response_type.__name__}",
                status_code=raw.status_code,
                body=raw.content,
                operation=operation,
                cause=e,
            ) from e

    async def _call(
        self,
        operation: str,
        path: str,
        request: VssMessage,
        response_type: type[R],
    ) -> R:
        """Run one encode -> send -> decode round-trip."""
        raw = await self._send(operation, path, request)
        return self._decode(operation, raw, response_type)

    @traced_vss_operation("get_object")
    async def get_object(self, request: GetObjectRequest) -> GetObjectResponse:
        """Fetch the value stored against request.key.

        Single attempt, never retried. A missing key is reported by the
        server as NoSuchKeyError, never as an empty value.

        Raises:
            ServerContractViolationError: If a success response carries no
                value, or a value without a version.
            VssError: Any other classified failure.
        """
        raw = await self._send("get_object", GET_OBJECT_PATH, request)
        response = self._decode("get_object", raw, GetObjectResponse)
        if response.value is None:
            raise ServerContractViolationError(
                "VSS Server API Violation, expected value in GetObjectResponse but found none",
                status_code=raw.status_code,
                body=raw.content,
                operation="get_object",
            )
        if response.value.version is None:
            raise ServerContractViolationError(
                "VSS Server API Violation, expected version in GetObjectResponse but found none",
                status_code=raw.status_code,
                body=raw.content,
                operation="get_object",
            )
        return response

    @traced_vss_operation("put_object")
    async def put_object(self, request: PutObjectRequest) -> PutObjectResponse:
        """Write request.transaction_items as one all-or-nothing transaction.

        The whole encode -> send -> decode sequence is re-run on every
        attempt the retry policy allows. Once the policy stops, the last
        attempt's error is raised unchanged.
        """

        async def attempt() -> PutObjectResponse:
            return await self._call("put_object", PUT_OBJECTS_PATH, request, PutObjectResponse)

        return await retry(attempt, self._retry_policy)

    @traced_vss_operation("delete_object")
    async def delete_object(self, request: DeleteObjectRequest) -> DeleteObjectResponse:
        """Delete request.key. Single attempt, never retried."""
        return await self._call(
            "delete_object", DELETE_OBJECT_PATH, request, DeleteObjectResponse
        )

    @traced_vss_operation("list_key_versions")
    async def list_key_versions(self, request: ListKeyVersionsRequest) -> ListKeyVersionsResponse:
        """List keys and versions in request.store_id. Single attempt, never retried."""
        return await self._call(
            "list_key_versions", LIST_KEY_VERSIONS_PATH, request, ListKeyVersionsResponse
        )
