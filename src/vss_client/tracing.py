"""OpenTelemetry tracing for VSS client operations.

Tracing is opt-in and configured from the environment:

Environment Variables:
    VSS_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    VSS_OTEL_SERVICE_NAME: Service name for spans (default: "vss-client")
    VSS_OTEL_EXPORTER: Exporter type - "console" or "none" (default: "none",
        leaving export to an application-installed provider)
    VSS_OTEL_TEST_CAPTURE: Set to "1" to use in-memory exporter for tests

Security:
    - Never export raw keys or payload bytes in span attributes
    - Keys are reported as SHA256 hashes for correlation only
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Final, TypeVar, cast

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan

logger = logging.getLogger(__name__)

VSS_OTEL_ENABLED_ENV: Final[str] = "VSS_OTEL_ENABLED"
VSS_OTEL_SERVICE_NAME_ENV: Final[str] = "VSS_OTEL_SERVICE_NAME"
VSS_OTEL_EXPORTER_ENV: Final[str] = "VSS_OTEL_EXPORTER"
VSS_OTEL_TEST_CAPTURE_ENV: Final[str] = "VSS_OTEL_TEST_CAPTURE"

TRACER_NAME: Final[str] = "vss_client"

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

_is_configured: bool = False
_test_exporter: Any = None  # InMemorySpanExporter when test capture is on


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    return default


def _get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default).strip()


def is_tracing_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _get_env_bool(VSS_OTEL_ENABLED_ENV, False)


def configure_tracing() -> bool:
    """Configure an OpenTelemetry tracer provider for the client.

    Idempotent. The global provider can only be installed once per process;
    later calls reuse it.

    Returns:
        True if tracing is enabled and configured, False otherwise.
    """
    global _is_configured, _test_exporter

    if not is_tracing_enabled():
        logger.debug("VSS tracing disabled (%s not set)", VSS_OTEL_ENABLED_ENV)
        return False

    test_capture = _get_env_bool(VSS_OTEL_TEST_CAPTURE_ENV, False)
    if _test_exporter is not None and test_capture:
        return True
    if _is_configured:
        return True

    _is_configured = True

    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor

    service_name = _get_env_str(VSS_OTEL_SERVICE_NAME_ENV, "vss-client")
    exporter_type = _get_env_str(VSS_OTEL_EXPORTER_ENV, "none")

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        _test_exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
    elif exporter_type == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    logger.info(
        "VSS tracing configured: service=%s, exporter=%s",
        service_name,
        "in-memory" if test_capture else exporter_type,
    )
    return True


def get_test_spans() -> list[ReadableSpan]:
    """Get captured spans from in-memory exporter (for testing)."""
    if _test_exporter is not None:
        return list(_test_exporter.get_finished_spans())
    return []


def clear_test_spans() -> None:
    """Clear captured spans from in-memory exporter (for testing)."""
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Reset configuration state (for testing).

    The in-memory exporter is kept because the global TracerProvider cannot
    be replaced once set.
    """
    global _is_configured
    clear_test_spans()
    _is_configured = False


def _key_sha256(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _request_attributes(request: Any) -> dict[str, Any]:
    """Extract safe span attributes from a request message."""
    attrs: dict[str, Any] = {}
    store_id = getattr(request, "store_id", None)
    if store_id:
        attrs["vss.store_id"] = store_id
    key = getattr(request, "key", None)
    if isinstance(key, str):
        attrs["vss.key_sha256"] = _key_sha256(key)
    items = getattr(request, "transaction_items", None)
    if items is not None:
        attrs["vss.transaction_item_count"] = len(items)
    delete_items = getattr(request, "delete_items", None)
    if delete_items is not None:
        attrs["vss.delete_item_count"] = len(delete_items)
    return attrs


def traced_vss_operation(operation: str) -> Callable[[F], F]:
    """Decorator tracing an async client operation with OpenTelemetry.

    The wrapped coroutine must take (self, request). Spans are named
    "vss.<operation>" and carry only safe attributes.

    Args:
        operation: Operation name (e.g., "get_object", "put_object").

    Returns:
        Decorated coroutine function.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, request: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return await func(self, request, *args, **kwargs)

            from opentelemetry import trace

            tracer = trace.get_tracer(TRACER_NAME)
            with tracer.start_as_current_span(
                f"vss.{operation}", record_exception=False
            ) as span:
                span.set_attribute("vss.operation", operation)
                for attr_key, attr_value in _request_attributes(request).items():
                    span.set_attribute(attr_key, attr_value)

                try:
                    return await func(self, request, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    kind = getattr(e, "kind", None)
                    if kind is not None:
                        span.set_attribute("vss.error_kind", str(kind))
                    status_code = getattr(e, "status_code", None)
                    if status_code is not None:
                        span.set_attribute("http.status_code", status_code)
                    span.set_status(trace.StatusCode.ERROR, type(e).__name__)
                    raise

        return cast(F, wrapper)

    return decorator
