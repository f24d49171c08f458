"""objfs OpenTelemetry tracing integration.

Provides tracer setup and a decorator that wraps filesystem operations in
spans.

Environment Variables:
    OBJFS_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    OBJFS_OTEL_SERVICE_NAME: Service name for spans (default: "objfs")
    OBJFS_OTEL_EXPORTER: "console" or "none" (default: "console")
    OBJFS_OTEL_TEST_CAPTURE: Set to "1" to use an in-memory exporter for tests

Span attributes never include raw object keys, only their SHA256, since
keys can carry user data.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar, cast

from objfs.paths import resolve

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

_tracer_provider: TracerProvider | None = None
_is_configured: bool = False
_test_exporter: Any = None


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no", ""):
        return default
    return default


def _get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default).strip()


def is_tracing_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _get_env_bool("OBJFS_OTEL_ENABLED", False)


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing for objfs.

    Idempotent - safe to call multiple times.

    Returns:
        True if tracing is enabled and configured, False otherwise.
    """
    global _tracer_provider, _is_configured, _test_exporter

    if not is_tracing_enabled():
        _is_configured = True
        logger.debug("OpenTelemetry tracing disabled (OBJFS_OTEL_ENABLED not set)")
        return False

    test_capture = _get_env_bool("OBJFS_OTEL_TEST_CAPTURE", False)

    # The in-memory exporter survives reset_tracing() so tests can reconfigure.
    if _test_exporter is not None and test_capture:
        return True

    if _is_configured and _tracer_provider is not None:
        return True

    _is_configured = True

    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

    service_name = _get_env_str("OBJFS_OTEL_SERVICE_NAME", "objfs")
    exporter_type = _get_env_str("OBJFS_OTEL_EXPORTER", "console")

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        _test_exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
    elif exporter_type == "console":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider

    logger.info(
        "OpenTelemetry tracing configured: service=%s, exporter=%s",
        service_name,
        "in-memory" if test_capture else exporter_type,
    )
    return True


def get_test_spans() -> list[ReadableSpan]:
    """Get captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None:
        return list(_test_exporter.get_finished_spans())
    return []


def clear_test_spans() -> None:
    """Clear captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Reset tracing configuration (for testing).

    The global TracerProvider cannot be replaced once set, so the in-memory
    exporter is kept and only its spans are cleared.
    """
    global _is_configured

    clear_test_spans()
    _is_configured = False


def traced_fs_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace async filesystem operations with OpenTelemetry.

    The wrapped method must take the virtual path as its first argument.

    Args:
        operation: Operation name (e.g., "stat", "readdir").

    Returns:
        Decorated coroutine function that emits an ``objfs.fs.<operation>``
        span when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, path: str = "", *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return await func(self, path, *args, **kwargs)

            from opentelemetry import trace

            tracer = trace.get_tracer("objfs.fs")
            resolved = resolve(path)

            with tracer.start_as_current_span(f"objfs.fs.{operation}") as span:
                span.set_attribute("objfs.operation", operation)
                span.set_attribute("objfs.container", resolved.container)
                if resolved.key:
                    key_sha256 = hashlib.sha256(resolved.key.encode("utf-8")).hexdigest()
                    span.set_attribute("objfs.key_sha256", key_sha256)
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))

                try:
                    return await func(self, path, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        return cast(F, wrapper)

    return decorator
