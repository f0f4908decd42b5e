"""OpenTelemetry instrumentation for the weather tracker.

Spans are created through the `trace_operation` decorator. Until
`init_tracing` is called the OpenTelemetry no-op tracer is used, so
decorated code runs unchanged in tests and in the CLI without a collector.
"""

import functools
import inspect
import json
import os
from typing import Any, Callable, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

# Type variable for preserving function signatures
F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "place-weather-tracker"

_tracer: trace.Tracer | None = None


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def init_tracing(
    project_name: str = TRACER_NAME,
    endpoint: str | None = None,
) -> None:
    """Register a Phoenix tracer provider and route engine spans to it.

    Args:
        project_name: Name of the project in the Phoenix dashboard.
        endpoint: Phoenix collector endpoint. Defaults to
            PHOENIX_COLLECTOR_ENDPOINT or a local Phoenix server.
    """
    from phoenix.otel import register

    collector_endpoint = endpoint or os.getenv(
        "PHOENIX_COLLECTOR_ENDPOINT",
        "http://localhost:6006/v1/traces"
    )

    tracer_provider = register(
        project_name=project_name,
        endpoint=collector_endpoint,
    )

    global _tracer
    _tracer = trace.get_tracer(TRACER_NAME, tracer_provider=tracer_provider)


def _serialize_value(value: Any) -> str:
    """Serialize a value to string for span attributes."""
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    try:
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, ensure_ascii=False, default=str)
        return str(value)
    except (TypeError, ValueError):
        return str(value)


def _record_input(span: Span, args: tuple, kwargs: dict, skip_self: bool) -> None:
    if skip_self:
        args = args[1:]
    if args:
        span.set_attribute("input.args", _serialize_value(args))
    if kwargs:
        span.set_attribute("input.kwargs", _serialize_value(kwargs))


def _record_error(span: Span, error: Exception) -> None:
    span.set_status(Status(StatusCode.ERROR, str(error)))
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))


def trace_operation(
    name: str | None = None,
    capture_input: bool = True,
    capture_output: bool = True,
) -> Callable[[F], F]:
    """Decorator that wraps a sync or async function in a span.

    Args:
        name: Span name. Defaults to "op.<function name>".
        capture_input: Record call arguments as span attributes.
        capture_output: Record the return value as a span attribute.

    Example:
        @trace_operation(name="sync.refresh_all")
        async def refresh_all(self) -> RefreshReport:
            ...
    """
    def decorator(func: F) -> F:
        span_name = name or f"op.{func.__name__}"
        params = list(inspect.signature(func).parameters)
        skip_self = bool(params) and params[0] == "self"

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with get_tracer().start_as_current_span(span_name) as span:
                span.set_attribute("operation.name", func.__qualname__)
                if capture_input:
                    _record_input(span, args, kwargs, skip_self)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise
                if capture_output and result is not None:
                    span.set_attribute("output.result", _serialize_value(result))
                span.set_status(Status(StatusCode.OK))
                return result

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with get_tracer().start_as_current_span(span_name) as span:
                span.set_attribute("operation.name", func.__qualname__)
                if capture_input:
                    _record_input(span, args, kwargs, skip_self)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise
                if capture_output and result is not None:
                    span.set_attribute("output.result", _serialize_value(result))
                span.set_status(Status(StatusCode.OK))
                return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
