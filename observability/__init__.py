"""Observability module for the place weather tracker.

OpenTelemetry spans exported to Arize Phoenix.
"""

from .instrumentation import init_tracing, trace_operation

__all__ = ["init_tracing", "trace_operation"]
