"""
Distributed tracing using OpenTelemetry.

Instruments merge planning and execution, staging loads and metadata
lookups.
"""

from .spans import add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_event",
]
