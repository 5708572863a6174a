"""Span helpers."""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run a block inside a span.

    Attributes are stringified onto the span. An exception escaping the block
    marks the span as failed and is re-raised.

    Example:
        >>> with trace_operation("reconcile", target="customers") as span:
        ...     rows = engine.reconcile(...)
        ...     span.set_attribute("rows_affected", rows)
    """
    with get_tracer().start_as_current_span(
        operation_name, kind=kind, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error.type", type(e).__name__)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def add_span_event(name: str, **attributes):
    """Add an event to the current span, if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes={k: str(v) for k, v in attributes.items()})
