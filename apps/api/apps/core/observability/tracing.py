"""
Tracing support (OpenTelemetry spans plus span log lines).

Provides a context manager for manual span creation around critical
operations (settlement, FIFO allocation, summary recompute). Without a
configured SDK the OpenTelemetry API hands out non-recording spans, so
the log lines remain the baseline trace.
"""
import logging
import time
from contextlib import contextmanager
from typing import Optional, Dict, Any

from opentelemetry import trace
from opentelemetry.trace import SpanKind

logger = logging.getLogger(__name__)

tracer = trace.get_tracer(__name__)

SPAN_KINDS = {
    'server': SpanKind.SERVER,
    'client': SpanKind.CLIENT,
    'internal': SpanKind.INTERNAL,
}


@contextmanager
def trace_span(
    name: str,
    kind: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None
):
    """
    Context manager for creating trace spans.

    Opens an OpenTelemetry span, copies ``attributes`` onto it and logs
    start, completion and failure with their duration.

    Args:
        name: Span name
        kind: Span kind (server, client, internal)
        attributes: Span attributes

    Usage:
        with trace_span('complete_sale', attributes={'tab_id': tab_id}):
            # ... operation ...
    """
    start_time = time.time()
    span_kind = SPAN_KINDS.get(kind, SpanKind.INTERNAL)

    with tracer.start_as_current_span(name, kind=span_kind) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        logger.debug(
            f'Span started: {name}',
            extra={
                'event': 'span_start',
                'span_name': name,
                'attributes': attributes or {}
            }
        )

        try:
            yield span
        except Exception as e:
            span.set_attribute('error', True)
            span.set_attribute('error.type', e.__class__.__name__)
            span.set_attribute('error.message', str(e))
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                f'Span failed: {name}',
                extra={
                    'event': 'span_error',
                    'span_name': name,
                    'duration_ms': round(duration_ms, 2),
                    'error_type': e.__class__.__name__,
                    'attributes': attributes or {}
                }
            )
            raise
        else:
            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                f'Span completed: {name}',
                extra={
                    'event': 'span_complete',
                    'span_name': name,
                    'duration_ms': round(duration_ms, 2),
                    'attributes': attributes or {}
                }
            )


def add_span_attribute(key: str, value: Any):
    """Add attribute to the current span when it is recording."""
    span = trace.get_current_span()
    if span and span.is_recording():
        span.set_attribute(key, value)
