"""OpenTelemetry tracing for coluber publishers and handlers."""

from coluber.otel.config import (
    PUBLISHER_TRACER_NAME,
    SUBSCRIBER_TRACER_NAME,
    Config,
    Option,
    new_config,
    with_span_attributes,
    with_text_map_propagator,
    with_tracer,
)
from coluber.otel.middleware import (
    TracingMiddleware,
    trace_handler,
    trace_no_publish_handler,
    tracing,
)
from coluber.otel.propagation import (
    MESSAGE_METADATA_NAME,
    MESSAGE_METADATA_TRACE_ID,
    MetadataCarrier,
    context_with_trace_id,
    extract_context,
    inject_context,
)
from coluber.otel.publisher import TracingPublisher

__all__ = [
    "MESSAGE_METADATA_NAME",
    "MESSAGE_METADATA_TRACE_ID",
    "PUBLISHER_TRACER_NAME",
    "SUBSCRIBER_TRACER_NAME",
    "Config",
    "MetadataCarrier",
    "Option",
    "TracingMiddleware",
    "TracingPublisher",
    "context_with_trace_id",
    "extract_context",
    "inject_context",
    "new_config",
    "trace_handler",
    "trace_no_publish_handler",
    "tracing",
    "with_span_attributes",
    "with_text_map_propagator",
    "with_tracer",
]
