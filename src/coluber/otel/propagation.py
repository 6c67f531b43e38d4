"""Trace context propagation via message metadata."""

import logging
import random
import re

from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import Getter, Setter, TextMapPropagator
from opentelemetry.trace import (
    INVALID_SPAN_ID,
    NonRecordingSpan,
    SpanContext,
    TraceFlags,
)

from coluber.pubsub import Message

logger = logging.getLogger("coluber.otel")

# Metadata key holding a hex trace id, read by the middleware in explicit-id mode.
MESSAGE_METADATA_TRACE_ID = "trace_id"
# Metadata key holding a human readable message type.
MESSAGE_METADATA_NAME = "name"

_TRACE_ID_HEX = re.compile(r"[0-9a-f]{32}")


class MetadataCarrier:
    """Key/value view over message metadata for propagators.

    Writes go straight to the wrapped metadata dict.
    """

    def __init__(self, metadata: dict[str, str]) -> None:
        self._metadata = metadata

    def get(self, key: str) -> str:
        return self._metadata.get(key, "")

    def set(self, key: str, value: str) -> None:
        self._metadata[key] = value

    def keys(self) -> list[str]:
        return list(self._metadata)


class _CarrierGetter(Getter[MetadataCarrier]):
    def get(self, carrier: MetadataCarrier, key: str) -> list[str] | None:
        value = carrier.get(key)
        return [value] if value else None

    def keys(self, carrier: MetadataCarrier) -> list[str]:
        return carrier.keys()


class _CarrierSetter(Setter[MetadataCarrier]):
    def set(self, carrier: MetadataCarrier, key: str, value: str) -> None:
        carrier.set(key, value)


carrier_getter = _CarrierGetter()
carrier_setter = _CarrierSetter()


def inject_context(
    message: Message,
    context: Context | None = None,
    propagator: TextMapPropagator | None = None,
) -> None:
    """Inject trace context into message metadata in place.

    Args:
        message: Message whose metadata receives the propagation headers.
        context: Context to inject. Defaults to the message's own context.
        propagator: Propagator to use. Defaults to the global one.
    """
    ctx = message.context if context is None else context
    textmap = propagator or propagate.get_global_textmap()
    textmap.inject(
        MetadataCarrier(message.metadata), context=ctx, setter=carrier_setter
    )


def extract_context(
    message: Message,
    propagator: TextMapPropagator | None = None,
) -> Context:
    """Extract trace context from message metadata.

    The result extends the message's own context, so values set by the
    router survive. Returns that context unchanged if nothing is found.
    """
    textmap = propagator or propagate.get_global_textmap()
    return textmap.extract(
        MetadataCarrier(message.metadata),
        context=message.context,
        getter=carrier_getter,
    )


def parse_trace_id(value: str) -> int | None:
    """Parse a 32 character lower-case hex trace id. Zero is invalid."""
    if not _TRACE_ID_HEX.fullmatch(value):
        return None
    trace_id = int(value, 16)
    return trace_id or None


def context_with_trace_id(ctx: Context, trace_id_hex: str) -> Context:
    """Return ``ctx`` with a sampled remote parent in the given trace.

    Only the trace id is known, so the parent gets a random span id.
    If the value cannot be parsed the context is returned unchanged.
    """
    if not trace_id_hex:
        logger.debug("No trace id in message metadata")
        return ctx

    trace_id = parse_trace_id(trace_id_hex)
    if trace_id is None:
        logger.warning("Unable to extract trace id from %r", trace_id_hex)
        return ctx

    span_context = SpanContext(
        trace_id=trace_id,
        span_id=_random_span_id(),
        is_remote=True,
        trace_flags=TraceFlags(TraceFlags.SAMPLED),
    )
    return trace.set_span_in_context(NonRecordingSpan(span_context), ctx)


def _random_span_id() -> int:
    span_id = random.getrandbits(64)
    while span_id == INVALID_SPAN_ID:
        span_id = random.getrandbits(64)
    return span_id
