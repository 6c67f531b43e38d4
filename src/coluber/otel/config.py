"""Instrumentation options shared by the publisher decorator and middleware."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from opentelemetry import propagate, trace
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import Tracer
from opentelemetry.util.types import AttributeValue

PUBLISHER_TRACER_NAME = "coluber.otel.publisher"
SUBSCRIBER_TRACER_NAME = "coluber.otel.subscriber"

SpanAttributes = tuple[tuple[str, AttributeValue], ...]


@dataclass
class _Draft:
    span_attributes: SpanAttributes = ()
    text_map_propagator: TextMapPropagator | None = None
    tracer: Tracer | None = None


Option = Callable[[_Draft], None]


@dataclass(frozen=True)
class Config:
    """Immutable instrumentation settings.

    Unset propagator and tracer fall back to the OpenTelemetry globals,
    looked up on every call so later changes to the globals are honored.
    """

    span_attributes: SpanAttributes = field(default=())
    text_map_propagator: TextMapPropagator | None = None
    tracer: Tracer | None = None

    def propagator(self) -> TextMapPropagator:
        if self.text_map_propagator is not None:
            return self.text_map_propagator
        return propagate.get_global_textmap()

    def get_tracer(self, instrumentation_name: str) -> Tracer:
        if self.tracer is not None:
            return self.tracer
        return trace.get_tracer(instrumentation_name)


def new_config(*options: Option) -> Config:
    """Apply options in order and freeze the result."""
    draft = _Draft()
    for option in options:
        option(draft)
    return Config(
        span_attributes=draft.span_attributes,
        text_map_propagator=draft.text_map_propagator,
        tracer=draft.tracer,
    )


def with_span_attributes(
    *attributes: tuple[str, AttributeValue] | Mapping[str, AttributeValue],
) -> Option:
    """Add attributes to every generated span.

    Accepts ``(key, value)`` pairs and/or mappings, kept in the given order.
    Replaces attributes set by an earlier option.

    Example:
        with_span_attributes(("service.role", "billing"), {"team": "payments"})
    """
    pairs: list[tuple[str, AttributeValue]] = []
    for attribute in attributes:
        if isinstance(attribute, Mapping):
            pairs.extend(attribute.items())
        else:
            pairs.append(attribute)
    frozen = tuple(pairs)

    def option(draft: _Draft) -> None:
        draft.span_attributes = frozen

    return option


def with_text_map_propagator(propagator: TextMapPropagator) -> Option:
    """Use the given propagator instead of the global one."""

    def option(draft: _Draft) -> None:
        draft.text_map_propagator = propagator

    return option


def with_tracer(tracer: Tracer) -> Option:
    """Use the given tracer instead of one from the global provider."""

    def option(draft: _Draft) -> None:
        draft.tracer = tracer

    return option
