"""Tracing publisher decorator."""

from typing import Any

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from coluber.otel.config import PUBLISHER_TRACER_NAME, Option, new_config
from coluber.otel.propagation import MESSAGE_METADATA_NAME, inject_context
from coluber.otel.semconv import (
    DESTINATION_KIND_TOPIC,
    ERROR_TYPE,
    MESSAGE_TYPE,
    MESSAGING_DESTINATION,
    MESSAGING_DESTINATION_KIND,
    MESSAGING_MESSAGE_ID,
    MESSAGING_OPERATION,
    OPERATION_PROCESS,
)
from coluber.pubsub import Message, Publisher
from coluber.router import publisher_name_from_ctx, struct_name


class TracingPublisher:
    """Publisher wrapper that creates spans and injects trace context.

    Wraps a publisher to:
    1. Create a PRODUCER span for every message in a publish call
    2. Inject each span's context into its message's metadata
    3. Record the wrapped publisher's exception on all spans of the batch

    Messages are passed through as the same objects, in the same order, in a
    single call to the wrapped publisher. Only ``metadata`` and ``context``
    are touched.

    Example:
        publisher = TracingPublisher(
            my_publisher, with_span_attributes(("team", "billing"))
        )
        await publisher.publish("topic", message)  # Span created, context injected
    """

    def __init__(
        self,
        publisher: Publisher,
        *options: Option,
        name: str | None = None,
    ) -> None:
        """Initialize the decorator.

        Args:
            publisher: Publisher to delegate to.
            *options: Instrumentation options, applied in order.
            name: Span name used when a message's context carries no
                publisher name. Derived from ``publisher`` if not set.
        """
        self._publisher = publisher
        self._name = name or struct_name(publisher)
        self._config = new_config(*options)

    @property
    def name(self) -> str:
        return self._name

    def __str__(self) -> str:
        return self._name

    async def publish(self, topic: str, *messages: Message) -> None:
        """Publish messages with tracing."""
        if not messages:
            await self._publisher.publish(topic)
            return

        tracer = self._config.get_tracer(PUBLISHER_TRACER_NAME)
        spans: list[Span] = []
        try:
            for msg in messages:
                self._start_span(tracer, topic, msg, spans)
            await self._publisher.publish(topic, *messages)
        except Exception as e:
            for span in spans:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.set_attribute(ERROR_TYPE, type(e).__name__)
            raise
        finally:
            for span in spans:
                span.end()

    def _start_span(
        self, tracer: trace.Tracer, topic: str, msg: Message, spans: list[Span]
    ) -> None:
        span_name = publisher_name_from_ctx(msg.context) or self._name

        attributes: dict[str, Any] = {
            MESSAGING_DESTINATION_KIND: DESTINATION_KIND_TOPIC,
            MESSAGING_DESTINATION: topic,
            MESSAGING_OPERATION: OPERATION_PROCESS,
            MESSAGING_MESSAGE_ID: str(msg.uuid),
        }
        msg_name = msg.metadata.get(MESSAGE_METADATA_NAME)
        if msg_name:
            attributes[MESSAGE_TYPE] = msg_name
        attributes.update(self._config.span_attributes)

        parent_ctx = _with_current_span(msg.context)
        span = tracer.start_span(
            span_name,
            context=parent_ctx,
            kind=SpanKind.PRODUCER,
            attributes=attributes,
        )
        spans.append(span)
        msg.context = trace.set_span_in_context(span, parent_ctx)
        inject_context(msg, propagator=self._config.propagator())

    async def close(self) -> None:
        """Close the underlying publisher."""
        await self._publisher.close()

    async def __aenter__(self) -> "TracingPublisher":
        await self._publisher.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self._publisher.__aexit__(exc_type, exc_val, exc_tb)


def _with_current_span(ctx: Context) -> Context:
    # Messages created outside a handler carry no span; parent them to the
    # active span instead.
    if trace.get_current_span(ctx).get_span_context().is_valid:
        return ctx
    return trace.set_span_in_context(trace.get_current_span(), ctx)
