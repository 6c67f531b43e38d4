"""Tracing middleware for the coluber Router."""

from typing import Any

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from coluber.otel.config import SUBSCRIBER_TRACER_NAME, Config, Option, new_config
from coluber.otel.propagation import (
    MESSAGE_METADATA_NAME,
    context_with_trace_id,
    extract_context,
)
from coluber.otel.semconv import (
    DESTINATION_KIND_TOPIC,
    ERROR_TYPE,
    MESSAGE_TYPE,
    MESSAGING_DESTINATION,
    MESSAGING_DESTINATION_KIND,
    MESSAGING_MESSAGE_ID,
    MESSAGING_OPERATION,
    OPERATION_RECEIVE,
)
from coluber.pubsub import Message
from coluber.router import (
    HandlerFunc,
    Middleware,
    NoPublishHandlerFunc,
    handler_name_from_ctx,
    subscribe_topic_from_ctx,
)


def trace_handler(
    handler: HandlerFunc,
    *options: Option,
    trace_id_metadata_key: str | None = None,
) -> HandlerFunc:
    """Wrap a handler so every received message gets a CONSUMER span.

    The span continues the producer's trace. By default the parent is
    extracted from the message metadata with the configured propagator.
    When ``trace_id_metadata_key`` is set, only that metadata field is read
    instead: a hex trace id that becomes a sampled remote parent. An
    unparseable id is logged and the message is processed without a parent.

    Before the handler runs, ``msg.context`` is replaced with the context
    holding the consumer span, so publishing from inside the handler creates
    child spans.

    Args:
        handler: Handler to wrap.
        *options: Instrumentation options, applied in order.
        trace_id_metadata_key: Enables explicit trace id mode (see
            ``MESSAGE_METADATA_TRACE_ID``).
    """
    return _traced(handler, new_config(*options), trace_id_metadata_key)


def _traced(
    handler: HandlerFunc,
    config: Config,
    trace_id_metadata_key: str | None,
) -> HandlerFunc:
    async def traced(msg: Message) -> list[Message] | None:
        tracer = config.get_tracer(SUBSCRIBER_TRACER_NAME)
        if trace_id_metadata_key:
            parent_ctx = context_with_trace_id(
                msg.context, msg.metadata.get(trace_id_metadata_key, "")
            )
        else:
            parent_ctx = extract_context(msg, config.propagator())

        span = _start_span(tracer, config, msg, parent_ctx)
        msg.context = trace.set_span_in_context(span, parent_ctx)

        with trace.use_span(
            span,
            end_on_exit=True,
            record_exception=False,
            set_status_on_exception=False,
        ):
            try:
                return await handler(msg)
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.set_attribute(ERROR_TYPE, type(e).__name__)
                raise

    return traced


def _start_span(
    tracer: trace.Tracer,
    config: Config,
    msg: Message,
    parent_ctx: Context,
) -> Span:
    topic = subscribe_topic_from_ctx(msg.context)
    span_name = handler_name_from_ctx(msg.context)
    if not span_name:
        span_name = f"receive {topic}" if topic else "receive"

    attributes: dict[str, Any] = {
        MESSAGING_DESTINATION_KIND: DESTINATION_KIND_TOPIC,
        MESSAGING_DESTINATION: topic,
        MESSAGING_OPERATION: OPERATION_RECEIVE,
        MESSAGING_MESSAGE_ID: str(msg.uuid),
    }
    msg_name = msg.metadata.get(MESSAGE_METADATA_NAME)
    if msg_name:
        attributes[MESSAGE_TYPE] = msg_name
    attributes.update(config.span_attributes)

    return tracer.start_span(
        span_name,
        context=parent_ctx,
        kind=SpanKind.CONSUMER,
        attributes=attributes,
    )


def trace_no_publish_handler(
    handler: NoPublishHandlerFunc,
    *options: Option,
    trace_id_metadata_key: str | None = None,
) -> NoPublishHandlerFunc:
    """Like :func:`trace_handler`, for handlers that produce no messages."""

    async def adapter(msg: Message) -> list[Message] | None:
        await handler(msg)
        return None

    traced = trace_handler(
        adapter, *options, trace_id_metadata_key=trace_id_metadata_key
    )

    async def wrapper(msg: Message) -> None:
        await traced(msg)

    return wrapper


def tracing(
    *options: Option,
    trace_id_metadata_key: str | None = None,
) -> Middleware:
    """Middleware that creates CONSUMER spans for message processing.

    Example:
        router.add_middleware(tracing())

        # Correlate on a plain trace id header instead of traceparent:
        router.add_middleware(tracing(trace_id_metadata_key=MESSAGE_METADATA_TRACE_ID))
    """
    config = new_config(*options)

    def middleware(next_handler: HandlerFunc) -> HandlerFunc:
        return _traced(next_handler, config, trace_id_metadata_key)

    return middleware


class TracingMiddleware:
    """Class-based tracing middleware.

    Example:
        middleware = TracingMiddleware(with_span_attributes(("team", "billing")))
        router.add_middleware(middleware)
    """

    def __init__(
        self,
        *options: Option,
        trace_id_metadata_key: str | None = None,
    ) -> None:
        self._config = new_config(*options)
        self._trace_id_metadata_key = trace_id_metadata_key

    def __call__(self, next_handler: HandlerFunc) -> HandlerFunc:
        return _traced(next_handler, self._config, self._trace_id_metadata_key)
