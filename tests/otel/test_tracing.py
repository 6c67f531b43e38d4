"""Tests for the tracing middleware."""

import logging

import pytest
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode

from coluber.otel import (
    MESSAGE_METADATA_TRACE_ID,
    TracingMiddleware,
    trace_handler,
    trace_no_publish_handler,
    tracing,
    with_span_attributes,
    with_text_map_propagator,
    with_tracer,
)
from coluber.pubsub import Message
from coluber.router import (
    handler_name_from_ctx,
    with_handler_name,
    with_subscribe_topic,
)

pytestmark = pytest.mark.anyio

TRACE_ID_HEX = "4bf92f3577b34da6a3ce929d0e0e4736"
SPAN_ID_HEX = "00f067aa0ba902b7"
OTHER_TRACE_ID_HEX = "0af7651916cd43dd8448eb211c80319c"


def routed(msg: Message, handler_name: str, topic: str) -> Message:
    """Stamp routing values the way the Router does."""
    msg.context = with_subscribe_topic(
        with_handler_name(msg.context, handler_name), topic
    )
    return msg


async def noop(msg: Message) -> list[Message] | None:
    return None


class TestTraceHandler:
    async def test_creates_consumer_span(
        self,
        options,
        span_exporter: InMemorySpanExporter,
    ):
        """Handler wrapper creates a CONSUMER span."""
        wrapped = trace_handler(noop, *options)
        await wrapped(Message(payload=b"test"))

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].kind == SpanKind.CONSUMER
        assert spans[0].name == "receive"

    async def test_span_named_after_handler(self, options, span_exporter):
        wrapped = trace_handler(noop, *options)
        await wrapped(routed(Message(payload=b"x"), "enrich-order", "orders"))

        span = span_exporter.get_finished_spans()[0]
        assert span.name == "enrich-order"
        assert span.attributes is not None
        assert span.attributes["messaging.destination"] == "orders"

    async def test_span_named_after_topic_without_handler_name(
        self, options, span_exporter
    ):
        msg = Message(payload=b"x", context=with_subscribe_topic(Context(), "orders"))
        await trace_handler(noop, *options)(msg)

        assert span_exporter.get_finished_spans()[0].name == "receive orders"

    async def test_span_attributes(self, options, span_exporter):
        msg = routed(Message(payload=b"x"), "h", "orders")
        await trace_handler(noop, *options)(msg)

        attributes = span_exporter.get_finished_spans()[0].attributes
        assert attributes is not None
        assert attributes["messaging.destination_kind"] == "topic"
        assert attributes["messaging.destination"] == "orders"
        assert attributes["messaging.operation"] == "receive"
        assert attributes["messaging.message_id"] == str(msg.uuid)

    async def test_message_type_only_for_non_empty_name(self, options, span_exporter):
        wrapped = trace_handler(noop, *options)
        await wrapped(Message(payload=b"x", metadata={"name": "OrderPlaced"}))
        await wrapped(Message(payload=b"x", metadata={"name": ""}))
        await wrapped(Message(payload=b"x"))

        with_name, empty_name, without_name = span_exporter.get_finished_spans()
        assert with_name.attributes is not None
        assert with_name.attributes["message.type"] == "OrderPlaced"
        assert "message.type" not in (empty_name.attributes or {})
        assert "message.type" not in (without_name.attributes or {})

    async def test_configured_attributes_applied_last(
        self, tracer, propagator, span_exporter
    ):
        wrapped = trace_handler(
            noop,
            with_tracer(tracer),
            with_text_map_propagator(propagator),
            with_span_attributes({"messaging.operation": "process", "team": "ops"}),
        )
        await wrapped(Message(payload=b"x"))

        attributes = span_exporter.get_finished_spans()[0].attributes
        assert attributes is not None
        assert attributes["messaging.operation"] == "process"
        assert attributes["team"] == "ops"

    async def test_continues_producer_trace(self, options, span_exporter):
        """Parent is extracted from the traceparent header."""
        msg = Message(
            payload=b"x",
            metadata={"traceparent": f"00-{TRACE_ID_HEX}-{SPAN_ID_HEX}-01"},
        )
        await trace_handler(noop, *options)(msg)

        span = span_exporter.get_finished_spans()[0]
        assert span.context.trace_id == int(TRACE_ID_HEX, 16)
        assert span.parent is not None
        assert span.parent.span_id == int(SPAN_ID_HEX, 16)
        assert span.parent.is_remote

    async def test_without_headers_starts_new_trace(
        self, options, tracer, span_exporter
    ):
        """The ambient span is not used as parent on the consumer side."""
        with tracer.start_as_current_span("unrelated"):
            await trace_handler(noop, *options)(Message(payload=b"x"))

        consumer = next(
            s for s in span_exporter.get_finished_spans() if s.kind == SpanKind.CONSUMER
        )
        assert consumer.parent is None

    async def test_handler_sees_consumer_span(self, options, span_exporter):
        """msg.context and the current span both hold the consumer span."""
        seen: dict[str, trace.SpanContext] = {}

        async def handler(msg: Message) -> list[Message] | None:
            seen["message"] = trace.get_current_span(msg.context).get_span_context()
            seen["current"] = trace.get_current_span().get_span_context()
            return None

        await trace_handler(handler, *options)(Message(payload=b"x"))

        span_context = span_exporter.get_finished_spans()[0].get_span_context()
        assert seen["message"] == span_context
        assert seen["current"] == span_context

    async def test_handler_keeps_routing_values(self, options):
        seen: list[Message] = []

        async def handler(msg: Message) -> list[Message] | None:
            seen.append(msg)
            return None

        await trace_handler(handler, *options)(
            routed(Message(payload=b"x"), "h", "orders")
        )

        assert handler_name_from_ctx(seen[0].context) == "h"

    async def test_returns_handler_result_unchanged(self, options):
        output = [Message(payload=b"out")]

        async def handler(msg: Message) -> list[Message] | None:
            return output

        result = await trace_handler(handler, *options)(Message(payload=b"x"))

        assert result is output

    async def test_records_error_on_exception(self, options, span_exporter):
        """Span records error status on exception."""
        error = ValueError("test error")

        async def handler(msg: Message) -> list[Message] | None:
            raise error

        wrapped = trace_handler(handler, *options)

        with pytest.raises(ValueError) as exc_info:
            await wrapped(Message(payload=b"test"))

        assert exc_info.value is error
        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].status.status_code == StatusCode.ERROR
        assert spans[0].attributes is not None
        assert spans[0].attributes["error.type"] == "ValueError"
        assert [event.name for event in spans[0].events] == ["exception"]


class TestExplicitTraceId:
    async def test_uses_trace_id_from_metadata(self, options, span_exporter):
        wrapped = trace_handler(
            noop, *options, trace_id_metadata_key=MESSAGE_METADATA_TRACE_ID
        )
        await wrapped(Message(payload=b"x", metadata={"trace_id": TRACE_ID_HEX}))

        span = span_exporter.get_finished_spans()[0]
        assert span.context.trace_id == int(TRACE_ID_HEX, 16)
        assert span.context.trace_flags.sampled
        assert span.parent is not None
        assert span.parent.is_remote

    async def test_ignores_traceparent(self, options, span_exporter):
        """Only the trace id field is read in this mode."""
        wrapped = trace_handler(
            noop, *options, trace_id_metadata_key=MESSAGE_METADATA_TRACE_ID
        )
        await wrapped(
            Message(
                payload=b"x",
                metadata={
                    "trace_id": TRACE_ID_HEX,
                    "traceparent": f"00-{OTHER_TRACE_ID_HEX}-{SPAN_ID_HEX}-01",
                },
            )
        )

        span = span_exporter.get_finished_spans()[0]
        assert span.context.trace_id == int(TRACE_ID_HEX, 16)

    async def test_malformed_trace_id_does_not_block_handler(
        self, options, span_exporter, caplog
    ):
        caplog.set_level(logging.WARNING, logger="coluber.otel")
        handled: list[Message] = []

        async def handler(msg: Message) -> list[Message] | None:
            handled.append(msg)
            return None

        wrapped = trace_handler(
            handler, *options, trace_id_metadata_key=MESSAGE_METADATA_TRACE_ID
        )
        result = await wrapped(Message(payload=b"x", metadata={"trace_id": "not-hex"}))

        assert result is None
        assert len(handled) == 1
        span = span_exporter.get_finished_spans()[0]
        assert span.parent is None
        assert "Unable to extract trace id" in caplog.text

    async def test_custom_metadata_key(self, options, span_exporter):
        wrapped = trace_handler(noop, *options, trace_id_metadata_key="x-trace")
        await wrapped(Message(payload=b"x", metadata={"x-trace": TRACE_ID_HEX}))

        span = span_exporter.get_finished_spans()[0]
        assert span.context.trace_id == int(TRACE_ID_HEX, 16)


class TestTraceNoPublishHandler:
    async def test_creates_span_and_returns_none(self, options, span_exporter):
        calls: list[Message] = []

        async def handler(msg: Message) -> None:
            calls.append(msg)

        result = await trace_no_publish_handler(handler, *options)(
            routed(Message(payload=b"x"), "audit", "orders")
        )

        assert result is None
        assert len(calls) == 1
        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].name == "audit"

    async def test_propagates_error(self, options, span_exporter):
        async def handler(msg: Message) -> None:
            raise RuntimeError("audit failed")

        with pytest.raises(RuntimeError, match="audit failed"):
            await trace_no_publish_handler(handler, *options)(Message(payload=b"x"))

        assert span_exporter.get_finished_spans()[0].status.status_code == (
            StatusCode.ERROR
        )


class TestMiddlewareFactories:
    async def test_tracing_middleware(self, options, span_exporter):
        wrapped = tracing(*options)(noop)
        await wrapped(Message(payload=b"x"))

        assert len(span_exporter.get_finished_spans()) == 1

    async def test_class_middleware(self, options, span_exporter):
        """TracingMiddleware class wraps handlers the same way."""
        middleware = TracingMiddleware(
            *options, trace_id_metadata_key=MESSAGE_METADATA_TRACE_ID
        )
        wrapped = middleware(noop)
        await wrapped(
            routed(
                Message(payload=b"x", metadata={"trace_id": TRACE_ID_HEX}),
                "h",
                "orders",
            )
        )

        span = span_exporter.get_finished_spans()[0]
        assert span.name == "h"
        assert span.context.trace_id == int(TRACE_ID_HEX, 16)
