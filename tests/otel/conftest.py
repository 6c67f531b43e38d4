"""Test fixtures for coluber.otel."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Tracer
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from coluber.otel import with_text_map_propagator, with_tracer


@pytest.fixture
def span_exporter():
    """Create an in-memory span exporter for testing."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    """Create a tracer provider with in-memory exporter."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def tracer(tracer_provider: TracerProvider) -> Tracer:
    return tracer_provider.get_tracer("coluber.tests")


@pytest.fixture
def propagator() -> TraceContextTextMapPropagator:
    """W3C traceparent propagator, independent of the global setting."""
    return TraceContextTextMapPropagator()


@pytest.fixture
def options(tracer: Tracer, propagator):
    """Options pointing the instrumentation at the in-memory provider."""
    return (with_tracer(tracer), with_text_map_propagator(propagator))
