"""coluber: OpenTelemetry tracing across pub/sub boundaries.

Import from subpackages:
    from coluber.pubsub import Message, Publisher, Subscriber, InMemoryPubSub
    from coluber.router import Router
    from coluber.otel import TracingPublisher, tracing
"""

__version__ = "0.1.0"
