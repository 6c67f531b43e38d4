"""Routing values carried in a message's causal context."""

from opentelemetry import context
from opentelemetry.context import Context

_HANDLER_NAME_KEY = context.create_key("coluber.handler_name")
_SUBSCRIBE_TOPIC_KEY = context.create_key("coluber.subscribe_topic")
_PUBLISHER_NAME_KEY = context.create_key("coluber.publisher_name")
_PUBLISH_TOPIC_KEY = context.create_key("coluber.publish_topic")


def _get(key: str, ctx: Context) -> str:
    value = context.get_value(key, ctx)
    return value if isinstance(value, str) else ""


def with_handler_name(ctx: Context, name: str) -> Context:
    return context.set_value(_HANDLER_NAME_KEY, name, ctx)


def handler_name_from_ctx(ctx: Context) -> str:
    """Name of the handler processing the message, or "" outside a router."""
    return _get(_HANDLER_NAME_KEY, ctx)


def with_subscribe_topic(ctx: Context, topic: str) -> Context:
    return context.set_value(_SUBSCRIBE_TOPIC_KEY, topic, ctx)


def subscribe_topic_from_ctx(ctx: Context) -> str:
    """Topic the message was received from, or ""."""
    return _get(_SUBSCRIBE_TOPIC_KEY, ctx)


def with_publisher_name(ctx: Context, name: str) -> Context:
    return context.set_value(_PUBLISHER_NAME_KEY, name, ctx)


def publisher_name_from_ctx(ctx: Context) -> str:
    """Name of the publisher a handler's output is sent with, or ""."""
    return _get(_PUBLISHER_NAME_KEY, ctx)


def with_publish_topic(ctx: Context, topic: str) -> Context:
    return context.set_value(_PUBLISH_TOPIC_KEY, topic, ctx)


def publish_topic_from_ctx(ctx: Context) -> str:
    return _get(_PUBLISH_TOPIC_KEY, ctx)
