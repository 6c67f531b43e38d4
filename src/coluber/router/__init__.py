"""coluber.router: Message routing layer."""

from coluber.router.context import (
    handler_name_from_ctx,
    publish_topic_from_ctx,
    publisher_name_from_ctx,
    subscribe_topic_from_ctx,
    with_handler_name,
    with_publish_topic,
    with_publisher_name,
    with_subscribe_topic,
)
from coluber.router.handler import Handler
from coluber.router.router import Router, struct_name
from coluber.router.types import HandlerFunc, Middleware, NoPublishHandlerFunc

__all__ = [
    "Handler",
    "HandlerFunc",
    "Middleware",
    "NoPublishHandlerFunc",
    "Router",
    "handler_name_from_ctx",
    "publish_topic_from_ctx",
    "publisher_name_from_ctx",
    "struct_name",
    "subscribe_topic_from_ctx",
    "with_handler_name",
    "with_publish_topic",
    "with_publisher_name",
    "with_subscribe_topic",
]
