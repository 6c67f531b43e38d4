"""Router: connects subscribers, handlers and publishers."""

import logging

import anyio

from coluber.pubsub import Message, Publisher, Subscriber
from coluber.router.context import (
    with_handler_name,
    with_publish_topic,
    with_publisher_name,
    with_subscribe_topic,
)
from coluber.router.handler import Handler
from coluber.router.types import HandlerFunc, Middleware, NoPublishHandlerFunc

logger = logging.getLogger("coluber.router")


def struct_name(obj: object) -> str:
    """Describe an object by its own ``__str__`` or, failing that, its type."""
    if type(obj).__str__ is not object.__str__:
        return str(obj)
    return type(obj).__name__


class Router:
    """Routes messages from subscribers through handlers to publishers.

    Every message is stamped with the handler name, the subscribe topic and,
    for handlers that publish, the publisher name and publish topic before
    the middleware chain runs. Router-level middleware wraps handler-level
    middleware.

    Example:
        router = Router()
        router.add_middleware(tracing())
        router.add_handler(
            "enrich", "orders", pubsub, "orders.enriched", pubsub, enrich
        )
        await router.run()
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._middlewares: list[Middleware] = []
        self._stop: anyio.Event | None = None
        self._closing = False

    def add_middleware(self, middleware: Middleware) -> None:
        """Add middleware applied to every handler."""
        self._middlewares.append(middleware)

    def add_handler(
        self,
        name: str,
        subscribe_topic: str,
        subscriber: Subscriber,
        publish_topic: str,
        publisher: Publisher,
        handler_func: HandlerFunc,
        middlewares: list[Middleware] | None = None,
    ) -> None:
        """Add a handler whose returned messages are published."""
        self._add(
            Handler(
                name=name,
                subscriber=subscriber,
                subscribe_topic=subscribe_topic,
                handler_func=handler_func,
                publisher=publisher,
                publish_topic=publish_topic,
                middlewares=list(middlewares or []),
            )
        )

    def add_no_publisher_handler(
        self,
        name: str,
        subscribe_topic: str,
        subscriber: Subscriber,
        handler_func: NoPublishHandlerFunc,
        middlewares: list[Middleware] | None = None,
    ) -> None:
        """Add a handler that never produces messages."""

        async def adapter(msg: Message) -> list[Message] | None:
            await handler_func(msg)
            return None

        self._add(
            Handler(
                name=name,
                subscriber=subscriber,
                subscribe_topic=subscribe_topic,
                handler_func=adapter,
                middlewares=list(middlewares or []),
            )
        )

    def _add(self, handler: Handler) -> None:
        if handler.name in self._handlers:
            msg = f"Handler {handler.name!r} already registered"
            raise ValueError(msg)
        self._handlers[handler.name] = handler

    async def run(self) -> None:
        """Consume from every handler's subscriber until closed."""
        if self._stop is not None:
            msg = "Router is already running"
            raise RuntimeError(msg)
        self._stop = anyio.Event()
        if self._closing:
            return

        async with anyio.create_task_group() as tg:
            for handler in self._handlers.values():
                tg.start_soon(self._consume, handler)
            await self._stop.wait()
            tg.cancel_scope.cancel()

    async def close(self) -> None:
        """Stop consuming. Messages already in flight are cancelled."""
        self._closing = True
        if self._stop is not None:
            self._stop.set()

    async def _consume(self, handler: Handler) -> None:
        func = handler.handler_func
        for middleware in reversed(handler.middlewares):
            func = middleware(func)
        for middleware in reversed(self._middlewares):
            func = middleware(func)

        logger.debug(
            "Handler %s subscribed to %s", handler.name, handler.subscribe_topic
        )
        async for msg in handler.subscriber.subscribe(handler.subscribe_topic):
            await self._process(handler, func, msg)

    async def _process(self, handler: Handler, func: HandlerFunc, msg: Message) -> None:
        ctx = with_handler_name(msg.context, handler.name)
        ctx = with_subscribe_topic(ctx, handler.subscribe_topic)
        if handler.publisher is not None and handler.publish_topic:
            ctx = with_publisher_name(ctx, struct_name(handler.publisher))
            ctx = with_publish_topic(ctx, handler.publish_topic)
        msg.context = ctx

        try:
            produced = await func(msg)
            if produced and handler.publisher is not None and handler.publish_topic:
                for out in produced:
                    # Middleware may have replaced msg.context (e.g. with a span).
                    if not out.context:
                        out.context = msg.context
                await handler.publisher.publish(handler.publish_topic, *produced)
        except Exception:
            await msg.nack()
            raise
        await msg.ack()
