"""Handler and middleware types."""

from collections.abc import Awaitable, Callable

from coluber.pubsub import Message

HandlerFunc = Callable[[Message], Awaitable[list[Message] | None]]
NoPublishHandlerFunc = Callable[[Message], Awaitable[None]]
Middleware = Callable[[HandlerFunc], HandlerFunc]
