"""Handler configuration."""

from dataclasses import dataclass, field

from coluber.pubsub import Publisher, Subscriber
from coluber.router.types import HandlerFunc, Middleware


@dataclass
class Handler:
    """Configuration for a message handler."""

    name: str
    subscriber: Subscriber
    subscribe_topic: str
    handler_func: HandlerFunc
    publisher: Publisher | None = None
    publish_topic: str | None = None
    middlewares: list[Middleware] = field(default_factory=list)
