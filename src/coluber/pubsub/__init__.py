"""coluber.pubsub: Core pub/sub abstractions."""

from coluber.pubsub.memory import InMemoryPubSub
from coluber.pubsub.message import Message
from coluber.pubsub.publisher import Publisher
from coluber.pubsub.subscriber import Subscriber

__all__ = ["InMemoryPubSub", "Message", "Publisher", "Subscriber"]
