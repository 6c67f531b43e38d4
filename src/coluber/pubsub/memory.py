"""In-memory pub/sub implementation."""

from collections import defaultdict
from collections.abc import AsyncIterator

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from coluber.pubsub.message import Message

DEFAULT_BUFFER_SIZE = 100


class InMemoryPubSub:
    """Broadcast pub/sub backed by anyio memory object streams.

    Every subscriber of a topic receives its own copy of each message.
    Messages published to a topic without subscribers are dropped.
    Nothing is persisted and nacked messages are not redelivered.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self._buffer_size = buffer_size
        self._subscribers: dict[str, list[MemoryObjectSendStream[Message]]] = (
            defaultdict(list)
        )
        self._closed = False

    async def publish(self, topic: str, *messages: Message) -> None:
        if self._closed:
            msg = "PubSub is closed"
            raise RuntimeError(msg)

        for message in messages:
            for stream in list(self._subscribers.get(topic, ())):
                try:
                    await stream.send(message.copy())
                except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                    self._unsubscribe(topic, stream)

    def subscribe(self, topic: str) -> AsyncIterator[Message]:
        if self._closed:
            msg = "PubSub is closed"
            raise RuntimeError(msg)

        send, receive = anyio.create_memory_object_stream[Message](self._buffer_size)
        self._subscribers[topic].append(send)
        return self._iterate(topic, send, receive)

    async def _iterate(
        self,
        topic: str,
        send: MemoryObjectSendStream[Message],
        receive: MemoryObjectReceiveStream[Message],
    ) -> AsyncIterator[Message]:
        try:
            async with receive:
                async for message in receive:
                    yield message
        finally:
            self._unsubscribe(topic, send)
            send.close()

    def _unsubscribe(self, topic: str, stream: MemoryObjectSendStream[Message]) -> None:
        streams = self._subscribers.get(topic)
        if streams and stream in streams:
            streams.remove(stream)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for streams in self._subscribers.values():
            for stream in streams:
                stream.close()
        self._subscribers.clear()

    async def __aenter__(self) -> "InMemoryPubSub":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
