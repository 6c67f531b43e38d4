"""Message type."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from opentelemetry.context import Context

AckFunc = Callable[[], Awaitable[None]]


@dataclass
class Message:
    """A unit of data travelling through a topic.

    Attributes:
        payload: Opaque message body.
        metadata: String key/value headers. Mutable, travels with the message.
        uuid: Unique message identifier.
        context: Causal context attached to the message (trace context,
            handler name, topic). Immutable; replace it to extend it.
    """

    payload: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    uuid: UUID = field(default_factory=uuid4)
    context: Context = field(default_factory=Context, repr=False, compare=False)
    _ack_func: AckFunc | None = field(default=None, repr=False, compare=False)
    _nack_func: AckFunc | None = field(default=None, repr=False, compare=False)
    _acked: bool = field(default=False, init=False, repr=False, compare=False)
    _nacked: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def acked(self) -> bool:
        return self._acked

    @property
    def nacked(self) -> bool:
        return self._nacked

    async def ack(self) -> None:
        """Acknowledge successful processing."""
        if self._acked:
            msg = f"Message {self.uuid} already acked"
            raise ValueError(msg)
        if self._nacked:
            msg = f"Message {self.uuid} has been nacked"
            raise ValueError(msg)
        self._acked = True
        if self._ack_func is not None:
            await self._ack_func()

    async def nack(self) -> None:
        """Signal that processing failed."""
        if self._nacked:
            msg = f"Message {self.uuid} already nacked"
            raise ValueError(msg)
        if self._acked:
            msg = f"Message {self.uuid} has been acked"
            raise ValueError(msg)
        self._nacked = True
        if self._nack_func is not None:
            await self._nack_func()

    def copy(self) -> "Message":
        """Return an unacked copy with the same uuid, payload and metadata.

        The copy starts with an empty context, like a message read off a wire.
        """
        return Message(
            payload=self.payload,
            metadata=dict(self.metadata),
            uuid=self.uuid,
        )
