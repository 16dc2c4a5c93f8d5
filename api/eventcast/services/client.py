"""Per-connection subscriber state and its delivery queue."""

import asyncio
import logging
import uuid

from eventcast.services.message import Message

logger = logging.getLogger(__name__)

CLIENT_QUEUE_MAXSIZE = 64

# Marks end-of-stream in the delivery queue.
_CLOSED = object()


class Client:
    """One subscriber connection.

    Iterate with ``async for`` to receive queued messages in FIFO order; the
    iteration ends once the client is closed and the queue is drained.
    ``maxsize=0`` makes the queue unbounded.
    """

    def __init__(
        self,
        channel: str,
        last_event_id: str = "",
        maxsize: int = CLIENT_QUEUE_MAXSIZE,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.channel = channel
        self.last_event_id = last_event_id
        self._maxsize = maxsize
        # Unbounded underneath so the close marker always fits; the bound is
        # enforced in enqueue().
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._pending = 0
        self._closed = False

    def __repr__(self) -> str:
        return f"<Client {self.id} channel={self.channel!r}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of messages queued and not yet consumed."""
        return self._pending

    def enqueue(self, message: Message) -> bool:
        """Queue a message without blocking. Drop it if full or closed."""
        if self._closed:
            return False
        if self._maxsize and self._pending >= self._maxsize:
            logger.warning("SSE client %s queue full, dropping event", self.id)
            return False
        self._pending += 1
        self._queue.put_nowait(message)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Client":
        return self

    async def __anext__(self) -> Message:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any later iteration.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        self._pending -= 1
        return item  # type: ignore[return-value]
