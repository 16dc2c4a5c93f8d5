"""In-memory SSE broker: channel registry owned by a single dispatch task.

Every mutation of the registry and every broadcast is posted to one mailbox
and handled, one at a time, by the dispatch task. Handlers never await, so
"look up, decide, mutate" is atomic with respect to all other commands and
Channel/Client need no locking.
"""

import asyncio
import concurrent.futures
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from starlette.requests import Request

from eventcast.config import Settings, settings
from eventcast.services.channel import Channel
from eventcast.services.client import CLIENT_QUEUE_MAXSIZE, Client
from eventcast.services.message import Message

logger = logging.getLogger(__name__)

ClientCallback = Callable[[Client], None]


def default_channel_name(request: Request) -> str:
    """Channel name for a stream request: its URL path."""
    return request.url.path


@dataclass
class BrokerOptions:
    """Behaviour injected into the broker and the stream endpoint.

    retry_interval is in milliseconds and replaces the retry hint of every
    broadcast message (0 omits it). The callbacks run synchronously inside
    the dispatch task and must not block.
    """

    retry_interval: int = 0
    channel_name_func: Callable[[Request], str] = default_channel_name
    client_connected: ClientCallback | None = None
    client_disconnected: ClientCallback | None = None
    client_queue_maxsize: int = CLIENT_QUEUE_MAXSIZE
    ping_interval: int = 15
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrokerOptions":
        return cls(
            retry_interval=settings.retry_interval_ms,
            client_queue_maxsize=settings.client_queue_maxsize,
            ping_interval=settings.ping_interval,
            headers=dict(settings.stream_headers),
        )


class BrokerShutdownError(RuntimeError):
    """Raised when the broker is used after shutdown()."""


class _Op(enum.Enum):
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    BROADCAST = "broadcast"
    CLOSE_CHANNEL = "close_channel"
    RESTART = "restart"
    SHUTDOWN = "shutdown"


@dataclass
class _Command:
    op: _Op
    args: tuple
    done: asyncio.Future


class SSEBroker:
    """Channel-based Pub/Sub broker driven by a mailbox."""

    def __init__(self, options: BrokerOptions | None = None) -> None:
        self.options = options or BrokerOptions()
        self._channels: dict[str, Channel] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._mailbox: asyncio.Queue[_Command] | None = None
        self._task: asyncio.Task | None = None
        self._shutdown = False

    # Lifecycle

    def start(self) -> None:
        """Start the dispatch task on the running loop (no-op if started)."""
        if self._shutdown:
            raise BrokerShutdownError("SSE broker has been shut down")
        if self._task is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._mailbox = asyncio.Queue()
        self._task = self._loop.create_task(self._dispatch(), name="sse-broker")

    async def restart(self) -> None:
        """Close every channel and client; keep accepting new ones."""
        await self._submit(_Op.RESTART)

    async def shutdown(self) -> None:
        """Close every channel and client, then stop the dispatch task."""
        if self._shutdown:
            # Another caller is already stopping the task; wait for it.
            if self._task is not None:
                await asyncio.shield(self._task)
            return
        if self._task is None:
            self._shutdown = True
            self._close_all()
            return
        done = self._submit(_Op.SHUTDOWN)
        self._shutdown = True
        await done
        await asyncio.shield(self._task)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    # Commands

    def new_client(self, channel: str, last_event_id: str = "") -> Client:
        return Client(
            channel, last_event_id, maxsize=self.options.client_queue_maxsize
        )

    async def connect(self, client: Client) -> None:
        await self._submit(_Op.CONNECT, client)

    async def disconnect(self, client: Client) -> None:
        await self._submit(_Op.DISCONNECT, client)

    def disconnect_nowait(self, client: Client) -> None:
        """Post a disconnect without waiting for it to be handled.

        For cleanup paths that cannot await, such as a cancelled stream.
        """
        self._submit(_Op.DISCONNECT, client)

    async def broadcast(self, channel: str, message: Message) -> int:
        """Send message to one channel, or to all channels if channel is "".

        Returns the number of clients that queued the message. An unknown
        channel is not an error and returns 0.
        """
        return await self._submit(_Op.BROADCAST, channel, message)

    def broadcast_threadsafe(
        self, channel: str, message: Message
    ) -> concurrent.futures.Future:
        """broadcast() for callers running outside the broker's event loop."""
        if self._loop is None:
            raise RuntimeError("SSE broker is not running")
        return asyncio.run_coroutine_threadsafe(
            self.broadcast(channel, message), self._loop
        )

    async def close_channel(self, name: str) -> bool:
        """Close a channel and all its clients. Returns whether it existed."""
        return await self._submit(_Op.CLOSE_CHANNEL, name)

    # Introspection

    def client_count(self) -> int:
        return sum(channel.client_count() for channel in self._channels.values())

    def has_channel(self, name: str) -> bool:
        return name in self._channels

    def get_channel(self, name: str) -> Channel | None:
        return self._channels.get(name)

    def channels(self) -> list[str]:
        return list(self._channels)

    # Dispatch

    def _submit(self, op: _Op, *args: Any) -> asyncio.Future:
        if self._shutdown:
            raise BrokerShutdownError("SSE broker has been shut down")
        self.start()
        assert self._loop is not None and self._mailbox is not None
        done = self._loop.create_future()
        self._mailbox.put_nowait(_Command(op, args, done))
        return done

    async def _dispatch(self) -> None:
        assert self._mailbox is not None
        logger.debug("SSE broker started")
        while True:
            command = await self._mailbox.get()
            try:
                result = self._handle(command.op, command.args)
            except Exception as exc:
                logger.exception("SSE broker: %s failed", command.op.value)
                if not command.done.done():
                    command.done.set_exception(exc)
            else:
                if not command.done.done():
                    command.done.set_result(result)
            if command.op is _Op.SHUTDOWN:
                break
        logger.debug("SSE broker stopped")

    def _handle(self, op: _Op, args: tuple) -> Any:
        if op is _Op.CONNECT:
            return self._add_client(*args)
        if op is _Op.DISCONNECT:
            return self._remove_client(*args)
        if op is _Op.BROADCAST:
            return self._send(*args)
        if op is _Op.CLOSE_CHANNEL:
            return self._close_channel(*args)
        if op is _Op.RESTART:
            logger.debug("SSE broker restarting")
            return self._close_all()
        if op is _Op.SHUTDOWN:
            return self._close_all()
        raise ValueError(f"unknown broker command {op!r}")

    def _add_client(self, client: Client) -> None:
        channel = self._channels.get(client.channel)
        if channel is None:
            channel = Channel(client.channel)
            self._channels[channel.name] = channel
            logger.debug("SSE channel '%s' created", channel.name)

        channel.add_client(client)
        logger.debug("SSE client %s connected to channel '%s'", client.id, channel.name)
        self._notify(self.options.client_connected, client)

    def _remove_client(self, client: Client) -> None:
        channel = self._channels.get(client.channel)
        if channel is None or client not in channel:
            return

        self._notify(self.options.client_disconnected, client)
        channel.remove_client(client)
        client.close()
        logger.debug(
            "SSE client %s disconnected from channel '%s'", client.id, channel.name
        )

        if channel.client_count() == 0:
            del self._channels[channel.name]
            channel.close()
            logger.debug("SSE channel '%s' has no clients, removed", channel.name)

    def _send(self, name: str, message: Message) -> int:
        message = message.with_retry(self.options.retry_interval)
        if not name:
            logger.debug("SSE broadcasting message to all channels")
            targets = list(self._channels.values())
        elif name in self._channels:
            logger.debug("SSE message sent to channel '%s'", name)
            targets = [self._channels[name]]
        else:
            logger.debug(
                "SSE message not sent because channel '%s' has no clients", name
            )
            return 0
        return sum(channel.send_message(message) for channel in targets)

    def _close_channel(self, name: str) -> bool:
        channel = self._channels.pop(name, None)
        if channel is None:
            logger.debug(
                "SSE requested to close channel '%s', but it doesn't exist", name
            )
            return False
        channel.close()
        logger.debug("SSE channel '%s' closed", name)
        return True

    def _close_all(self) -> None:
        for name in list(self._channels):
            self._close_channel(name)

    @staticmethod
    def _notify(callback: ClientCallback | None, client: Client) -> None:
        if callback is None:
            return
        try:
            callback(client)
        except Exception:
            logger.exception("SSE client callback failed for client %s", client.id)


sse_broker = SSEBroker(BrokerOptions.from_settings(settings))
