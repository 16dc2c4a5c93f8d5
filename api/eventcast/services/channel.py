"""A named topic and its member clients."""

import logging

from eventcast.services.client import Client
from eventcast.services.message import Message

logger = logging.getLogger(__name__)


class Channel:
    """Set of clients subscribed to one channel name.

    Not synchronized: only the server's dispatch task mutates it.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._clients: set[Client] = set()

    def __repr__(self) -> str:
        return f"<Channel {self.name!r} clients={len(self._clients)}>"

    def __contains__(self, client: object) -> bool:
        return client in self._clients

    @property
    def clients(self) -> tuple[Client, ...]:
        return tuple(self._clients)

    def add_client(self, client: Client) -> None:
        self._clients.add(client)

    def remove_client(self, client: Client) -> None:
        self._clients.discard(client)

    def client_count(self) -> int:
        return len(self._clients)

    def send_message(self, message: Message) -> int:
        """Queue message on every member. Returns how many accepted it."""
        delivered = 0
        for client in self._clients:
            if client.enqueue(message):
                delivered += 1
        return delivered

    def close(self) -> None:
        """Close every member's queue and drop all members."""
        for client in self._clients:
            client.close()
        self._clients.clear()
        logger.debug("SSE channel '%s' torn down", self.name)
