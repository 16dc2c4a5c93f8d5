"""Event records and their text/event-stream framing."""

import dataclasses
import re
from collections.abc import Sequence
from dataclasses import dataclass


# Only CRLF, CR and LF end a line in text/event-stream.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _split_lines(data: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(data, str):
        if not data:
            return ()
        return tuple(_LINE_BREAK.split(data))
    lines: list[str] = []
    for item in data:
        lines.extend(_LINE_BREAK.split(item))
    return tuple(lines)


@dataclass(frozen=True)
class Message:
    """One SSE event.

    ``retry`` is in milliseconds and is set by the server when the message is
    broadcast; producers leave it at 0.
    """

    id: str = ""
    data: str | tuple[str, ...] = ()
    event: str = ""
    retry: int = 0

    def __post_init__(self) -> None:
        for name in ("id", "event"):
            value = getattr(self, name)
            if "\n" in value or "\r" in value:
                raise ValueError(f"{name} cannot contain line breaks")
        # A string payload, or an item with embedded breaks, becomes lines.
        object.__setattr__(self, "data", _split_lines(self.data))

    @classmethod
    def create(
        cls, data: str | Sequence[str], id: str = "", event: str = ""
    ) -> "Message":
        return cls(id=id, data=_split_lines(data), event=event)

    @classmethod
    def simple(cls, data: str | Sequence[str]) -> "Message":
        return cls.create(data)

    def with_retry(self, retry: int) -> "Message":
        if retry == self.retry:
            return self
        return dataclasses.replace(self, retry=retry)


def render(message: Message) -> bytes:
    """Render a message as one text/event-stream record.

    Empty fields are omitted; a multi-line payload becomes one ``data:`` line
    per line. The record always ends with a blank line.
    """
    lines = []
    if message.id:
        lines.append(f"id:{message.id}")
    if message.event:
        lines.append(f"event:{message.event}")
    if message.retry > 0:
        lines.append(f"retry:{message.retry}")
    lines.extend(f"data:{line}" for line in message.data)
    return "".join(f"{line}\n" for line in lines).encode("utf-8") + b"\n"
