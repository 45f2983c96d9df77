"""Minimal Server-Sent Events parser for the change feed stream."""
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass


@dataclass
class ServerSentEvent:
    """One dispatched SSE frame."""

    event: str
    data: str


async def iter_sse(lines: AsyncIterable[str]) -> AsyncIterator[ServerSentEvent]:
    """
    Group raw stream lines into SSE frames.

    Follows the EventSource rules this feed needs: comment lines (starting
    with ':') are skipped, `data:` lines accumulate, a blank line dispatches
    the frame. Frames with no data are dropped. `id:` and `retry:` fields are
    ignored.
    """
    event = "message"
    data: list[str] = []
    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield ServerSentEvent(event=event, data="\n".join(data))
            event = "message"
            data = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
