"""
Server-Sent Events framing for the bookmark change feed.

Frame types written to the stream:
- `event: ready` once the subscription is open (clients may rely on every
  later change being delivered from this point on)
- `event: change` with a JSON ChangeEvent as data
- `: heartbeat` comment lines while idle, so proxies keep the connection open
"""
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from uuid import UUID

from redis.exceptions import RedisError

from services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)

HEARTBEAT_FRAME = ": heartbeat\n\n"


def format_sse(event: str, data: str) -> str:
    """Format one SSE frame. Multi-line data is split across `data:` lines."""
    lines = [f"event: {event}"]
    lines.extend(f"data: {line}" for line in data.splitlines() or [""])
    return "\n".join(lines) + "\n\n"


async def change_event_stream(
    feed: ChangeFeed,
    user_id: UUID,
    heartbeat_seconds: float,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one user's changes until the client goes away.

    The subscription is opened when iteration starts and released when the
    generator finishes or is cancelled (Starlette cancels it on disconnect).
    """
    async with feed.subscribe(user_id) as subscription:
        yield format_sse("ready", json.dumps({"user_id": str(user_id)}))
        while not await is_disconnected():
            try:
                event = await subscription.get(timeout=heartbeat_seconds)
            except RedisError as e:
                # Transport retry is the client's job; end the stream cleanly
                logger.warning("Change feed for user %s lost its Redis connection: %s", user_id, e)
                return
            if event is None:
                yield HEARTBEAT_FRAME
            else:
                yield format_sse("change", event.model_dump_json())
