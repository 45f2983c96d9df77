"""
Per-user change feed for bookmark inserts and deletes.

Events are fanned out through Redis pub/sub when Redis is connected, so every
API worker sees every change. When Redis is disabled or unreachable the feed
degrades to an in-process broker: subscribers only hear about changes made
through the same worker.

Delivery is at-most-once and unordered relative to HTTP responses. Consumers
reconcile by bookmark id (see bookmark_client.state).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from pydantic import ValidationError
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from core.redis import RedisClient, get_redis_client
from schemas.change_event import ChangeEvent

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "bookmarks:changes"

# Per-subscriber buffer for the in-process broker. A subscriber that falls this
# far behind starts losing events instead of growing memory without bound.
LOCAL_QUEUE_SIZE = 100

SUBSCRIBE_CONFIRM_TIMEOUT = 1.0


def channel_for(user_id: UUID) -> str:
    """Pub/sub channel carrying one user's changes."""
    return f"{CHANNEL_PREFIX}:{user_id}"


def _parse_event(payload: str | bytes) -> ChangeEvent | None:
    """Decode a published payload, skipping anything malformed."""
    try:
        return ChangeEvent.model_validate_json(payload)
    except ValidationError as e:
        logger.warning("Discarding malformed change event: %s", e)
        return None


class Subscription(ABC):
    """
    An open subscription to one user's change feed.

    Obtained from `ChangeFeed.subscribe()`; released when that context exits.
    """

    @abstractmethod
    async def get(self, timeout: float) -> ChangeEvent | None:
        """Wait up to `timeout` seconds for the next event; None if nothing arrived."""

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChangeEvent]:
        while True:
            event = await self.get(timeout=1.0)
            if event is not None:
                yield event


class _RedisSubscription(Subscription):
    """Subscription backed by a Redis pub/sub connection."""

    def __init__(self, pubsub: PubSub) -> None:
        self._pubsub = pubsub

    async def get(self, timeout: float) -> ChangeEvent | None:
        """Read the next published message, if any."""
        message = await self._pubsub.get_message(
            ignore_subscribe_messages=True,
            timeout=timeout,
        )
        if message is None or message.get("type") != "message":
            return None
        return _parse_event(message["data"])


class _LocalSubscription(Subscription):
    """Subscription backed by an in-process queue."""

    def __init__(self, queue: asyncio.Queue[str]) -> None:
        self._queue = queue

    async def get(self, timeout: float) -> ChangeEvent | None:
        """Pop the next queued payload, if any."""
        try:
            payload = await asyncio.wait_for(self._queue.get(), timeout)
        except TimeoutError:
            return None
        return _parse_event(payload)


class ChangeFeed:
    """Publishes and subscribes to per-user bookmark change events."""

    def __init__(self, redis_client: RedisClient | None = None) -> None:
        self._redis = redis_client
        self._local: dict[UUID, set[asyncio.Queue[str]]] = {}

    @property
    def uses_redis(self) -> bool:
        """True when events are fanned out through Redis."""
        return self._redis is not None and self._redis.is_connected

    def subscriber_count(self, user_id: UUID) -> int:
        """Number of in-process subscribers for a user (Redis subscribers are not counted)."""
        return len(self._local.get(user_id, ()))

    async def publish(self, user_id: UUID, event: ChangeEvent) -> None:
        """
        Fan an event out to every open subscription of the user.

        Never raises: the HTTP response is the other delivery channel, so a
        lost event only delays convergence until the client's next load.
        """
        payload = event.model_dump_json()
        if self.uses_redis:
            receivers = await self._redis.publish(channel_for(user_id), payload)
            if receivers is not None:
                logger.debug(
                    "Published %s of bookmark %s to %s subscriber(s)",
                    event.kind, event.record.id, receivers,
                )
                return
            logger.warning(
                "Redis publish failed, delivering %s of bookmark %s in-process only",
                event.kind, event.record.id,
            )
        self._publish_local(user_id, payload)

    def _publish_local(self, user_id: UUID, payload: str) -> None:
        for queue in self._local.get(user_id, ()):
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                logger.warning("Change feed subscriber for user %s is full, dropping event", user_id)

    @asynccontextmanager
    async def subscribe(self, user_id: UUID) -> AsyncIterator[Subscription]:
        """
        Open a subscription to the user's changes.

        The subscription is released when the context exits, including on
        cancellation, so a disconnected client never leaks a connection.
        """
        pubsub = await self._open_pubsub(user_id) if self.uses_redis else None
        if pubsub is not None:
            logger.debug("Subscribed to %s via Redis", channel_for(user_id))
            try:
                yield _RedisSubscription(pubsub)
            finally:
                await self._close_pubsub(pubsub, user_id)
            return

        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=LOCAL_QUEUE_SIZE)
        self._local.setdefault(user_id, set()).add(queue)
        logger.debug("Subscribed to changes for user %s in-process", user_id)
        try:
            yield _LocalSubscription(queue)
        finally:
            queues = self._local.get(user_id)
            if queues is not None:
                queues.discard(queue)
                if not queues:
                    del self._local[user_id]
            logger.debug("Unsubscribed from changes for user %s", user_id)

    async def _open_pubsub(self, user_id: UUID) -> PubSub | None:
        pubsub = self._redis.pubsub()
        if pubsub is None:
            return None
        try:
            await pubsub.subscribe(channel_for(user_id))
            # Read the server's confirmation: once it is in, nothing
            # published afterwards can be missed
            await pubsub.get_message(timeout=SUBSCRIBE_CONFIRM_TIMEOUT)
        except RedisError as e:
            logger.warning("Redis SUBSCRIBE failed, falling back to in-process feed: %s", e)
            await pubsub.aclose()
            return None
        return pubsub

    async def _close_pubsub(self, pubsub: PubSub, user_id: UUID) -> None:
        try:
            await pubsub.unsubscribe(channel_for(user_id))
        except RedisError as e:
            logger.warning("Redis UNSUBSCRIBE failed: %s", e)
        finally:
            await pubsub.aclose()
            logger.debug("Unsubscribed from %s", channel_for(user_id))


# Global change feed state using a container to avoid global statement
class _ChangeFeedState:
    """Container for global change feed state."""

    feed: ChangeFeed | None = None


_state = _ChangeFeedState()


def get_change_feed() -> ChangeFeed:
    """
    Get the global change feed.

    Falls back to a feed over whatever Redis client is registered (possibly
    none) when the application lifespan has not installed one.
    """
    if _state.feed is None:
        _state.feed = ChangeFeed(get_redis_client())
    return _state.feed


def set_change_feed(feed: ChangeFeed | None) -> None:
    """Set the global change feed instance."""
    _state.feed = feed
