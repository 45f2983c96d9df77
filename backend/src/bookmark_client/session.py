"""
A live bookmark session: initial load, change feed, and optimistic actions.

One BookmarkSession backs one authenticated view. Entering it subscribes to
the change feed and loads the list; leaving it closes the feed stream so the
server releases the subscription.
"""
import asyncio
import logging
from collections.abc import Callable
from types import TracebackType
from uuid import UUID

from bookmark_client.api_client import BookmarksApiClient
from bookmark_client.exceptions import BookmarkClientError
from bookmark_client.models import Bookmark, ChangeEvent
from bookmark_client.state import BookmarkState, BookmarkStatus

logger = logging.getLogger(__name__)

Listener = Callable[[BookmarkState], None]


class BookmarkSession:
    """
    Keeps a BookmarkState in sync with the server.

    Events from the feed and results of this session's own requests are both
    merged into the same state; the merge rules make their relative order
    irrelevant. The feed is subscribed before the initial list is fetched,
    and feed events that arrive before the list are replayed on top of it,
    so nothing committed after subscribing is missed.
    """

    def __init__(self, api: BookmarksApiClient, ready_timeout: float = 10.0) -> None:
        self._api = api
        self._ready_timeout = ready_timeout
        self.state = BookmarkState()
        self._listeners: list[Listener] = []
        self._feed_task: asyncio.Task[None] | None = None
        self._feed_ready = asyncio.Event()
        self._loaded = False
        self._buffered: list[ChangeEvent] = []

    async def __aenter__(self) -> "BookmarkSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def bookmarks(self) -> list[Bookmark]:
        """Current bookmarks in display order."""
        return self.state.bookmarks

    @property
    def is_live(self) -> bool:
        """True while the change feed is connected."""
        return self._feed_task is not None and not self._feed_task.done()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback run after every state change; returns an unregister function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def search(self, query: str) -> list[Bookmark]:
        """Filter the current bookmarks locally by title or URL."""
        return self.state.search(query)

    def status(self, bookmark_id: UUID) -> BookmarkStatus:
        """Lifecycle status of a bookmark in this session."""
        return self.state.status(bookmark_id)

    async def start(self) -> None:
        """
        Subscribe to the change feed, then load the initial list.

        Raises whatever the feed or the list request raised (e.g.
        UnauthenticatedError); in that case the session is closed again.
        """
        self._feed_task = asyncio.create_task(self._consume_feed(), name="bookmark-change-feed")
        try:
            await self._wait_for_feed()
            bookmarks = await self._api.list_bookmarks()
        except BaseException:
            await self.close()
            raise

        self.state.load(bookmarks)
        self._loaded = True
        for event in self._buffered:
            self.state.apply_event(event)
        self._buffered.clear()
        self._notify()

    async def _wait_for_feed(self) -> None:
        ready = asyncio.create_task(self._feed_ready.wait())
        try:
            await asyncio.wait(
                {ready, self._feed_task},
                timeout=self._ready_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            ready.cancel()

        if self._feed_ready.is_set():
            return
        if self._feed_task.done():
            # The feed failed before subscribing; surface why
            self._feed_task.result()
            return
        logger.warning(
            "Change feed not ready after %.1fs; continuing, live updates may lag",
            self._ready_timeout,
        )

    async def wait(self) -> None:
        """Block until the change feed ends (server closed it, or it failed)."""
        if self._feed_task is None:
            return
        try:
            await asyncio.shield(self._feed_task)
        except BookmarkClientError:
            # Already logged by the feed task
            pass

    async def close(self) -> None:
        """Stop live updates and release the feed subscription."""
        task, self._feed_task = self._feed_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except BookmarkClientError:
            # Already surfaced by start() or logged by the feed task
            pass

    async def add(self, url: str, title: str) -> Bookmark:
        """
        Create a bookmark and show it.

        The feed will usually deliver the same record too; whichever copy
        arrives second is ignored. Errors propagate and leave the state
        untouched.
        """
        self._require_started()
        bookmark = await self._api.create_bookmark(url, title)
        if self.state.apply_insert(bookmark):
            self._notify()
        return bookmark

    async def remove(self, bookmark_id: UUID) -> None:
        """
        Delete a bookmark with an optimistic "deleting" mark.

        On success the record is dropped (the feed copy of the delete is then
        a no-op). On failure the mark is cleared, the record stays visible,
        and the error propagates.
        """
        self._require_started()
        if self.state.mark_pending(bookmark_id):
            self._notify()
        try:
            await self._api.delete_bookmark(bookmark_id)
        except BaseException:
            # Includes cancellation: the record must not stay marked for good
            if self.state.clear_pending(bookmark_id):
                self._notify()
            raise
        if self.state.apply_delete(bookmark_id):
            self._notify()

    def _require_started(self) -> None:
        if not self._loaded:
            raise RuntimeError("BookmarkSession.start() must complete before making changes")

    async def _consume_feed(self) -> None:
        try:
            async for event in self._api.stream_events(on_ready=self._feed_ready.set):
                self._on_event(event)
        except BookmarkClientError as e:
            if not self._feed_ready.is_set():
                raise
            # No automatic reconnect; the view keeps its last known state
            logger.warning("Change feed stopped: %s", e)
            raise
        logger.info("Change feed closed by server")

    def _on_event(self, event: ChangeEvent) -> None:
        if not self._loaded:
            self._buffered.append(event)
            return
        if self.state.apply_event(event):
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:
                logger.exception("Bookmark session listener failed")
