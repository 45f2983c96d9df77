"""
Local bookmark state for one session, reconciled from two event sources.

A session hears about the same change twice: once in the response to its
own create/delete request, and once on the change feed (which also carries
changes made in other sessions). The two arrive in no particular order, and
the feed copy may never arrive at all. Every mutation here is therefore an
idempotent merge keyed by bookmark id:

- insert: add the record at the front if its id is not already present
- delete: remove the record with that id if present

so applying an event twice, or in either order relative to the direct
response, converges to the same state.

Per-id lifecycle as seen by the UI:

    absent -> visible -> pending_deletion -> absent
                  ^            |
                  +------------+  (delete request failed)
"""
from collections import OrderedDict
from collections.abc import Iterable
from enum import StrEnum
from uuid import UUID

from bookmark_client.models import Bookmark, ChangeEvent


class BookmarkStatus(StrEnum):
    """Where a bookmark id is in its client-side lifecycle."""

    ABSENT = "absent"
    VISIBLE = "visible"
    PENDING_DELETION = "pending_deletion"


class BookmarkState:
    """Ordered, id-keyed collection of the session's bookmarks, newest first."""

    def __init__(self, bookmarks: Iterable[Bookmark] = ()) -> None:
        self._records: OrderedDict[UUID, Bookmark] = OrderedDict()
        self._pending: set[UUID] = set()
        self.load(bookmarks)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, bookmark_id: object) -> bool:
        return bookmark_id in self._records

    @property
    def bookmarks(self) -> list[Bookmark]:
        """All records in display order, including ones pending deletion."""
        return list(self._records.values())

    def load(self, bookmarks: Iterable[Bookmark]) -> None:
        """
        Replace the state with a fresh listing.

        The listing is already newest-first; its order is kept. A record
        repeated in the listing keeps its first position.
        """
        self._records.clear()
        self._pending.clear()
        for bookmark in bookmarks:
            self._records.setdefault(bookmark.id, bookmark)

    def status(self, bookmark_id: UUID) -> BookmarkStatus:
        """Lifecycle status of an id."""
        if bookmark_id not in self._records:
            return BookmarkStatus.ABSENT
        if bookmark_id in self._pending:
            return BookmarkStatus.PENDING_DELETION
        return BookmarkStatus.VISIBLE

    def apply_insert(self, bookmark: Bookmark) -> bool:
        """
        Add a newly created bookmark at the front.

        No-op if the id is already present, whether visible or pending
        deletion. Returns True if the state changed.
        """
        if bookmark.id in self._records:
            return False
        self._records[bookmark.id] = bookmark
        # New records are always the newest, so front keeps newest-first order
        self._records.move_to_end(bookmark.id, last=False)
        return True

    def apply_delete(self, bookmark_id: UUID) -> bool:
        """Remove a bookmark if present. Returns True if the state changed."""
        self._pending.discard(bookmark_id)
        return self._records.pop(bookmark_id, None) is not None

    def apply_event(self, event: ChangeEvent) -> bool:
        """Merge a change-feed event. Returns True if the state changed."""
        if event.kind == "insert":
            return self.apply_insert(event.record)
        return self.apply_delete(event.record.id)

    def mark_pending(self, bookmark_id: UUID) -> bool:
        """
        Flag a visible bookmark as being deleted (optimistic UI).

        The record stays in the state until the delete is confirmed.
        Returns False if the id is absent or already pending.
        """
        if bookmark_id not in self._records or bookmark_id in self._pending:
            return False
        self._pending.add(bookmark_id)
        return True

    def clear_pending(self, bookmark_id: UUID) -> bool:
        """Return a pending bookmark to visible (its delete failed)."""
        if bookmark_id not in self._pending:
            return False
        self._pending.discard(bookmark_id)
        return True

    def search(self, query: str) -> list[Bookmark]:
        """
        Filter by case-insensitive substring match on title or URL.

        Pure: never mutates the state or contacts the server. A blank query
        returns every record in display order. Otherwise the query is
        matched as typed, surrounding spaces included.
        """
        if not query.strip():
            return self.bookmarks
        needle = query.lower()
        return [
            b for b in self._records.values()
            if needle in b.title.lower() or needle in b.url.lower()
        ]
