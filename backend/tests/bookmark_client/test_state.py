"""Tests for client-side bookmark state reconciliation."""
import itertools

from bookmark_client.models import Bookmark
from bookmark_client.state import BookmarkState, BookmarkStatus
from tests.bookmark_client.conftest import delete, insert, make_bookmark


def _ids(state: BookmarkState) -> list:
    return [b.id for b in state.bookmarks]


class TestLoad:
    """Tests for loading a fresh listing."""

    def test__keeps_server_order(self, bookmark_a: Bookmark, bookmark_b: Bookmark) -> None:
        state = BookmarkState([bookmark_b, bookmark_a])
        assert _ids(state) == [bookmark_b.id, bookmark_a.id]

    def test__replaces_previous_contents(
        self, bookmark_a: Bookmark, bookmark_b: Bookmark,
    ) -> None:
        state = BookmarkState([bookmark_a])
        state.mark_pending(bookmark_a.id)

        state.load([bookmark_b])

        assert _ids(state) == [bookmark_b.id]
        assert state.status(bookmark_a.id) == BookmarkStatus.ABSENT

    def test__duplicate_ids_collapse(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState([bookmark_a, bookmark_a])
        assert len(state) == 1


class TestInsert:
    """Tests for insert merging."""

    def test__new_record_goes_first(self, bookmark_a: Bookmark, bookmark_b: Bookmark) -> None:
        state = BookmarkState([bookmark_a])

        assert state.apply_insert(bookmark_b) is True

        assert _ids(state) == [bookmark_b.id, bookmark_a.id]

    def test__duplicate_insert_is_noop(self, bookmark_a: Bookmark) -> None:
        """The feed echo of this session's own create changes nothing."""
        state = BookmarkState()
        state.apply_insert(bookmark_a)

        assert state.apply_insert(bookmark_a) is False
        assert len(state) == 1

    def test__insert_does_not_revive_pending(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState([bookmark_a])
        state.mark_pending(bookmark_a.id)

        assert state.apply_insert(bookmark_a) is False
        assert state.status(bookmark_a.id) == BookmarkStatus.PENDING_DELETION


class TestDelete:
    """Tests for delete merging."""

    def test__removes_record(self, bookmark_a: Bookmark, bookmark_b: Bookmark) -> None:
        state = BookmarkState([bookmark_b, bookmark_a])

        assert state.apply_delete(bookmark_b.id) is True

        assert _ids(state) == [bookmark_a.id]

    def test__absent_id_is_noop(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState()
        assert state.apply_delete(bookmark_a.id) is False
        assert len(state) == 0

    def test__twice_is_noop(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState([bookmark_a])
        state.apply_delete(bookmark_a.id)

        assert state.apply_delete(bookmark_a.id) is False

    def test__insert_after_delete_readds_record(
        self, bookmark_a: Bookmark,
    ) -> None:
        """
        An insert arriving after its own delete re-adds the record.

        Feed delivery preserves publish order per user, so this only happens
        when the direct create response lands after the feed's delete; the
        next load corrects it.
        """
        state = BookmarkState()
        state.apply_event(delete(bookmark_a))
        state.apply_insert(bookmark_a)

        assert _ids(state) == [bookmark_a.id]


class TestConvergence:
    """Direct responses and feed events converge regardless of order."""

    def test__create_response_and_feed_echo_any_order(self, bookmark_a: Bookmark) -> None:
        sources = [
            lambda s: s.apply_insert(bookmark_a),
            lambda s: s.apply_event(insert(bookmark_a)),
        ]
        for order in itertools.permutations(sources):
            state = BookmarkState()
            for apply in order:
                apply(state)
            assert _ids(state) == [bookmark_a.id]

    def test__delete_response_and_feed_echo_any_order(
        self, bookmark_a: Bookmark, bookmark_b: Bookmark,
    ) -> None:
        sources = [
            lambda s: s.apply_delete(bookmark_b.id),
            lambda s: s.apply_event(delete(bookmark_b)),
        ]
        for order in itertools.permutations(sources):
            state = BookmarkState([bookmark_b, bookmark_a])
            state.mark_pending(bookmark_b.id)
            for apply in order:
                apply(state)
            assert _ids(state) == [bookmark_a.id]
            assert state.status(bookmark_b.id) == BookmarkStatus.ABSENT

    def test__replayed_events_are_idempotent(
        self, bookmark_a: Bookmark, bookmark_b: Bookmark,
    ) -> None:
        events = [insert(bookmark_a), insert(bookmark_b), delete(bookmark_a)]
        once = BookmarkState()
        twice = BookmarkState()

        for event in events:
            once.apply_event(event)
        for event in events + events:
            twice.apply_event(event)

        assert _ids(once) == _ids(twice) == [bookmark_b.id]


class TestPendingDeletion:
    """Tests for the optimistic deletion lifecycle."""

    def test__lifecycle(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState()
        assert state.status(bookmark_a.id) == BookmarkStatus.ABSENT

        state.apply_insert(bookmark_a)
        assert state.status(bookmark_a.id) == BookmarkStatus.VISIBLE

        assert state.mark_pending(bookmark_a.id) is True
        assert state.status(bookmark_a.id) == BookmarkStatus.PENDING_DELETION
        # Still listed while the delete is in flight
        assert bookmark_a.id in state

        state.apply_delete(bookmark_a.id)
        assert state.status(bookmark_a.id) == BookmarkStatus.ABSENT

    def test__failed_delete_returns_to_visible(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState([bookmark_a])
        state.mark_pending(bookmark_a.id)

        assert state.clear_pending(bookmark_a.id) is True

        assert state.status(bookmark_a.id) == BookmarkStatus.VISIBLE
        assert _ids(state) == [bookmark_a.id]

    def test__mark_absent_is_rejected(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState()
        assert state.mark_pending(bookmark_a.id) is False
        assert state.status(bookmark_a.id) == BookmarkStatus.ABSENT

    def test__mark_twice_is_rejected(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState([bookmark_a])
        state.mark_pending(bookmark_a.id)
        assert state.mark_pending(bookmark_a.id) is False

    def test__clear_not_pending_is_noop(self, bookmark_a: Bookmark) -> None:
        state = BookmarkState([bookmark_a])
        assert state.clear_pending(bookmark_a.id) is False

    def test__feed_delete_while_pending(self, bookmark_a: Bookmark) -> None:
        """Another session's delete lands first; the record goes away."""
        state = BookmarkState([bookmark_a])
        state.mark_pending(bookmark_a.id)

        state.apply_event(delete(bookmark_a))

        assert state.status(bookmark_a.id) == BookmarkStatus.ABSENT
        # A later failure of our own delete cannot bring it back
        assert state.clear_pending(bookmark_a.id) is False
        assert len(state) == 0


class TestSearch:
    """Tests for the local search filter."""

    def _state(self) -> BookmarkState:
        return BookmarkState([
            make_bookmark("Python Docs", "https://docs.python.org", minutes=3),
            make_bookmark("News", "https://news.example.com", minutes=2),
            make_bookmark("Recipes", "https://food.example.com/PYTHON-cake", minutes=1),
        ])

    def test__matches_title_case_insensitively(self) -> None:
        results = self._state().search("python docs")
        assert [b.title for b in results] == ["Python Docs"]

    def test__matches_url(self) -> None:
        results = self._state().search("news.example")
        assert [b.title for b in results] == ["News"]

    def test__matches_either_field_in_display_order(self) -> None:
        results = self._state().search("PYTHON")
        assert [b.title for b in results] == ["Python Docs", "Recipes"]

    def test__blank_query_returns_everything(self) -> None:
        state = self._state()
        assert state.search("") == state.bookmarks
        assert state.search("   ") == state.bookmarks

    def test__surrounding_spaces_are_part_of_the_query(self) -> None:
        state = self._state()
        assert [b.title for b in state.search(" docs")] == ["Python Docs"]
        assert state.search(" news") == []
        assert state.search("news ") == []

    def test__no_match(self) -> None:
        assert self._state().search("zzz") == []

    def test__does_not_mutate_state(self) -> None:
        state = self._state()
        before = state.bookmarks

        state.search("news")

        assert state.bookmarks == before

    def test__includes_pending_records(self) -> None:
        state = self._state()
        news = state.search("news")[0]
        state.mark_pending(news.id)

        assert state.search("news") == [news]
