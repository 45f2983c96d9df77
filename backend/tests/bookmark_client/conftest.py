"""Shared helpers for bookmark client tests."""
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from bookmark_client.models import Bookmark, ChangeEvent

BASE_URL = "http://localhost:8000"
USER_ID = UUID("0190b5c4-0000-7000-8000-000000000001")
_EPOCH = datetime(2025, 1, 1, tzinfo=UTC)


def make_bookmark(
    title: str = "Example",
    url: str = "https://example.com",
    minutes: int = 0,
) -> Bookmark:
    """A bookmark created `minutes` after a fixed epoch."""
    return Bookmark(
        id=uuid4(),
        user_id=USER_ID,
        url=url,
        title=title,
        created_at=_EPOCH + timedelta(minutes=minutes),
    )


def insert(bookmark: Bookmark) -> ChangeEvent:
    return ChangeEvent(kind="insert", record=bookmark)


def delete(bookmark: Bookmark) -> ChangeEvent:
    return ChangeEvent(kind="delete", record=bookmark)


def as_json(bookmark: Bookmark) -> dict:
    """The API's JSON rendering of a bookmark."""
    return bookmark.model_dump(mode="json")


@pytest.fixture
def bookmark_a() -> Bookmark:
    return make_bookmark("Alpha", "https://alpha.example.com", minutes=1)


@pytest.fixture
def bookmark_b() -> Bookmark:
    return make_bookmark("Beta", "https://beta.example.com", minutes=2)
