"""Client for the Bookmarks API: HTTP calls, live change feed, and local state."""
from bookmark_client.api_client import BookmarksApiClient
from bookmark_client.exceptions import (
    BookmarkClientError,
    ChangeFeedError,
    InvalidInputError,
    StorageFailureError,
    UnauthenticatedError,
)
from bookmark_client.models import Bookmark, ChangeEvent, UserProfile
from bookmark_client.session import BookmarkSession
from bookmark_client.state import BookmarkState, BookmarkStatus

__all__ = [
    "Bookmark",
    "BookmarkClientError",
    "BookmarkSession",
    "BookmarkState",
    "BookmarkStatus",
    "BookmarksApiClient",
    "ChangeEvent",
    "ChangeFeedError",
    "InvalidInputError",
    "StorageFailureError",
    "UnauthenticatedError",
    "UserProfile",
]
