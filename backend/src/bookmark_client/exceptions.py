"""Exceptions raised by the bookmarks client."""


class BookmarkClientError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class UnauthenticatedError(BookmarkClientError):
    """The session is missing or expired; the user has to sign in again."""


class InvalidInputError(BookmarkClientError):
    """
    The server rejected the input.

    `field` names the offending input ("url", "title", or "body") so the UI
    can show the message next to it. Not worth retrying unchanged.
    """

    def __init__(self, message: str, field: str, status_code: int | None = None) -> None:
        self.field = field
        super().__init__(message, status_code)


class StorageFailureError(BookmarkClientError):
    """The backend (or the network to it) failed. The user may retry manually."""


class ChangeFeedError(BookmarkClientError):
    """The live change stream broke or could not be parsed."""
