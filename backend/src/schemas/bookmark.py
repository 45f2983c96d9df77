"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.validators import validate_bookmark_title, validate_bookmark_url


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    Both fields are required and stored trimmed. The URL is kept exactly as
    the user typed it (minus surrounding whitespace) rather than normalized,
    so a created bookmark lists back with the same url/title pair.
    """

    url: str
    title: str

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Trim and validate the URL."""
        return validate_bookmark_url(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Trim and validate the title."""
        return validate_bookmark_title(v)


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses and change-feed records."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    url: str
    title: str
    created_at: datetime


class BookmarkListResponse(BaseModel):
    """All of the user's bookmarks, most recent first."""

    items: list[BookmarkResponse]
    total: int


class BookmarkDeleteResponse(BaseModel):
    """
    Delete acknowledgement.

    Always `success=True`: deleting a bookmark that is already gone (or was
    never visible to the caller) is not an error.
    """

    success: bool = True
