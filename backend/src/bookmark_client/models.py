"""Client-side records as returned by the Bookmarks API."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Bookmark(BaseModel):
    """A saved bookmark. Immutable: bookmarks are never edited in place."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    url: str
    title: str
    created_at: datetime


class ChangeEvent(BaseModel):
    """An insert or delete delivered by the change feed."""

    kind: Literal["insert", "delete"]
    record: Bookmark


class UserProfile(BaseModel):
    """The signed-in user as reported by `GET /users/me`."""

    id: UUID
    email: str | None
    display_name: str
    avatar_url: str | None
