"""Pydantic schemas for change-feed events."""
from typing import Literal

from pydantic import BaseModel

from schemas.bookmark import BookmarkResponse

ChangeKind = Literal["insert", "delete"]


class ChangeEvent(BaseModel):
    """
    A single insert or delete on one user's bookmarks.

    `record` is the full row: the created bookmark for inserts, the removed
    bookmark for deletes. Consumers key on `record.id`.
    """

    kind: ChangeKind
    record: BookmarkResponse
