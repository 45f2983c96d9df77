"""Bookmark model for storing user bookmarks."""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.config import TITLE_COLUMN_LENGTH
from models.base import Base, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class Bookmark(Base, UUIDv7Mixin):
    """
    Bookmark model - a saved URL with a title, owned by exactly one user.

    Bookmarks are insert-only: there is no update path, so there is no
    updated_at column. Rows are removed with a hard DELETE scoped by both id
    and user_id.
    """

    __tablename__ = "bookmarks"
    __table_args__ = (
        # Serves the only listing query: WHERE user_id = ? ORDER BY created_at DESC
        Index("ix_bookmarks_user_id_created_at", "user_id", "created_at"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(TITLE_COLUMN_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
