"""Service layer for bookmark list/create/delete operations."""
import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate

logger = logging.getLogger(__name__)


async def get_bookmarks(db: AsyncSession, user_id: UUID) -> list[Bookmark]:
    """
    Get all bookmarks for a user, most recently created first.

    Ties on created_at fall back to id descending; UUIDv7 ids are time-ordered
    so this keeps the order total and stable.
    """
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc()),
    )
    return list(result.scalars().all())


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark owned by the user.

    `data` is already trimmed and validated by the schema.

    Note: Does not commit. Caller handles commit.
    """
    bookmark = Bookmark(user_id=user_id, url=data.url, title=data.title)
    db.add(bookmark)
    await db.flush()
    # Load server-generated created_at
    await db.refresh(bookmark)
    logger.debug("Created bookmark %s for user %s", bookmark.id, user_id)
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> Bookmark | None:
    """
    Delete a bookmark scoped to both its id and its owner.

    Returns the removed row, or None if nothing matched (already deleted,
    never existed, or owned by another user). Callers treat None as success;
    the distinction only decides whether a change event is published.

    Note: Does not commit. Caller handles commit.
    """
    result = await db.execute(
        delete(Bookmark)
        .where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        )
        .returning(Bookmark),
    )
    removed = result.scalar_one_or_none()
    if removed is None:
        logger.debug("Delete of bookmark %s for user %s matched nothing", bookmark_id, user_id)
    return removed
