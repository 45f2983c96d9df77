"""Bookmark endpoints: list, create, delete, and the live change feed."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_change_feed,
    get_current_user,
    get_settings,
)
from api.helpers import change_event_stream
from core.config import Settings
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkDeleteResponse,
    BookmarkListResponse,
    BookmarkResponse,
)
from schemas.change_event import ChangeEvent
from services import bookmark_service
from services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """List all of the current user's bookmarks, most recent first."""
    bookmarks = await bookmark_service.get_bookmarks(db, current_user.id)
    items = [BookmarkResponse.model_validate(b) for b in bookmarks]
    return BookmarkListResponse(items=items, total=len(items))


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    Both `url` and `title` are required; `url` must be absolute (scheme and
    host). Invalid input returns 400 with the offending field.

    An `insert` event with the created record is published to the user's
    change feed once the row is committed.
    """
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    response = BookmarkResponse.model_validate(bookmark)
    await db.commit()
    await feed.publish(current_user.id, ChangeEvent(kind="insert", record=response))
    return response


@router.get("/events")
async def stream_bookmark_events(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Stream the current user's bookmark changes as Server-Sent Events.

    Emits `ready` once subscribed, then one `change` frame per insert or
    delete made from any session. Events are not ordered relative to the
    direct responses of create/delete calls; clients merge by bookmark id.
    """
    user_id = current_user.id
    # Auth is done; release the DB connection instead of holding it for the
    # lifetime of the stream.
    await db.commit()
    return StreamingResponse(
        change_event_stream(
            feed,
            user_id,
            settings.feed_heartbeat_seconds,
            request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            # Disable proxy buffering (nginx) so frames are flushed immediately
            "X-Accel-Buffering": "no",
        },
    )


@router.delete("/{bookmark_id}", response_model=BookmarkDeleteResponse)
async def delete_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> BookmarkDeleteResponse:
    """
    Delete a bookmark.

    Idempotent: deleting a bookmark that is already gone, never existed, or
    belongs to someone else also returns success. A `delete` event is only
    published when a row was actually removed.
    """
    try:
        parsed_id = UUID(bookmark_id)
    except ValueError:
        # Can't match any row, so it is "already gone"
        logger.debug("Delete with malformed bookmark id %r", bookmark_id)
        return BookmarkDeleteResponse()

    removed = await bookmark_service.delete_bookmark(db, current_user.id, parsed_id)
    if removed is None:
        return BookmarkDeleteResponse()

    record = BookmarkResponse.model_validate(removed)
    await db.commit()
    await feed.publish(current_user.id, ChangeEvent(kind="delete", record=record))
    return BookmarkDeleteResponse()
