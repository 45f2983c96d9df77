"""HTTP client for the Bookmarks API, with errors mapped to client exceptions."""
import logging
import os
from collections.abc import AsyncIterator, Callable
from typing import Any
from uuid import UUID

import httpx
from pydantic import ValidationError

from bookmark_client.exceptions import (
    BookmarkClientError,
    ChangeFeedError,
    InvalidInputError,
    StorageFailureError,
    UnauthenticatedError,
)
from bookmark_client.models import Bookmark, ChangeEvent, UserProfile
from bookmark_client.sse import iter_sse

logger = logging.getLogger(__name__)


def get_api_base_url() -> str:
    """Get the API base URL from environment."""
    return os.getenv("BOOKMARKS_API_URL", "http://localhost:8000")


def get_default_timeout() -> float:
    """Get the default request timeout."""
    return float(os.getenv("BOOKMARKS_API_TIMEOUT", "30.0"))


def _safe_get_detail(response: httpx.Response) -> Any:
    """Extract `detail` from an error body, tolerating non-JSON responses."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    return body.get("detail") if isinstance(body, dict) else body


def error_from_response(response: httpx.Response) -> BookmarkClientError:
    """
    Translate an HTTP error response into a client exception.

    401 -> UnauthenticatedError, 400/422 -> InvalidInputError (with the field
    the server named), 5xx -> StorageFailureError.
    """
    status = response.status_code
    detail = _safe_get_detail(response)
    message = detail if isinstance(detail, str) and detail else f"HTTP {status}"

    if status == 401:
        return UnauthenticatedError(message, status)
    if status in (400, 422):
        try:
            field = response.json().get("field") or "body"
        except (ValueError, AttributeError):
            field = "body"
        return InvalidInputError(message, field=field, status_code=status)
    if status >= 500:
        return StorageFailureError(message, status)
    return BookmarkClientError(message, status)


class BookmarksApiClient:
    """
    Async client for the bookmark endpoints.

    Pass `http_client` to share a connection pool or to point the client at
    an ASGI app in tests; otherwise one is created (and closed) here.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url or get_api_base_url(),
            timeout=timeout if timeout is not None else get_default_timeout(),
        )

    async def __aenter__(self) -> "BookmarksApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, path, headers=self._headers(), **kwargs,
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise StorageFailureError(f"Request failed: {e}") from e
        if response.is_error:
            raise error_from_response(response)
        return response

    async def get_me(self) -> UserProfile:
        """Get the signed-in user's profile."""
        response = await self._request("GET", "/users/me")
        return UserProfile.model_validate(response.json())

    async def list_bookmarks(self) -> list[Bookmark]:
        """List all bookmarks, most recent first."""
        response = await self._request("GET", "/bookmarks/")
        return [Bookmark.model_validate(item) for item in response.json()["items"]]

    async def create_bookmark(self, url: str, title: str) -> Bookmark:
        """Create a bookmark and return the stored record."""
        response = await self._request(
            "POST", "/bookmarks/", json={"url": url, "title": title},
        )
        return Bookmark.model_validate(response.json())

    async def delete_bookmark(self, bookmark_id: UUID | str) -> None:
        """Delete a bookmark. Succeeds even if it is already gone."""
        await self._request("DELETE", f"/bookmarks/{bookmark_id}")

    async def stream_events(
        self,
        on_ready: Callable[[], None] | None = None,
    ) -> AsyncIterator[ChangeEvent]:
        """
        Iterate over the live change feed until the server closes it.

        `on_ready` is called once the server confirms the subscription; every
        change committed after that point is delivered. Closing the iterator
        (or cancelling the consuming task) closes the HTTP stream, which
        releases the server-side subscription.
        """
        # No read timeout: the stream is idle between heartbeats by design
        timeout = httpx.Timeout(self._client.timeout.connect, read=None)
        try:
            async with self._client.stream(
                "GET", "/bookmarks/events", headers=self._headers(), timeout=timeout,
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise error_from_response(response)
                async for frame in iter_sse(response.aiter_lines()):
                    if frame.event == "ready":
                        logger.debug("Change feed ready")
                        if on_ready is not None:
                            on_ready()
                    elif frame.event == "change":
                        try:
                            yield ChangeEvent.model_validate_json(frame.data)
                        except ValidationError as e:
                            raise ChangeFeedError(f"Malformed change event: {e}") from e
        except httpx.HTTPError as e:
            raise ChangeFeedError(f"Change feed connection failed: {e}") from e
