"""
Command-line client for the Bookmarks API.

Usage:
    python -m bookmark_client list [--search QUERY]
    python -m bookmark_client add URL TITLE
    python -m bookmark_client delete BOOKMARK_ID
    python -m bookmark_client watch [--search QUERY]

The API location and bearer token come from --api-url/--token or the
BOOKMARKS_API_URL/BOOKMARKS_API_TOKEN environment variables. Against a server
running with DEV_MODE the token can be omitted.
"""
import argparse
import asyncio
import logging
import os
import sys

from bookmark_client.api_client import BookmarksApiClient, get_api_base_url
from bookmark_client.exceptions import BookmarkClientError, InvalidInputError
from bookmark_client.models import Bookmark
from bookmark_client.session import BookmarkSession
from bookmark_client.state import BookmarkState

logger = logging.getLogger("bookmark_client")


def _format_bookmark(bookmark: Bookmark) -> str:
    created = bookmark.created_at.strftime("%Y-%m-%d %H:%M")
    return f"{bookmark.id}  {created}  {bookmark.title}\n    {bookmark.url}"


def _print_bookmarks(bookmarks: list[Bookmark]) -> None:
    if not bookmarks:
        print("No bookmarks.")
        return
    for bookmark in bookmarks:
        print(_format_bookmark(bookmark))


async def list_bookmarks(api: BookmarksApiClient, search: str) -> None:
    """Print the current bookmarks, optionally filtered."""
    state = BookmarkState(await api.list_bookmarks())
    _print_bookmarks(state.search(search))


async def add_bookmark(api: BookmarksApiClient, url: str, title: str) -> None:
    """Create a bookmark and print it."""
    bookmark = await api.create_bookmark(url, title)
    print(_format_bookmark(bookmark))


async def delete_bookmark(api: BookmarksApiClient, bookmark_id: str) -> None:
    """Delete a bookmark by id."""
    await api.delete_bookmark(bookmark_id)
    print(f"Deleted {bookmark_id}")


async def watch_bookmarks(api: BookmarksApiClient, search: str) -> None:
    """Print the list, then re-print it on every change until interrupted."""
    def render(state: BookmarkState) -> None:
        print(f"--- {len(state)} bookmark(s) ---")
        _print_bookmarks(state.search(search))

    async with BookmarkSession(api) as session:
        session.add_listener(render)
        logger.info("Watching for changes (Ctrl+C to stop)")
        await session.wait()


async def run(args: argparse.Namespace) -> None:
    """Dispatch a parsed command."""
    async with BookmarksApiClient(base_url=args.api_url, token=args.token) as api:
        if args.command == "list":
            await list_bookmarks(api, args.search)
        elif args.command == "add":
            await add_bookmark(api, args.url, args.title)
        elif args.command == "delete":
            await delete_bookmark(api, args.bookmark_id)
        elif args.command == "watch":
            await watch_bookmarks(api, args.search)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Manage bookmarks from the command line.")
    parser.add_argument(
        "--api-url", default=get_api_base_url(),
        help="API base URL (default: $BOOKMARKS_API_URL or http://localhost:8000)",
    )
    parser.add_argument(
        "--token", default=os.getenv("BOOKMARKS_API_TOKEN"),
        help="Bearer token (default: $BOOKMARKS_API_TOKEN)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List bookmarks, newest first")
    list_parser.add_argument("--search", default="", help="Filter by title or URL")

    add_parser = subparsers.add_parser("add", help="Add a bookmark")
    add_parser.add_argument("url", help="Absolute URL, e.g. https://example.com")
    add_parser.add_argument("title", help="Bookmark title")

    delete_parser = subparsers.add_parser("delete", help="Delete a bookmark")
    delete_parser.add_argument("bookmark_id", help="Bookmark id")

    watch_parser = subparsers.add_parser("watch", help="Show bookmarks and follow live changes")
    watch_parser.add_argument("--search", default="", help="Filter by title or URL")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run(args))
    except InvalidInputError as e:
        print(f"Invalid {e.field}: {e.message}", file=sys.stderr)
        return 2
    except BookmarkClientError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
