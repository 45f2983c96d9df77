"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import bookmarks, health, users
from core.config import get_settings
from core.redis import RedisClient, set_redis_client
from services.change_feed import ChangeFeed, set_change_feed

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()
    set_redis_client(redis_client)

    # Startup: Change feed on top of Redis (or in-process if Redis is down)
    feed = ChangeFeed(redis_client)
    set_change_feed(feed)
    if not feed.uses_redis:
        logger.warning(
            "Change feed running in-process only; "
            "clients on other workers will not see each other's changes",
        )

    yield

    # Shutdown: Clean up change feed and Redis
    set_change_feed(None)
    await redis_client.close()
    set_redis_client(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Bookmarks API",
    description="A personal bookmark manager with live updates across sessions.",
    version="0.1.0",
    lifespan=lifespan,
)


def _validation_field(loc: tuple) -> str:
    """
    Name the offending field from a pydantic error location.

    ("body", "url") -> "url"; ("body",) or ("body", 12) (JSON decode
    position) -> "body".
    """
    if len(loc) > 1 and isinstance(loc[-1], str):
        return loc[-1]
    return str(loc[0]) if loc else "body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Report invalid input as 400 naming the first offending field."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    error = first.get("ctx", {}).get("error")
    # ValueErrors raised by our validators carry the user-facing message
    message = str(error) if isinstance(error, ValueError) else first.get("msg", "Invalid input")
    return JSONResponse(
        status_code=400,
        content={"detail": message, "field": _validation_field(tuple(first.get("loc", ())))},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(
    request: Request, exc: SQLAlchemyError,
) -> JSONResponse:
    """Report storage failures as a generic 500; details stay in the logs."""
    logger.error(
        "Storage failure on %s %s", request.method, request.url.path, exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Storage failure"})


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(bookmarks.router)
