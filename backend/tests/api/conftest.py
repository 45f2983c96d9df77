"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator, Generator
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings

# Bearer tokens accepted by the patched JWT decoder, mapped to their claims
TOKEN_CLAIMS = {
    "alice-token": {
        "sub": "auth0|alice",
        "email": "alice@example.com",
        "name": "Alice",
        "picture": "https://example.com/alice.png",
    },
    "bob-token": {"sub": "auth0|bob", "email": "bob@example.com"},
    "no-sub-token": {"email": "nobody@example.com"},
}

# Constant for non-existent entity ID
FAKE_UUID = "00000000-0000-0000-0000-000000000000"


def fake_decode_jwt(token: str, _settings: Settings) -> dict:
    """Stand-in for Auth0 validation: known tokens decode, anything else is rejected."""
    if token not in TOKEN_CLAIMS:
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TOKEN_CLAIMS[token]


@pytest.fixture
def non_dev_settings(database_url: str) -> Settings:
    """Create settings with DEV_MODE=False for auth testing."""
    return Settings(
        database_url=database_url,
        dev_mode=False,
        auth0_domain="test.auth0.com",
        auth0_audience="https://test-api",
        auth0_client_id="test-client-id",
    )


@pytest.fixture
def auth_required_app(
    async_engine: object,  # noqa: ARG001 - ensures db is created
    db_session: AsyncSession,
    non_dev_settings: Settings,
) -> Generator[object]:
    """
    The app with DEV_MODE off and JWT validation replaced by TOKEN_CLAIMS.

    Every client built on it shares the test's database session, so users
    created by one client are visible to the others.
    """
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    def override_get_settings() -> Settings:
        return non_dev_settings

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = override_get_settings

    with patch("core.auth.decode_jwt", side_effect=fake_decode_jwt):
        yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def auth_required_client(auth_required_app: object) -> AsyncGenerator[AsyncClient]:
    """A client with no credentials against the auth-required app."""
    async with AsyncClient(
        transport=ASGITransport(app=auth_required_app),
        base_url="http://test",
    ) as test_client:
        yield test_client


@pytest.fixture
async def alice_client(auth_required_app: object) -> AsyncGenerator[AsyncClient]:
    """A client authenticated as alice."""
    async with AsyncClient(
        transport=ASGITransport(app=auth_required_app),
        base_url="http://test",
        headers={"Authorization": "Bearer alice-token"},
    ) as test_client:
        yield test_client


@pytest.fixture
async def bob_client(auth_required_app: object) -> AsyncGenerator[AsyncClient]:
    """A client authenticated as bob."""
    async with AsyncClient(
        transport=ASGITransport(app=auth_required_app),
        base_url="http://test",
        headers={"Authorization": "Bearer bob-token"},
    ) as test_client:
        yield test_client
