"""Pydantic schemas for user endpoints."""
from uuid import UUID

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Read-only projection of the authenticated identity."""

    id: UUID
    email: str | None
    display_name: str
    avatar_url: str | None
