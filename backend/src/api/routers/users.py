"""User endpoints."""
from fastapi import APIRouter, Depends

from api.dependencies import get_current_user
from models.user import User
from schemas.user import UserResponse


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """
    Get the current authenticated user's profile.

    `display_name` falls back to the email, then to "User", when the identity
    provider did not supply a name.
    """
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        display_name=current_user.display_name or current_user.email or "User",
        avatar_url=current_user.avatar_url,
    )
