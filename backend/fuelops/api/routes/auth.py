"""Profile registration and the caller's own profile.

Registration only needs a valid token; `/auth/me` needs a profile but not
approval, so the app can show the "waiting for approval" screen.
"""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends, status

from fuelops.api.dependencies import get_user, get_user_service
from fuelops.core.security import get_token_claims
from fuelops.models.schemas import ProfileRegister, UserProfileRead
from fuelops.models.tables import UserProfile
from fuelops.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/profile", response_model=UserProfileRead, status_code=status.HTTP_201_CREATED)
async def register_profile(
    data: ProfileRegister,
    claims: Dict = Depends(get_token_claims),
    users: UserService = Depends(get_user_service),
) -> UserProfileRead:
    """Create the caller's profile with the chosen role."""
    profile = await users.register(claims["sub"], data)
    return UserProfileRead.model_validate(profile)


@router.get("/me", response_model=UserProfileRead)
async def read_current_user(user: UserProfile = Depends(get_user)) -> UserProfileRead:
    """Return the authenticated user's profile."""
    return UserProfileRead.model_validate(user)
