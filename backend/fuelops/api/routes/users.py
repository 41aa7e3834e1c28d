"""API routes for user management (admin only)."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from fuelops.api.dependencies import get_user_service, require_admin
from fuelops.models.enums import UserRole
from fuelops.models.schemas import UserProfileRead, UserApprovalUpdate, UserRoleUpdate
from fuelops.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[UserProfileRead])
async def list_users(
    approved: Optional[bool] = None,
    role: Optional[UserRole] = None,
    users: UserService = Depends(get_user_service),
) -> List[UserProfileRead]:
    rows = await users.list(approved=approved, role=role.value if role else None)
    return [UserProfileRead.model_validate(u) for u in rows]


@router.get("/{user_id}", response_model=UserProfileRead)
async def get_user_by_id(user_id: str, users: UserService = Depends(get_user_service)) -> UserProfileRead:
    return UserProfileRead.model_validate(await users.get(user_id))


@router.put("/{user_id}/approval", response_model=UserProfileRead)
async def set_user_approval(
    user_id: str,
    data: UserApprovalUpdate,
    users: UserService = Depends(get_user_service),
) -> UserProfileRead:
    return UserProfileRead.model_validate(await users.set_approved(user_id, data.approved))


@router.put("/{user_id}/role", response_model=UserProfileRead)
async def set_user_role(
    user_id: str,
    data: UserRoleUpdate,
    users: UserService = Depends(get_user_service),
) -> UserProfileRead:
    return UserProfileRead.model_validate(await users.set_role(user_id, data.role))
