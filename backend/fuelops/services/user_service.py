"""User profiles: registration, approval and role changes."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.exceptions import ConflictError, NotFoundError, PermissionDenied
from fuelops.models.enums import UserRole, AUTO_APPROVED_ROLES
from fuelops.models.schemas import ProfileRegister
from fuelops.models.tables import UserProfile

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def register(self, user_id: str, data: ProfileRegister) -> UserProfile:
        """Create the profile for a token subject.

        Fuelers and security staff wait for an admin; other roles are usable
        immediately.  The admin role can only be claimed while no admin
        exists.
        """
        if await self.db.get(UserProfile, user_id) is not None:
            raise ConflictError("Profile already registered", {"id": user_id})
        existing = await self.db.execute(select(UserProfile.id).where(UserProfile.email == data.email))
        if existing.first() is not None:
            raise ConflictError("Email already registered", {"email": data.email})
        if data.role is UserRole.ADMIN:
            admins = await self.db.execute(select(UserProfile.id).where(UserProfile.role == UserRole.ADMIN.value))
            if admins.first() is not None:
                raise PermissionDenied("Admin accounts are created by an existing admin")

        profile = UserProfile(
            id=user_id,
            email=data.email,
            full_name=data.full_name,
            phone=data.phone,
            role=data.role.value,
            approved=data.role in AUTO_APPROVED_ROLES,
        )
        self.db.add(profile)
        await self.db.commit()
        await self.db.refresh(profile)
        logger.info("Registered %s as %s (approved=%s)", profile.email, profile.role, profile.approved)
        return profile

    async def list(self, approved: Optional[bool] = None, role: Optional[str] = None) -> List[UserProfile]:
        stmt = select(UserProfile).order_by(UserProfile.created_at.desc())
        if approved is not None:
            stmt = stmt.where(UserProfile.approved.is_(approved))
        if role:
            stmt = stmt.where(UserProfile.role == role)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get(self, user_id: str) -> UserProfile:
        profile = await self.db.get(UserProfile, user_id)
        if profile is None:
            raise NotFoundError("User not found", {"id": user_id})
        return profile

    async def set_approved(self, user_id: str, approved: bool) -> UserProfile:
        profile = await self.get(user_id)
        profile.approved = approved
        await self.db.commit()
        await self.db.refresh(profile)
        logger.info("User %s approved=%s", profile.email, approved)
        return profile

    async def set_role(self, user_id: str, role: UserRole) -> UserProfile:
        profile = await self.get(user_id)
        profile.role = role.value
        await self.db.commit()
        await self.db.refresh(profile)
        logger.info("User %s role=%s", profile.email, profile.role)
        return profile
