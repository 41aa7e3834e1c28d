"""Common dependencies for FastAPI routes.

This module defines shared dependency functions such as database access,
role gates and service factories.  Token verification lives in
`fuelops.core.security`; the gates here only look at the resolved
profile.

Role rules:

- `admin` passes every gate;
- a profile that is not approved gets 403 "Account awaiting approval" on
  every gated route.
"""

from __future__ import annotations

from typing import AsyncGenerator, Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.database import get_db
from fuelops.core.security import get_current_user
from fuelops.models.enums import UserRole
from fuelops.models.tables import UserProfile
from fuelops.services.alert_service import AlertService
from fuelops.services.deviation_service import DeviationService
from fuelops.services.dispersion_service import DispersionService
from fuelops.services.reporting_service import ReportingService
from fuelops.services.site_service import SiteService
from fuelops.services.ticket_service import TicketService
from fuelops.services.uplift_service import UpliftService
from fuelops.services.user_service import UserService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Alias for `get_db` to be imported in routers."""
    async for session in get_db():
        yield session


async def get_user(current_user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """Return the current user's profile.  Raises if not authenticated."""
    if not current_user:
        raise HTTPException(status_code=401, detail="Unauthenticated")
    return current_user


def require_roles(*roles: UserRole) -> Callable:
    """Build a dependency admitting approved users holding one of ``roles``."""
    allowed = {r.value for r in roles} | {UserRole.ADMIN.value}

    async def _gate(user: UserProfile = Depends(get_user)) -> UserProfile:
        if not user.approved:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account awaiting approval")
        if user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Requires one of: {', '.join(sorted(allowed))}")
        return user

    return _gate


# Shortcuts for the gates used across routers
require_any_approved = require_roles(*UserRole)
require_admin = require_roles(UserRole.ADMIN)
require_coordinator = require_roles(UserRole.COORDINATOR)
require_fueler = require_roles(UserRole.FUELER)
require_reviewer = require_roles(UserRole.RM, UserRole.GTL, UserRole.CTO)
require_security = require_roles(UserRole.SECURITY)
require_reporting = require_roles(UserRole.RM, UserRole.GTL, UserRole.CTO)


# -----------------------------------------------------------------------------
# Service factories

async def get_site_service(db: AsyncSession = Depends(get_db_session)) -> SiteService:
    return SiteService(db)


async def get_ticket_service(db: AsyncSession = Depends(get_db_session)) -> TicketService:
    return TicketService(db)


async def get_deviation_service(db: AsyncSession = Depends(get_db_session)) -> DeviationService:
    return DeviationService(db)


async def get_dispersion_service(db: AsyncSession = Depends(get_db_session)) -> DispersionService:
    return DispersionService(db)


async def get_uplift_service(db: AsyncSession = Depends(get_db_session)) -> UpliftService:
    return UpliftService(db)


async def get_reporting_service(db: AsyncSession = Depends(get_db_session)) -> ReportingService:
    return ReportingService(db)


async def get_alert_service(db: AsyncSession = Depends(get_db_session)) -> AlertService:
    return AlertService(db)


async def get_user_service(db: AsyncSession = Depends(get_db_session)) -> UserService:
    return UserService(db)
