"""Fuel uplift at the pump."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from fuelops.api.dependencies import get_uplift_service, require_fueler, require_roles
from fuelops.models.enums import UserRole
from fuelops.models.schemas import UpliftCreate, UpliftRead
from fuelops.models.tables import UserProfile
from fuelops.services.uplift_service import UpliftService

router = APIRouter(prefix="/uplifts", tags=["uplifts"])

_viewers = require_roles(UserRole.COORDINATOR, UserRole.RM, UserRole.GTL, UserRole.CTO)


@router.post("", response_model=UpliftRead, status_code=status.HTTP_201_CREATED)
async def record_uplift(
    data: UpliftCreate,
    user: UserProfile = Depends(require_fueler),
    uplifts: UpliftService = Depends(get_uplift_service),
) -> UpliftRead:
    return UpliftRead.model_validate(await uplifts.record(data, user_email=user.email))


@router.get("", response_model=List[UpliftRead], dependencies=[Depends(_viewers)])
async def list_uplifts(
    team_id: Optional[str] = None,
    uplifts: UpliftService = Depends(get_uplift_service),
) -> List[UpliftRead]:
    return [UpliftRead.model_validate(u) for u in await uplifts.list(team_id)]
