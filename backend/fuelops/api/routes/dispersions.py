"""Fuel dispersion submitted by fuelers."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from fuelops.api.dependencies import get_dispersion_service, require_fueler
from fuelops.models.schemas import DispersionCreate, DispersionRead, DispersionSubmitResult
from fuelops.models.tables import UserProfile
from fuelops.services.dispersion_service import DispersionService

router = APIRouter(prefix="/dispersions", tags=["dispersions"])


@router.post("", response_model=DispersionSubmitResult, status_code=status.HTTP_201_CREATED)
async def submit_dispersion(
    data: DispersionCreate,
    user: UserProfile = Depends(require_fueler),
    dispersions: DispersionService = Depends(get_dispersion_service),
) -> DispersionSubmitResult:
    """Record a dispersion; closes the site's open tickets and records the deviation."""
    return await dispersions.submit(data, user_email=user.email)


@router.get("/history", response_model=List[DispersionRead])
async def dispersion_history(
    user: UserProfile = Depends(require_fueler),
    dispersions: DispersionService = Depends(get_dispersion_service),
) -> List[DispersionRead]:
    """The caller's own dispersions, newest first."""
    return [DispersionRead.model_validate(d) for d in await dispersions.history(user.email)]
