"""Deviation preview for fuelers and follow-up for security."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends

from fuelops.api.dependencies import (
    get_deviation_service,
    require_fueler,
    require_roles,
    require_security,
)
from fuelops.models.enums import DeviationTicketStatus, UserRole
from fuelops.models.schemas import (
    DeviationAnalysis,
    DeviationFollowUp,
    DeviationPreviewRequest,
    DeviationRead,
    DeviationSummary,
    FuelGapRow,
)
from fuelops.models.tables import UserProfile
from fuelops.services.deviation_service import DeviationService

router = APIRouter(prefix="/deviations", tags=["deviations"])

_viewers = require_roles(UserRole.SECURITY, UserRole.RM, UserRole.GTL, UserRole.CTO)


@router.post("/preview", response_model=DeviationAnalysis, dependencies=[Depends(require_fueler)])
async def preview_deviation(
    data: DeviationPreviewRequest,
    deviations: DeviationService = Depends(get_deviation_service),
) -> DeviationAnalysis:
    """Calculate the deviation a dispersion would record, without saving it."""
    return await deviations.preview(data.site_id, data.fueling_date, data.before_fuel, data.last_total_fuel)


@router.get("", response_model=List[DeviationRead], dependencies=[Depends(_viewers)])
async def list_deviations(
    ticket_status: Optional[DeviationTicketStatus] = None,
    deviations: DeviationService = Depends(get_deviation_service),
) -> List[DeviationRead]:
    rows = await deviations.list(ticket_status.value if ticket_status else None)
    return [DeviationRead.model_validate(d) for d in rows]


@router.get("/summary", response_model=DeviationSummary, dependencies=[Depends(_viewers)])
async def deviation_summary(deviations: DeviationService = Depends(get_deviation_service)) -> DeviationSummary:
    return await deviations.summary()


@router.get("/fuel-gap", response_model=List[FuelGapRow], dependencies=[Depends(_viewers)])
async def fuel_gap(deviations: DeviationService = Depends(get_deviation_service)) -> List[FuelGapRow]:
    return await deviations.fuel_gap_rows()


@router.get("/{site_id}", response_model=DeviationRead, dependencies=[Depends(_viewers)])
async def get_deviation(site_id: str, deviations: DeviationService = Depends(get_deviation_service)) -> DeviationRead:
    return DeviationRead.model_validate(await deviations.get(site_id))


@router.put("/{site_id}/follow-up", response_model=DeviationRead)
async def follow_up_deviation(
    site_id: str,
    data: DeviationFollowUp,
    user: UserProfile = Depends(require_security),
    deviations: DeviationService = Depends(get_deviation_service),
) -> DeviationRead:
    deviation = await deviations.follow_up(site_id, data, actor=user.email)
    return DeviationRead.model_validate(deviation)
