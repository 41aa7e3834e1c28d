"""Site registry lookups, map locations, the coordinator snapshot and the fueler prefill."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from fuelops.api.dependencies import (
    get_site_service,
    require_any_approved,
    require_reporting,
    require_roles,
)
from fuelops.models.enums import UserRole
from fuelops.models.schemas import (
    SiteRead,
    SiteSnapshot,
    FuelerPrefill,
    FuelingTeamRead,
    SiteLocation,
    SiteAlarmAverages,
)
from fuelops.services.site_service import SiteService

router = APIRouter(prefix="/sites", tags=["sites"])

_snapshot_roles = require_roles(UserRole.COORDINATOR, UserRole.RM, UserRole.GTL, UserRole.CTO)
_field_roles = require_roles(UserRole.FUELER, UserRole.COORDINATOR)


@router.get("", response_model=List[SiteRead], dependencies=[Depends(require_any_approved)])
async def search_sites(
    q: Optional[str] = Query(default=None, description="Case-insensitive substring of the site id"),
    limit: int = Query(default=50, ge=1, le=500),
    sites: SiteService = Depends(get_site_service),
) -> List[SiteRead]:
    return [SiteRead.model_validate(s) for s in await sites.search(q, limit)]


@router.get("/fueling-teams", response_model=List[FuelingTeamRead], dependencies=[Depends(_field_roles)])
async def list_fueling_teams(sites: SiteService = Depends(get_site_service)) -> List[FuelingTeamRead]:
    return [FuelingTeamRead.model_validate(t) for t in await sites.fueling_teams()]


@router.get("/locations", response_model=List[SiteLocation], dependencies=[Depends(require_reporting)])
async def site_locations(
    q: Optional[str] = Query(default=None, description="Case-insensitive substring of the site id"),
    sites: SiteService = Depends(get_site_service),
) -> List[SiteLocation]:
    """Sites with valid coordinates for the map, each with its latest DG alarm and load shedding."""
    return await sites.locations(q)


@router.get("/{site_id}/alarm-averages", response_model=SiteAlarmAverages, dependencies=[Depends(require_reporting)])
async def site_alarm_averages(
    site_id: str,
    today: Optional[dt.date] = None,
    sites: SiteService = Depends(get_site_service),
) -> SiteAlarmAverages:
    return await sites.alarm_averages(site_id, today)


@router.get("/{site_id}/snapshot", response_model=SiteSnapshot, dependencies=[Depends(_snapshot_roles)])
async def site_snapshot(
    site_id: str,
    today: Optional[dt.date] = None,
    sites: SiteService = Depends(get_site_service),
) -> SiteSnapshot:
    """Figures behind a fuel request: last fueling, alarm hours, DG fleet, consumption."""
    return await sites.snapshot(site_id, today)


@router.get("/{site_id}/prefill", response_model=FuelerPrefill, dependencies=[Depends(_field_roles)])
async def fueler_prefill(site_id: str, sites: SiteService = Depends(get_site_service)) -> FuelerPrefill:
    return await sites.fueler_prefill(site_id)
