"""Fuel reports for RM, GTL and CTO dashboards."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends

from fuelops.api.dependencies import get_reporting_service, require_reporting
from fuelops.models.schemas import FuelSummary, GridSummaryRow, FuelingHistoryReport
from fuelops.services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["reports"], dependencies=[Depends(require_reporting)])


@router.get("/fuel-summary", response_model=FuelSummary)
async def fuel_summary(
    today: Optional[dt.date] = None,
    reports: ReportingService = Depends(get_reporting_service),
) -> FuelSummary:
    return await reports.fuel_summary(today)


@router.get("/grid-summary", response_model=List[GridSummaryRow])
async def grid_summary(
    today: Optional[dt.date] = None,
    reports: ReportingService = Depends(get_reporting_service),
) -> List[GridSummaryRow]:
    return await reports.grid_summary(today)


@router.get("/fueling-history", response_model=FuelingHistoryReport)
async def fueling_history(
    site_id: Optional[str] = None,
    reports: ReportingService = Depends(get_reporting_service),
) -> FuelingHistoryReport:
    return await reports.fueling_history(site_id)
