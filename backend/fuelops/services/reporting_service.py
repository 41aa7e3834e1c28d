"""Monthly fuel reports for regional managers and grid team leads.

Fueling rows carry their date as captured text, so rows are filtered in
Python after normalisation rather than by comparing strings in SQL.
Results are cached in Redis for `REPORT_CACHE_TTL_SECONDS` when Redis is
configured.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.config import settings
from fuelops.models.schemas import (
    FuelSummary,
    GridFuel,
    GridSummaryRow,
    FuelingHistoryPoint,
    FuelingHistoryReport,
)
from fuelops.models.tables import Site, FuelingHistory, DGRunningAlarm, DGInventory
from fuelops.services.cache import cache_get_json, cache_set_json, report_cache_key
from fuelops.utils import fuel_math
from fuelops.utils.dates import parse_date, month_start, previous_month_start, month_label

logger = logging.getLogger(__name__)


def valid_grid(grid: Optional[str]) -> bool:
    return bool(grid) and grid.strip() not in ("", "-")


def grid_sort_key(grid: str, priority: List[str]) -> Tuple[int, str]:
    return (priority.index(grid) if grid in priority else len(priority), grid)


def _in_window(day: Optional[dt.date], start: dt.date, end: dt.date, inclusive_end: bool = True) -> bool:
    if day is None:
        return False
    return start <= day <= end if inclusive_end else start <= day < end


def _fueling_totals(rows: List[FuelingHistory]) -> Tuple[float, int, float]:
    fuel = sum(fuel_math.as_float(r.fuel_quantity_filled) for r in rows)
    sites = len({r.site_id for r in rows})
    hours = sum(fuel_math.as_float(r.hour_meter_after) - fuel_math.as_float(r.hour_meter_before) for r in rows)
    return fuel, sites, hours


class ReportingService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _site_grids(self) -> Dict[str, str]:
        result = await self.db.execute(select(Site.site_id, Site.grid))
        return {site_id: grid.strip() for site_id, grid in result.all() if valid_grid(grid)}

    async def _fueling_rows(self, site_id: Optional[str] = None) -> List[FuelingHistory]:
        stmt = select(FuelingHistory)
        if site_id:
            stmt = stmt.where(FuelingHistory.site_id == site_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def fuel_summary(self, today: Optional[dt.date] = None) -> FuelSummary:
        """This month against last month: fuel, sites, DG hours and priority grids."""
        today = today or dt.date.today()
        key = report_cache_key("fuel_summary", today.isoformat())
        cached = await cache_get_json(key)
        if cached is not None:
            return FuelSummary.model_validate(cached)

        current_start = month_start(today)
        previous_start = previous_month_start(today)
        rows = [(parse_date(r.date), r) for r in await self._fueling_rows()]
        current = [r for d, r in rows if _in_window(d, current_start, today)]
        previous = [r for d, r in rows if _in_window(d, previous_start, current_start, inclusive_end=False)]

        fuel, sites, hours = _fueling_totals(current)
        prev_fuel, prev_sites, prev_hours = _fueling_totals(previous)

        dg_result = await self.db.execute(select(DGInventory.operational_status))
        operational_dgs = sum(1 for (status,) in dg_result.all() if fuel_math.is_operational(status))

        site_grids = await self._site_grids()
        per_grid: Dict[str, float] = defaultdict(float)
        for r in current:
            grid = site_grids.get(r.site_id) or (r.grid or "").strip()
            per_grid[grid] += fuel_math.as_float(r.fuel_quantity_filled)

        summary = FuelSummary(
            month=month_label(current_start),
            previous_month=month_label(previous_start),
            total_fuel=fuel,
            previous_total_fuel=prev_fuel,
            fuel_change_percent=round(fuel_math.percent_change(fuel, prev_fuel), 1),
            sites_fueled=sites,
            previous_sites_fueled=prev_sites,
            sites_change_percent=round(fuel_math.percent_change(sites, prev_sites), 1),
            dg_running_hours=round(hours),
            previous_dg_running_hours=round(prev_hours),
            hours_change_percent=round(fuel_math.percent_change(hours, prev_hours), 1),
            average_fuel_per_site=round(fuel / sites) if sites else 0,
            fuel_efficiency=round(fuel / hours, 2) if hours > 0 else 0,
            operational_dgs=operational_dgs,
            priority_grids=[GridFuel(grid=g, fuel=per_grid.get(g, 0.0)) for g in settings.PRIORITY_GRIDS],
        )
        await cache_set_json(key, summary.model_dump(), settings.REPORT_CACHE_TTL_SECONDS)
        return summary

    async def grid_summary(self, today: Optional[dt.date] = None) -> List[GridSummaryRow]:
        """Per grid fuel for the current month, priority grids first."""
        today = today or dt.date.today()
        key = report_cache_key("grid_summary", today.isoformat())
        cached = await cache_get_json(key)
        if cached is not None:
            return [GridSummaryRow.model_validate(row) for row in cached]

        start = month_start(today)
        site_grids = await self._site_grids()
        fuel: Dict[str, float] = {g: 0.0 for g in site_grids.values()}
        sites: Dict[str, set] = {g: set() for g in site_grids.values()}
        for r in await self._fueling_rows():
            grid = site_grids.get(r.site_id)
            if grid is None or not _in_window(parse_date(r.date), start, today):
                continue
            fuel[grid] += fuel_math.as_float(r.fuel_quantity_filled)
            sites[grid].add(r.site_id)

        alarm_result = await self.db.execute(
            select(DGRunningAlarm.site_id, DGRunningAlarm.date, DGRunningAlarm.load_shedding)
        )
        alarm_records: Dict[str, int] = defaultdict(int)
        load_shedding: Dict[str, List[float]] = defaultdict(list)
        for site_id, date, ls in alarm_result.all():
            grid = site_grids.get(site_id)
            if grid is None or not _in_window(parse_date(date), start, today):
                continue
            alarm_records[grid] += 1
            if ls is not None:
                load_shedding[grid].append(float(ls))

        total_fuel = sum(fuel.values())
        rows = []
        for grid in sorted(fuel, key=lambda g: grid_sort_key(g, settings.PRIORITY_GRIDS)):
            ls_values = load_shedding.get(grid, [])
            rows.append(
                GridSummaryRow(
                    grid=grid,
                    total_fuel=fuel[grid],
                    sites=len(sites[grid]),
                    average_per_site=round(fuel[grid] / len(sites[grid])) if sites[grid] else 0,
                    share_percent=(fuel[grid] / total_fuel * 100) if total_fuel > 0 else 0,
                    average_load_shedding=(sum(ls_values) / len(ls_values)) if ls_values else 0,
                    has_load_shedding_data=bool(ls_values),
                    has_alarm_data=alarm_records.get(grid, 0) > 0,
                )
            )
        await cache_set_json(key, [r.model_dump() for r in rows], settings.REPORT_CACHE_TTL_SECONDS)
        return rows

    async def fueling_history(self, site_id: Optional[str] = None) -> FuelingHistoryReport:
        """Monthly fuel totals for the most recent months that have data."""
        months = settings.FUELING_HISTORY_MONTHS
        key = report_cache_key("fueling_history", site_id or "all", months)
        cached = await cache_get_json(key)
        if cached is not None:
            return FuelingHistoryReport.model_validate(cached)

        all_rows = await self._fueling_rows()
        site_ids = sorted({r.site_id for r in all_rows})
        grouped: Dict[dt.date, float] = defaultdict(float)
        for r in all_rows:
            if site_id and r.site_id != site_id:
                continue
            day = parse_date(r.date)
            if day is None:
                continue
            grouped[month_start(day)] += fuel_math.as_float(r.fuel_quantity_filled)

        recent = sorted(grouped)[-months:]
        report = FuelingHistoryReport(
            site_id=site_id,
            points=[FuelingHistoryPoint(month=month_label(m), fuel=grouped[m]) for m in recent],
            sites=site_ids,
        )
        await cache_set_json(key, report.model_dump(), settings.REPORT_CACHE_TTL_SECONDS)
        return report
