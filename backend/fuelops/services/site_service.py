"""Site lookups, map locations and the coordinator's site snapshot.

The snapshot gathers everything a coordinator needs before raising a
fuel request: the last fueling visit, days since then, alarm-derived DG
runtime, the generator fleet and the estimated consumption.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.exceptions import NotFoundError
from fuelops.models.schemas import SiteSnapshot, FuelerPrefill, SiteLocation, SiteAlarmAverages
from fuelops.models.tables import (
    Site,
    FuelingHistory,
    DGRunningAlarm,
    DGInventory,
    FuelingTeam,
    Location,
)
from fuelops.utils import fuel_math
from fuelops.utils.dates import (
    to_timestamp,
    parse_date,
    days_between,
    month_label,
    month_start,
    previous_month_start,
)
from fuelops.utils.geo import parse_lat_long

logger = logging.getLogger(__name__)


def _history_sort_key(row: FuelingHistory):
    # Newest first: refueling time, then date, then insertion order
    return (
        to_timestamp(row.refueling_time) or to_timestamp(row.date) or 0,
        row.id or 0,
    )


class SiteService:
    """Read-side operations over the site registry and its history tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_site(self, site_id: str) -> Site:
        result = await self.db.execute(select(Site).where(Site.site_id == site_id.strip()))
        site = result.scalar_one_or_none()
        if site is None:
            raise NotFoundError("Site not found", {"site_id": site_id})
        return site

    async def search(self, q: Optional[str] = None, limit: int = 50) -> List[Site]:
        stmt = select(Site).order_by(Site.site_id)
        if q:
            stmt = stmt.where(func.lower(Site.site_id).contains(q.strip().lower()))
        result = await self.db.execute(stmt.limit(limit))
        return list(result.scalars().all())

    async def fueling_teams(self) -> List[FuelingTeam]:
        result = await self.db.execute(select(FuelingTeam).order_by(FuelingTeam.team_name))
        return list(result.scalars().all())

    async def history(self, site_id: str) -> List[FuelingHistory]:
        """Fueling history of a site, newest first."""
        result = await self.db.execute(select(FuelingHistory).where(FuelingHistory.site_id == site_id))
        return sorted(result.scalars().all(), key=_history_sort_key, reverse=True)

    async def alarm_rows(self, site_id: str) -> List[dict]:
        result = await self.db.execute(
            select(DGRunningAlarm.date, DGRunningAlarm.dg_running_alarm, DGRunningAlarm.load_shedding).where(
                DGRunningAlarm.site_id == site_id
            )
        )
        return [{"date": d, "dg_running_alarm": hours, "load_shedding": ls} for d, hours, ls in result.all()]

    async def fleet(self, site_id: str) -> fuel_math.FleetSummary:
        result = await self.db.execute(select(DGInventory).where(DGInventory.site_id == site_id))
        rows = [
            {
                "dg_label": r.dg_label,
                "operational_status": r.operational_status,
                "dg_capacity": r.dg_capacity,
                "fuel_consumption": r.fuel_consumption,
            }
            for r in result.scalars().all()
        ]
        return fuel_math.summarise_dg_fleet(rows)

    async def alarm_hours(self, site_id: str, start: Optional[dt.date], end: Optional[dt.date]) -> float:
        return fuel_math.sum_alarm_hours(await self.alarm_rows(site_id), start, end)

    async def snapshot(self, site_id: str, today: Optional[dt.date] = None) -> SiteSnapshot:
        """Build the coordinator's view of a site as of ``today``."""
        today = today or dt.date.today()
        site = await self.get_site(site_id)
        history = await self.history(site.site_id)
        latest = history[0] if history else None

        last_fueled = next((h for h in history if fuel_math.as_float(h.fuel_quantity_filled) > 0), latest)
        last_fueling_date = None
        if last_fueled is not None:
            last_fueling_date = last_fueled.date or last_fueled.refueling_time
        last_ms = to_timestamp(last_fueling_date)

        alarm = await self.alarm_hours(site.site_id, parse_date(last_fueling_date), today)
        fleet = await self.fleet(site.site_id)
        last_total = fuel_math.as_float(latest.total) if latest else 0.0
        fuel_consumption = fleet.average_burn_rate * alarm

        logger.debug("Snapshot for %s: alarm=%.2fh burn=%.2fL/h", site.site_id, alarm, fleet.average_burn_rate)
        return SiteSnapshot(
            site_id=site.site_id,
            grid=site.grid or (latest.grid if latest else None),
            address=site.address,
            region=site.region,
            current_site_status=latest.current_site_status if latest else None,
            dg_capacity_kva=latest.dg_capacity_kva if latest else None,
            internal_tank_capacity=site.internal_tank_capacity
            if site.internal_tank_capacity is not None
            else (latest.internal_tank_capacity if latest else None),
            external_tank_capacity=site.external_tank_capacity
            if site.external_tank_capacity is not None
            else (latest.external_tank_capacity if latest else None),
            last_fueling_date=last_fueling_date,
            days_since_last_fueling=days_between(last_ms, today),
            last_total_fuel=last_total,
            last_fuel_filled=fuel_math.as_float(last_fueled.fuel_quantity_filled) if last_fueled else 0.0,
            dg_running_alarm=alarm,
            total_dgs=fleet.total_dgs,
            operational_dgs=fleet.operational_dgs,
            dg_capacity=fleet.operational_capacity,
            bm_fuel_consumption=fleet.average_burn_rate,
            fuel_consumption=fuel_consumption,
            consumption_percentage=fuel_math.consumption_percentage(fuel_consumption, last_total),
        )

    async def fueler_prefill(self, site_id: str) -> FuelerPrefill:
        """Values that pre-fill the fueler's dispersion form."""
        from fuelops.services.ticket_service import TicketService

        site = await self.get_site(site_id)
        history = await self.history(site.site_id)
        latest = history[0] if history else None
        ticket = await TicketService(self.db).latest_actionable(site.site_id)
        return FuelerPrefill(
            site_id=site.site_id,
            grid=site.grid or (latest.grid if latest else None),
            address=site.address,
            dg_capacity=latest.dg_capacity_kva if latest else None,
            meter_reading=latest.hour_meter_after if latest else None,
            last_total_fuel=latest.total if latest else None,
            ticket_id=ticket.id if ticket else None,
            approved_fuel_quantity=ticket.approved_fuel_quantity if ticket else None,
        )

    async def locations(self, q: Optional[str] = None) -> List[SiteLocation]:
        """Map pins for sites with usable coordinates, with their latest alarm day."""
        stmt = select(Location).order_by(Location.site_id)
        if q:
            stmt = stmt.where(func.lower(Location.site_id).contains(q.strip().lower()))
        locations = (await self.db.execute(stmt)).scalars().all()

        latest = {}
        alarms = await self.db.execute(select(DGRunningAlarm))
        for row in alarms.scalars().all():
            day = parse_date(row.date)
            if day is None:
                continue
            seen = latest.get(row.site_id)
            if seen is None or day > seen[0]:
                latest[row.site_id] = (day, row)

        pins = []
        for loc in locations:
            coords = parse_lat_long(loc.lat_long)
            if coords is None:
                logger.debug("Skipping location %s with coordinates %r", loc.site_id, loc.lat_long)
                continue
            alarm = latest[loc.site_id][1] if loc.site_id in latest else None
            pins.append(
                SiteLocation(
                    site_id=loc.site_id,
                    latitude=coords[0],
                    longitude=coords[1],
                    operational_status=loc.operational_status,
                    subregion=loc.subregion,
                    latest_alarm_date=alarm.date if alarm else None,
                    dg_running_alarm=fuel_math.as_float(alarm.dg_running_alarm) if alarm else 0.0,
                    load_shedding=fuel_math.as_float(alarm.load_shedding, default=None) if alarm else None,
                )
            )
        return pins

    async def alarm_averages(self, site_id: str, today: Optional[dt.date] = None) -> SiteAlarmAverages:
        """Average daily DG alarm hours and load shedding over the previous calendar month."""
        today = today or dt.date.today()
        start = previous_month_start(today)
        end = month_start(today) - dt.timedelta(days=1)

        rows = []
        for row in await self.alarm_rows(site_id):
            day = parse_date(row["date"])
            if day is not None and start <= day <= end:
                rows.append(row)
        if not rows:
            return SiteAlarmAverages(site_id=site_id, month=month_label(start))

        hours = sum(fuel_math.as_float(r["dg_running_alarm"]) for r in rows) / len(rows)
        shedding = [v for v in (fuel_math.as_float(r["load_shedding"], default=None) for r in rows) if v is not None]
        return SiteAlarmAverages(
            site_id=site_id,
            month=month_label(start),
            days=len(rows),
            average_dg_running_alarm=hours,
            average_load_shedding=sum(shedding) / len(shedding) if shedding else None,
        )
