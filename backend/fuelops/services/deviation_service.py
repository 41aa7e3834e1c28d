"""Deviation analysis and security follow-up.

A deviation compares what the fueler saw leave the tank since the last
fueling with what the generators should have burnt according to the
running alarms.  Each site keeps one deviation row which is overwritten by
the next dispersion; security works the row until it is closed.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.config import settings
from fuelops.core.exceptions import NotFoundError, ValidationFailed, ConflictError
from fuelops.core.observability import sentry_breadcrumb, sentry_metric_inc
from fuelops.models.enums import DeviationFlag, DeviationTicketStatus
from fuelops.models.schemas import DeviationAnalysis, DeviationFollowUp, DeviationSummary, FuelGapRow
from fuelops.models.tables import Deviation
from fuelops.services.site_service import SiteService
from fuelops.services.ticket_service import TicketService
from fuelops.utils import fuel_math
from fuelops.utils.dates import parse_date

logger = logging.getLogger(__name__)

_FOLLOW_UP_FIELDS = (
    "supervisor_visited",
    "deviation_reason",
    "theft_type",
    "recovered_quantity",
    "action_taken",
    "follow_up_status",
    "remarks",
)


class DeviationService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def preview(
        self,
        site_id: str,
        fueling_date: str,
        before_fuel: float,
        last_total_fuel: Optional[float] = None,
    ) -> DeviationAnalysis:
        """Run the deviation calculation against the site's actionable ticket.

        The alarm window runs from the ticket's last fueling date to the
        fueling date.  Without an explicit ``last_total_fuel`` the ticket's
        figure is used.
        """
        site_id = (site_id or "").strip()
        missing = [
            name
            for name, value in (("site_id", site_id), ("fueling_date", fueling_date), ("before_fuel", before_fuel))
            if value is None or value == ""
        ]
        if missing:
            raise ValidationFailed("Missing required fields", {"missing": missing})
        end = parse_date(fueling_date)
        if end is None:
            raise ValidationFailed("Unrecognised fueling date", {"fueling_date": fueling_date})
        before = fuel_math.as_float(before_fuel, default=None)
        if before is None:
            raise ValidationFailed("Before fuel must be a number", {"before_fuel": before_fuel})

        ticket = await TicketService(self.db).latest_actionable(site_id)
        if ticket is None:
            raise NotFoundError("No open fuel request for site", {"site_id": site_id})

        if last_total_fuel is not None:
            last_total = fuel_math.as_float(last_total_fuel, default=None)
            if last_total is None:
                raise ValidationFailed("Last total fuel must be a number", {"last_total_fuel": last_total_fuel})
        else:
            last_total = ticket.last_total_fuel
        start = parse_date(ticket.last_fueling_date)
        alarm_hours = await SiteService(self.db).alarm_hours(site_id, start, end)
        result = fuel_math.compute_deviation(
            last_total,
            before,
            ticket.bm_fuel_consumption,
            alarm_hours,
            threshold=settings.DEVIATION_THRESHOLD_PERCENT,
        )
        return DeviationAnalysis(
            site_id=site_id,
            ticket_id=ticket.id,
            last_fueling_date=ticket.last_fueling_date,
            fueling_date=fueling_date,
            alarm_hours=alarm_hours,
            bm_fuel_consumption=ticket.bm_fuel_consumption,
            last_total_fuel=last_total,
            before_fuel=before,
            fueler_consumption=result.fueler_consumption,
            alarm_consumption=result.alarm_consumption,
            raw_value=result.raw_value,
            value=result.value,
            status=result.status,
            fuel_consumption=result.alarm_consumption,
            percent_consumption=fuel_math.consumption_percentage(result.alarm_consumption, last_total),
        )

    async def get(self, site_id: str) -> Deviation:
        result = await self.db.execute(select(Deviation).where(Deviation.site_id == site_id))
        deviation = result.scalar_one_or_none()
        if deviation is None:
            raise NotFoundError("Deviation not found", {"site_id": site_id})
        return deviation

    async def record(
        self,
        site_id: str,
        analysis: DeviationAnalysis,
        grid: Optional[str] = None,
        fueler_name: Optional[str] = None,
        commit: bool = True,
    ) -> Deviation:
        """Upsert the site's deviation row.  A flagged deviation is (re)opened."""
        result = await self.db.execute(select(Deviation).where(Deviation.site_id == site_id))
        deviation = result.scalar_one_or_none()
        flagged = analysis.status == DeviationFlag.YES.value
        if deviation is None:
            deviation = Deviation(site_id=site_id, ticket_status=DeviationTicketStatus.OPEN.value)
            self.db.add(deviation)
        elif flagged:
            deviation.ticket_status = DeviationTicketStatus.OPEN.value
            deviation.closed_by = None
        deviation.grid = grid or deviation.grid
        deviation.value = int(round(analysis.value))
        deviation.status = analysis.status
        deviation.fueler_consumption = analysis.fueler_consumption
        deviation.alarm_consumption = analysis.alarm_consumption
        deviation.fueler_name = fueler_name or deviation.fueler_name

        if flagged:
            sentry_breadcrumb("deviations", f"Deviation flagged for {site_id}", level="warning", data={"value": deviation.value})
            sentry_metric_inc("deviations.flagged", tags={"grid": grid or "unknown"})
            logger.warning("Deviation %s%% flagged for site %s", deviation.value, site_id)
        if commit:
            await self.db.commit()
            await self.db.refresh(deviation)
        else:
            await self.db.flush()
        return deviation

    async def follow_up(self, site_id: str, fields: DeviationFollowUp, actor: Optional[str] = None) -> Deviation:
        """Store security's investigation notes; ``close`` ends the follow-up."""
        deviation = await self.get(site_id)
        if deviation.ticket_status == DeviationTicketStatus.CLOSED.value:
            raise ConflictError("Deviation already closed", {"site_id": site_id})
        for name in _FOLLOW_UP_FIELDS:
            value = getattr(fields, name)
            if value is not None:
                setattr(deviation, name, getattr(value, "value", value))
        if fields.close:
            deviation.ticket_status = DeviationTicketStatus.CLOSED.value
            deviation.closed_by = actor
        await self.db.commit()
        await self.db.refresh(deviation)
        logger.info("Deviation follow-up for %s by %s (close=%s)", site_id, actor, fields.close)
        return deviation

    async def list(self, ticket_status: Optional[str] = None) -> List[Deviation]:
        stmt = select(Deviation).order_by(Deviation.updated_at.desc(), Deviation.id.desc())
        if ticket_status:
            stmt = stmt.where(Deviation.ticket_status == ticket_status)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def summary(self) -> DeviationSummary:
        result = await self.db.execute(
            select(Deviation.ticket_status, Deviation.status, func.count(Deviation.id)).group_by(
                Deviation.ticket_status, Deviation.status
            )
        )
        out = DeviationSummary()
        for ticket_status, flag, n in result.all():
            out.total += n
            if ticket_status == DeviationTicketStatus.CLOSED.value:
                out.closed += n
            else:
                out.open += n
            if flag == DeviationFlag.YES.value:
                out.flagged += n
        return out

    async def fuel_gap_rows(self) -> List[FuelGapRow]:
        """Per-site gap between fueler-reported and alarm-based consumption, largest first."""
        rows = []
        for d in await self.list():
            fueler = fuel_math.as_float(d.fueler_consumption)
            alarm = fuel_math.as_float(d.alarm_consumption)
            rows.append(
                FuelGapRow(site_id=d.site_id, grid=d.grid, fueler_consumption=fueler, alarm_consumption=alarm, gap=fueler - alarm)
            )
        rows.sort(key=lambda r: abs(r.gap), reverse=True)
        return rows
