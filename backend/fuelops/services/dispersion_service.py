"""Fuel dispersion submitted by a fueler at a site.

Submitting a dispersion is the end of a ticket's life: the deviation is
computed against the site's actionable ticket, the dispersion is stored,
the site's open tickets are closed and, when the deviation is flagged,
alerts are queued.  All of it is committed together.
"""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.exceptions import ValidationFailed
from fuelops.models.enums import DeviationFlag
from fuelops.models.schemas import DispersionCreate, DispersionRead, DispersionSubmitResult
from fuelops.models.tables import Dispersion
from fuelops.services.alert_service import AlertService, DeviationAlert
from fuelops.services.cache import invalidate_reports
from fuelops.services.deviation_service import DeviationService
from fuelops.services.ticket_service import TicketService

logger = logging.getLogger(__name__)


class DispersionService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def submit(self, form: DispersionCreate, user_email: str | None = None) -> DispersionSubmitResult:
        site_id = (form.site_id or "").strip()
        missing = [
            name
            for name, value in (("site_id", site_id), ("fueling_date", form.fueling_date), ("before_fuel", form.before_fuel))
            if value is None or value == ""
        ]
        if missing:
            raise ValidationFailed("Missing required fields", {"missing": missing})

        tickets = TicketService(self.db)
        ticket = await tickets.latest_actionable(site_id)
        analysis = None
        if ticket is not None:
            analysis = await DeviationService(self.db).preview(
                site_id, form.fueling_date, form.before_fuel, form.last_total_fuel
            )
            await DeviationService(self.db).record(
                site_id, analysis, grid=form.grid or ticket.grid, fueler_name=form.fueler_name, commit=False
            )

        values = form.model_dump()
        for key in ("fuel_theft", "fuel_loss", "fueling_method"):
            if values.get(key) is not None:
                values[key] = getattr(values[key], "value", values[key])
        values["site_id"] = site_id
        dispersion = Dispersion(
            **values,
            user_email=user_email,
            ticket_id=ticket.id if ticket else None,
            deviation_value=int(round(analysis.value)) if analysis else None,
        )
        self.db.add(dispersion)
        closed: List[int] = await tickets.close_for_site(site_id)

        queued = 0
        if analysis is not None and analysis.status == DeviationFlag.YES.value:
            queued = await AlertService(self.db).queue_deviation_alert(
                DeviationAlert(
                    site_id=site_id,
                    grid=form.grid or ticket.grid,
                    fueler_name=form.fueler_name,
                    fueling_date=form.fueling_date,
                    fueler_consumption=analysis.fueler_consumption,
                    alarm_consumption=analysis.alarm_consumption,
                    deviation_value=analysis.value,
                    dg_capacity=form.dg_capacity,
                ),
                commit=False,
            )

        await self.db.commit()
        await self.db.refresh(dispersion)
        await invalidate_reports()
        logger.info(
            "Dispersion %s recorded for site %s by %s (closed tickets=%s)",
            dispersion.id, site_id, user_email, closed,
        )
        return DispersionSubmitResult(
            dispersion=DispersionRead.model_validate(dispersion),
            deviation=analysis,
            closed_ticket_ids=closed,
            alerts_queued=queued,
        )

    async def history(self, user_email: str, limit: int = 100) -> List[Dispersion]:
        result = await self.db.execute(
            select(Dispersion)
            .where(Dispersion.user_email == user_email)
            .order_by(Dispersion.created_at.desc(), Dispersion.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
