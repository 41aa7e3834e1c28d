"""Fuel uplift: fuel drawn at a pump by a fueling team."""

from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.exceptions import ValidationFailed
from fuelops.models.schemas import UpliftCreate
from fuelops.models.tables import Uplift, FuelingHistory
from fuelops.services.cache import invalidate_reports
from fuelops.services.site_service import SiteService
from fuelops.utils.dates import format_db_date

logger = logging.getLogger(__name__)


class UpliftService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
        self,
        form: UpliftCreate,
        user_email: Optional[str] = None,
        today: Optional[dt.date] = None,
    ) -> Uplift:
        """Store an uplift; with a site it also lands in that site's fueling history."""
        if not (form.team_id or "").strip() or not (form.fueler_name or "").strip():
            raise ValidationFailed("Team and fueler name are required")
        if form.quantity is None or form.quantity <= 0:
            raise ValidationFailed("Quantity must be greater than zero", {"quantity": form.quantity})
        if (
            form.pump_reading_before is not None
            and form.pump_reading_after is not None
            and form.pump_reading_after < form.pump_reading_before
        ):
            raise ValidationFailed("Pump reading after is below reading before")

        site = await SiteService(self.db).get_site(form.site_id) if form.site_id else None
        uplift = Uplift(**form.model_dump(), user_email=user_email)
        self.db.add(uplift)

        if site is not None:
            history = await SiteService(self.db).history(site.site_id)
            previous_total = history[0].total if history and history[0].total is not None else 0.0
            today = today or dt.date.today()
            self.db.add(
                FuelingHistory(
                    site_id=site.site_id,
                    grid=site.grid,
                    date=format_db_date(today),
                    refueling_time=dt.datetime.utcnow().isoformat(timespec="seconds") + "Z",
                    fuel_quantity_filled=form.quantity,
                    total=previous_total + form.quantity,
                    internal_tank_capacity=site.internal_tank_capacity,
                    external_tank_capacity=site.external_tank_capacity,
                )
            )

        await self.db.commit()
        await self.db.refresh(uplift)
        await invalidate_reports()
        logger.info("Uplift %s: %.1f L by team %s", uplift.id, uplift.quantity, uplift.team_id)
        return uplift

    async def list(self, team_id: Optional[str] = None, limit: int = 100) -> List[Uplift]:
        stmt = select(Uplift).order_by(Uplift.created_at.desc(), Uplift.id.desc())
        if team_id:
            stmt = stmt.where(Uplift.team_id == team_id)
        result = await self.db.execute(stmt.limit(limit))
        return list(result.scalars().all())
