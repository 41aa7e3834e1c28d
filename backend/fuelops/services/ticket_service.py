"""Fuel request tickets and their approval workflow.

States::

    Pending -> Approved | Rejected
    Pending | Approved -> Closed   (a dispersion was recorded for the site)

Only Pending tickets can be reviewed.  Pending and Approved tickets are
"actionable": they are what a fueler can disperse against.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.config import settings
from fuelops.core.exceptions import ValidationFailed
from fuelops.core.observability import sentry_breadcrumb, sentry_metric_inc
from fuelops.models.enums import TicketStatus, ReviewAction, SiteOperatingStatus
from fuelops.models.schemas import TicketStats
from fuelops.models.tables import FuelRequest
from fuelops.services.site_service import SiteService

logger = logging.getLogger(__name__)

ACTIONABLE_STATUSES = (TicketStatus.PENDING.value, TicketStatus.APPROVED.value)
DONE_STATUSES = (TicketStatus.APPROVED.value, TicketStatus.REJECTED.value)


class TicketService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def initiate(
        self,
        site_id: str,
        fuel: float,
        site_status: SiteOperatingStatus | str,
        today: Optional[dt.date] = None,
        requested_by: Optional[str] = None,
    ) -> FuelRequest:
        """Raise a fuel request for a site with the snapshot figures attached."""
        try:
            fuel = float(fuel)
        except (TypeError, ValueError):
            raise ValidationFailed("Requested fuel must be a number", {"fuel": fuel})
        if fuel <= 0:
            raise ValidationFailed("Requested fuel must be greater than zero", {"fuel": fuel})
        status_value = SiteOperatingStatus(site_status).value

        snap = await SiteService(self.db).snapshot(site_id, today)
        ticket = FuelRequest(
            site_id=snap.site_id,
            grid=snap.grid,
            fuel=fuel,
            site_status=status_value,
            total_dgs=snap.total_dgs,
            operational_dgs=snap.operational_dgs,
            dg_capacity=snap.dg_capacity,
            last_fueling_date=snap.last_fueling_date,
            days_since_last_fueling=snap.days_since_last_fueling,
            last_total_fuel=snap.last_total_fuel,
            dg_running_alarm=snap.dg_running_alarm,
            fuel_consumption=snap.fuel_consumption,
            consumption_percentage=snap.consumption_percentage,
            bm_fuel_consumption=snap.bm_fuel_consumption,
            initiated=snap.consumption_percentage >= settings.TICKET_INITIATION_THRESHOLD_PERCENT,
            ticket_status=TicketStatus.PENDING.value,
            requested_by=requested_by,
        )
        self.db.add(ticket)
        await self.db.commit()
        await self.db.refresh(ticket)
        logger.info("Ticket %s raised for site %s (%.1f L)", ticket.id, ticket.site_id, fuel)
        return ticket

    async def get(self, ticket_id: int) -> Optional[FuelRequest]:
        return await self.db.get(FuelRequest, ticket_id)

    async def list(self, status: Optional[Iterable[str] | str] = None, limit: int = 200) -> List[FuelRequest]:
        """Tickets newest first, optionally filtered by one or more statuses."""
        stmt = select(FuelRequest).order_by(FuelRequest.created_at.desc(), FuelRequest.id.desc())
        if isinstance(status, str):
            stmt = stmt.where(FuelRequest.ticket_status == status)
        elif status is not None:
            stmt = stmt.where(FuelRequest.ticket_status.in_(list(status)))
        result = await self.db.execute(stmt.limit(limit))
        return list(result.scalars().all())

    async def pending(self) -> List[FuelRequest]:
        return await self.list(TicketStatus.PENDING.value)

    async def done(self) -> List[FuelRequest]:
        return await self.list(DONE_STATUSES)

    async def review(
        self,
        ids: Iterable[int],
        action: ReviewAction | str,
        approved_fuel_quantity: Optional[float] = None,
        reviewer: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> Tuple[List[int], List[int]]:
        """Approve or reject tickets in bulk.

        Returns ``(updated, skipped)``.  Tickets that are missing or no longer
        Pending are skipped untouched.  An approved quantity is stored on
        approval only and defaults to the requested fuel.
        """
        action = ReviewAction(action)
        wanted = list(dict.fromkeys(int(i) for i in ids))
        if not wanted:
            raise ValidationFailed("No tickets selected")
        if approved_fuel_quantity is not None and approved_fuel_quantity < 0:
            raise ValidationFailed("Approved quantity cannot be negative", {"approved_fuel_quantity": approved_fuel_quantity})

        result = await self.db.execute(select(FuelRequest).where(FuelRequest.id.in_(wanted)))
        found = {t.id: t for t in result.scalars().all()}
        now = dt.datetime.utcnow()
        updated: List[int] = []
        skipped: List[int] = []
        for ticket_id in wanted:
            ticket = found.get(ticket_id)
            if ticket is None or ticket.ticket_status != TicketStatus.PENDING.value:
                skipped.append(ticket_id)
                continue
            ticket.ticket_status = action.value
            ticket.reviewed_by = reviewer
            ticket.reviewed_at = now
            ticket.review_comments = comments
            if action is ReviewAction.APPROVE:
                ticket.approved_fuel_quantity = (
                    approved_fuel_quantity if approved_fuel_quantity is not None else ticket.fuel
                )
            updated.append(ticket_id)
        await self.db.commit()

        if updated:
            sentry_breadcrumb("tickets", f"{action.value} {len(updated)} ticket(s)", data={"ids": updated})
            sentry_metric_inc("tickets.reviewed", value=len(updated), tags={"action": action.value})
        logger.info("Review %s by %s: updated=%s skipped=%s", action.value, reviewer, updated, skipped)
        return updated, skipped

    async def stats(self) -> TicketStats:
        result = await self.db.execute(
            select(FuelRequest.ticket_status, func.count(FuelRequest.id)).group_by(FuelRequest.ticket_status)
        )
        counts = {status: n for status, n in result.all()}
        pending = counts.get(TicketStatus.PENDING.value, 0)
        approved = counts.get(TicketStatus.APPROVED.value, 0)
        return TicketStats(
            total=sum(counts.values()),
            pending=pending,
            approved=approved,
            rejected=counts.get(TicketStatus.REJECTED.value, 0),
            closed=counts.get(TicketStatus.CLOSED.value, 0),
            open=pending + approved,
        )

    async def actionable_site_ids(self) -> List[str]:
        result = await self.db.execute(
            select(FuelRequest.site_id)
            .where(FuelRequest.ticket_status.in_(ACTIONABLE_STATUSES))
            .distinct()
            .order_by(FuelRequest.site_id)
        )
        return [row[0] for row in result.all()]

    async def latest_actionable(self, site_id: str) -> Optional[FuelRequest]:
        result = await self.db.execute(
            select(FuelRequest)
            .where(FuelRequest.site_id == site_id, FuelRequest.ticket_status.in_(ACTIONABLE_STATUSES))
            .order_by(FuelRequest.created_at.desc(), FuelRequest.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def close_for_site(self, site_id: str) -> List[int]:
        """Mark the site's actionable tickets Closed; caller commits."""
        result = await self.db.execute(
            select(FuelRequest).where(
                FuelRequest.site_id == site_id, FuelRequest.ticket_status.in_(ACTIONABLE_STATUSES)
            )
        )
        closed = []
        for ticket in result.scalars().all():
            ticket.ticket_status = TicketStatus.CLOSED.value
            closed.append(ticket.id)
        return closed
