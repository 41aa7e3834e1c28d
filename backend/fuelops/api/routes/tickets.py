"""Fuel request tickets: raise, list and review.

Coordinators raise tickets, RM/GTL/CTO approve or reject them and fuelers
see the sites with actionable tickets.
"""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fuelops.api.dependencies import (
    get_ticket_service,
    require_coordinator,
    require_reviewer,
    require_roles,
)
from fuelops.models.enums import TicketStatus, UserRole
from fuelops.models.schemas import TicketCreate, TicketRead, TicketReview, TicketReviewResult, TicketStats
from fuelops.models.tables import UserProfile
from fuelops.services.ticket_service import TicketService

router = APIRouter(prefix="/tickets", tags=["tickets"])

_viewers = require_roles(UserRole.COORDINATOR, UserRole.RM, UserRole.GTL, UserRole.CTO)
_field_roles = require_roles(UserRole.FUELER, UserRole.COORDINATOR)


@router.post("", response_model=TicketRead, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    data: TicketCreate,
    today: Optional[dt.date] = None,
    user: UserProfile = Depends(require_coordinator),
    tickets: TicketService = Depends(get_ticket_service),
) -> TicketRead:
    ticket = await tickets.initiate(data.site_id, data.fuel, data.site_status, today=today, requested_by=user.email)
    return TicketRead.model_validate(ticket)


@router.get("", response_model=List[TicketRead], dependencies=[Depends(_viewers)])
async def list_tickets(
    status_filter: Optional[TicketStatus] = Query(default=None, alias="status"),
    tickets: TicketService = Depends(get_ticket_service),
) -> List[TicketRead]:
    rows = await tickets.list(status_filter.value if status_filter else None)
    return [TicketRead.model_validate(t) for t in rows]


@router.get("/pending", response_model=List[TicketRead], dependencies=[Depends(_viewers)])
async def pending_tickets(tickets: TicketService = Depends(get_ticket_service)) -> List[TicketRead]:
    return [TicketRead.model_validate(t) for t in await tickets.pending()]


@router.get("/done", response_model=List[TicketRead], dependencies=[Depends(_viewers)])
async def done_tickets(tickets: TicketService = Depends(get_ticket_service)) -> List[TicketRead]:
    return [TicketRead.model_validate(t) for t in await tickets.done()]


@router.get("/stats", response_model=TicketStats, dependencies=[Depends(_viewers)])
async def ticket_stats(tickets: TicketService = Depends(get_ticket_service)) -> TicketStats:
    return await tickets.stats()


@router.get("/actionable-sites", response_model=List[str], dependencies=[Depends(_field_roles)])
async def actionable_sites(tickets: TicketService = Depends(get_ticket_service)) -> List[str]:
    """Sites with a Pending or Approved ticket (the fueler's site picker)."""
    return await tickets.actionable_site_ids()


@router.post("/review", response_model=TicketReviewResult)
async def review_tickets(
    data: TicketReview,
    user: UserProfile = Depends(require_reviewer),
    tickets: TicketService = Depends(get_ticket_service),
) -> TicketReviewResult:
    updated, skipped = await tickets.review(
        data.ids,
        data.action,
        approved_fuel_quantity=data.approved_fuel_quantity,
        reviewer=user.email,
        comments=data.review_comments,
    )
    return TicketReviewResult(updated=updated, skipped=skipped)


@router.get("/{ticket_id}", response_model=TicketRead, dependencies=[Depends(_viewers)])
async def get_ticket(ticket_id: int, tickets: TicketService = Depends(get_ticket_service)) -> TicketRead:
    ticket = await tickets.get(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return TicketRead.model_validate(ticket)
