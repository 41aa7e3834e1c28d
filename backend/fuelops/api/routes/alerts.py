"""Alert contacts (admin) and the alert outbox."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from fuelops.api.dependencies import get_alert_service, require_admin, require_roles
from fuelops.models.enums import UserRole
from fuelops.models.schemas import AlertContactCreate, AlertContactRead, AlertContactUpdate, AlertLogRead
from fuelops.services.alert_service import AlertService

router = APIRouter(prefix="/alerts", tags=["alerts"])

_log_viewers = require_roles(UserRole.SECURITY, UserRole.RM, UserRole.GTL)


@router.get("/contacts", response_model=List[AlertContactRead], dependencies=[Depends(require_admin)])
async def list_contacts(
    role: Optional[UserRole] = None,
    include_inactive: bool = False,
    alerts: AlertService = Depends(get_alert_service),
) -> List[AlertContactRead]:
    rows = await alerts.contacts(role.value if role else None, include_inactive=include_inactive)
    return [AlertContactRead.model_validate(c) for c in rows]


@router.post(
    "/contacts",
    response_model=AlertContactRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_contact(data: AlertContactCreate, alerts: AlertService = Depends(get_alert_service)) -> AlertContactRead:
    return AlertContactRead.model_validate(await alerts.add_contact(data))


@router.put("/contacts/{contact_id}", response_model=AlertContactRead, dependencies=[Depends(require_admin)])
async def update_contact(
    contact_id: int,
    data: AlertContactUpdate,
    alerts: AlertService = Depends(get_alert_service),
) -> AlertContactRead:
    return AlertContactRead.model_validate(await alerts.update_contact(contact_id, data))


@router.delete("/contacts/{contact_id}", response_model=AlertContactRead, dependencies=[Depends(require_admin)])
async def deactivate_contact(contact_id: int, alerts: AlertService = Depends(get_alert_service)) -> AlertContactRead:
    """Soft delete: the contact stops receiving alerts but stays on record."""
    return AlertContactRead.model_validate(await alerts.deactivate_contact(contact_id))


@router.get("/logs", response_model=List[AlertLogRead], dependencies=[Depends(_log_viewers)])
async def alert_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    alerts: AlertService = Depends(get_alert_service),
) -> List[AlertLogRead]:
    return [AlertLogRead.model_validate(log) for log in await alerts.logs(limit)]
