"""Deviation alert contacts and the alert outbox.

Alerts are recorded, not delivered: each flagged deviation writes one
``queued`` row per active contact with the formatted message.  A delivery
worker (WhatsApp/SMS gateway) can drain ``alert_logs`` separately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.config import settings
from fuelops.core.exceptions import NotFoundError, ValidationFailed
from fuelops.models.enums import AlertStatus
from fuelops.models.schemas import AlertContactCreate, AlertContactUpdate
from fuelops.models.tables import AlertContact, AlertLog
from fuelops.utils.sanitization import digits_only

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviationAlert:
    site_id: str
    grid: Optional[str]
    fueler_name: Optional[str]
    fueling_date: str
    fueler_consumption: float
    alarm_consumption: float
    deviation_value: float
    dg_capacity: Optional[float] = None


def normalize_phone(raw: Optional[str], country_code: Optional[str] = None) -> Optional[str]:
    """Digits only, with the country code prefixed when missing.

    A leading trunk ``0`` of a local number is dropped before prefixing:
    ``0300-1234567`` becomes ``923001234567``.
    """
    country_code = country_code or settings.ALERT_COUNTRY_CODE
    digits = digits_only(raw)
    if digits.startswith("00"):
        # International dialling prefix
        digits = digits[2:]
    if not digits:
        return None
    if digits.startswith(country_code):
        return digits
    return country_code + digits.lstrip("0")


def format_deviation_message(alert: DeviationAlert) -> str:
    capacity = f"{alert.dg_capacity:g}" if alert.dg_capacity is not None else "-"
    return (
        "DEVIATION ALERT\n\n"
        f"Site ID: {alert.site_id}\n"
        f"Grid: {alert.grid or '-'}\n"
        f"Fueler Name: {alert.fueler_name or '-'}\n"
        f"Fueling Date: {alert.fueling_date}\n\n"
        "DEVIATION ANALYSIS:\n"
        f"- Fueler Consumption: {alert.fueler_consumption:.2f} L\n"
        f"- Alarm-based Consumption: {alert.alarm_consumption:.2f} L\n"
        f"- Deviation Value: {alert.deviation_value:.2f}%\n"
        f"- DG Capacity: {capacity} KVA\n\n"
        "A deviation has been detected that requires your attention.\n"
        "Please review the fueling data and take necessary action."
    )


class AlertService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def contacts(self, role: Optional[str] = None, include_inactive: bool = False) -> List[AlertContact]:
        stmt = select(AlertContact).order_by(AlertContact.role, AlertContact.name)
        if role:
            stmt = stmt.where(AlertContact.role == role)
        if not include_inactive:
            stmt = stmt.where(AlertContact.active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _get_contact(self, contact_id: int) -> AlertContact:
        contact = await self.db.get(AlertContact, contact_id)
        if contact is None:
            raise NotFoundError("Alert contact not found", {"id": contact_id})
        return contact

    async def add_contact(self, data: AlertContactCreate) -> AlertContact:
        phone = normalize_phone(data.phone)
        if phone is None:
            raise ValidationFailed("Phone number has no digits", {"phone": data.phone})
        contact = AlertContact(role=data.role.value, name=data.name, phone=phone, email=data.email, active=True)
        self.db.add(contact)
        await self.db.commit()
        await self.db.refresh(contact)
        return contact

    async def update_contact(self, contact_id: int, data: AlertContactUpdate) -> AlertContact:
        contact = await self._get_contact(contact_id)
        changes = data.model_dump(exclude_unset=True)
        if "phone" in changes:
            phone = normalize_phone(changes["phone"])
            if phone is None:
                raise ValidationFailed("Phone number has no digits", {"phone": changes["phone"]})
            changes["phone"] = phone
        if changes.get("role") is not None:
            changes["role"] = changes["role"].value
        for key, value in changes.items():
            if value is not None:
                setattr(contact, key, value)
        await self.db.commit()
        await self.db.refresh(contact)
        return contact

    async def deactivate_contact(self, contact_id: int) -> AlertContact:
        contact = await self._get_contact(contact_id)
        contact.active = False
        await self.db.commit()
        await self.db.refresh(contact)
        return contact

    async def queue_deviation_alert(self, alert: DeviationAlert, commit: bool = True) -> int:
        """Write one queued outbox row per active contact; returns the row count."""
        message = format_deviation_message(alert)
        contacts = [c for c in await self.contacts() if c.role in settings.ALERT_ROLES]
        queued = 0
        for contact in contacts:
            phone = normalize_phone(contact.phone)
            if phone is None:
                logger.warning("Skipping alert contact %s without a usable phone", contact.id)
                continue
            self.db.add(
                AlertLog(
                    contact_id=contact.id,
                    phone=phone,
                    message=message,
                    status=AlertStatus.QUEUED.value,
                    site_id=alert.site_id,
                    grid=alert.grid,
                    deviation_value=int(round(alert.deviation_value)),
                    fueler_name=alert.fueler_name,
                )
            )
            queued += 1
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()
        logger.info("Queued %d deviation alert(s) for site %s", queued, alert.site_id)
        return queued

    async def logs(self, limit: int = 100) -> List[AlertLog]:
        result = await self.db.execute(
            select(AlertLog).order_by(AlertLog.created_at.desc(), AlertLog.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
