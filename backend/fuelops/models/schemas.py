"""Pydantic schemas for request and response models.

Pydantic models are used for validating and serialising data that
crosses the boundary of the API.  Request models reject missing or
malformed input before any service runs, so a bad form never results in a
partial write.

Whenever you modify the underlying SQLAlchemy models be sure to
update these Pydantic models accordingly.  Pydantic schemas are kept
separate from the ORM models so the API can expose a different shape
from what is stored in the database.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict

from .enums import (
    UserRole,
    TicketStatus,
    ReviewAction,
    SiteOperatingStatus,
    YesNo,
    FuelingMethod,
)


def _clean(v):
    from fuelops.utils.sanitization import sanitize_string
    return sanitize_string(v) if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Users


class ProfileRegister(BaseModel):
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole

    @field_validator("email", "full_name", "phone", mode="before")
    def sanitize_fields(cls, v):
        return _clean(v)


class UserProfileRead(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    approved: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserApprovalUpdate(BaseModel):
    approved: bool = True


# ---------------------------------------------------------------------------
# Sites


class SiteRead(BaseModel):
    id: int
    site_id: str
    grid: Optional[str] = None
    address: Optional[str] = None
    region: Optional[str] = None
    internal_tank_capacity: Optional[float] = None
    external_tank_capacity: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class FuelingTeamRead(BaseModel):
    team_id: str
    team_name: str

    model_config = ConfigDict(from_attributes=True)


class SiteSnapshot(BaseModel):
    """Figures the coordinator sees before raising a fuel request."""

    site_id: str
    grid: Optional[str] = None
    address: Optional[str] = None
    region: Optional[str] = None
    current_site_status: Optional[str] = None
    dg_capacity_kva: Optional[float] = None
    internal_tank_capacity: Optional[float] = None
    external_tank_capacity: Optional[float] = None
    last_fueling_date: Optional[str] = None
    days_since_last_fueling: Optional[int] = None
    last_total_fuel: float = 0
    last_fuel_filled: float = 0
    dg_running_alarm: float = 0
    total_dgs: int = 0
    operational_dgs: int = 0
    dg_capacity: float = 0
    bm_fuel_consumption: float = 0
    fuel_consumption: float = 0
    consumption_percentage: float = 0


class SiteLocation(BaseModel):
    """A site pin with its most recent alarm readings."""

    site_id: str
    latitude: float
    longitude: float
    operational_status: Optional[str] = None
    subregion: Optional[str] = None
    latest_alarm_date: Optional[str] = None
    dg_running_alarm: float = 0
    load_shedding: Optional[float] = None


class SiteAlarmAverages(BaseModel):
    site_id: str
    month: str
    days: int = 0
    average_dg_running_alarm: Optional[float] = None
    average_load_shedding: Optional[float] = None


class FuelerPrefill(BaseModel):
    site_id: str
    grid: Optional[str] = None
    address: Optional[str] = None
    dg_capacity: Optional[float] = None
    meter_reading: Optional[float] = None
    last_total_fuel: Optional[float] = None
    ticket_id: Optional[int] = None
    approved_fuel_quantity: Optional[float] = None


# ---------------------------------------------------------------------------
# Tickets


class TicketCreate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    site_id: str = Field(min_length=1)
    fuel: float = Field(gt=0, description="Litres requested")
    site_status: SiteOperatingStatus

    @field_validator("site_id", mode="before")
    def sanitize_site(cls, v):
        return _clean(v)


class TicketRead(BaseModel):
    id: int
    site_id: str
    grid: Optional[str] = None
    fuel: float
    site_status: Optional[str] = None
    total_dgs: int
    operational_dgs: int
    dg_capacity: float
    last_fueling_date: Optional[str] = None
    days_since_last_fueling: Optional[int] = None
    last_total_fuel: float
    dg_running_alarm: float
    fuel_consumption: float
    consumption_percentage: float
    bm_fuel_consumption: float
    initiated: bool
    ticket_status: TicketStatus
    approved_fuel_quantity: Optional[float] = None
    requested_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    review_comments: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketReview(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    ids: List[int] = Field(min_length=1)
    action: ReviewAction
    approved_fuel_quantity: Optional[float] = Field(default=None, ge=0)
    review_comments: Optional[str] = None

    @field_validator("review_comments", mode="before")
    def sanitize_comments(cls, v):
        return _clean(v)


class TicketReviewResult(BaseModel):
    updated: List[int]
    skipped: List[int]


class TicketStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    closed: int = 0
    open: int = 0


# ---------------------------------------------------------------------------
# Deviations


class DeviationPreviewRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    site_id: str = Field(min_length=1)
    fueling_date: str = Field(min_length=1)
    before_fuel: float
    last_total_fuel: Optional[float] = None


class DeviationAnalysis(BaseModel):
    site_id: str
    ticket_id: Optional[int] = None
    last_fueling_date: Optional[str] = None
    fueling_date: str
    alarm_hours: float
    bm_fuel_consumption: float
    last_total_fuel: float
    before_fuel: float
    fueler_consumption: float
    alarm_consumption: float
    raw_value: float
    value: float
    status: YesNo
    fuel_consumption: float
    percent_consumption: float


class DeviationFollowUp(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    supervisor_visited: Optional[YesNo] = None
    deviation_reason: Optional[str] = None
    theft_type: Optional[str] = None
    recovered_quantity: Optional[float] = Field(default=None, ge=0)
    action_taken: Optional[str] = None
    follow_up_status: Optional[str] = None
    remarks: Optional[str] = None
    close: bool = False

    @field_validator("deviation_reason", "theft_type", "action_taken", "follow_up_status", "remarks", mode="before")
    def sanitize_fields(cls, v):
        return _clean(v)


class DeviationRead(BaseModel):
    id: int
    site_id: str
    grid: Optional[str] = None
    value: int
    status: str
    fueler_consumption: Optional[float] = None
    alarm_consumption: Optional[float] = None
    fueler_name: Optional[str] = None
    supervisor_visited: Optional[str] = None
    deviation_reason: Optional[str] = None
    theft_type: Optional[str] = None
    recovered_quantity: Optional[float] = None
    action_taken: Optional[str] = None
    follow_up_status: Optional[str] = None
    remarks: Optional[str] = None
    ticket_status: str
    closed_by: Optional[str] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeviationSummary(BaseModel):
    total: int = 0
    open: int = 0
    closed: int = 0
    flagged: int = 0


class FuelGapRow(BaseModel):
    site_id: str
    grid: Optional[str] = None
    fueler_consumption: float
    alarm_consumption: float
    gap: float


# ---------------------------------------------------------------------------
# Dispersions


class DispersionCreate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    site_id: str = Field(min_length=1)
    fueling_date: str = Field(min_length=1)
    before_fuel: float = Field(ge=0)
    grid: Optional[str] = None
    dg_capacity: Optional[float] = None
    team_id: Optional[str] = None
    fueler_name: Optional[str] = None
    meter_reading: Optional[float] = None
    last_total_fuel: Optional[float] = None
    fuel_filled: Optional[float] = Field(default=None, ge=0)
    fuel_theft: Optional[YesNo] = None
    fuel_theft_quantity: Optional[float] = Field(default=None, ge=0)
    fuel_loss: Optional[YesNo] = None
    fuel_loss_quantity: Optional[float] = Field(default=None, ge=0)
    site_status: Optional[str] = None
    fueling_method: Optional[FuelingMethod] = None
    before_image_url: Optional[str] = None
    after_image_url: Optional[str] = None
    meter_image_url: Optional[str] = None
    address: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("site_id", "fueling_date", "fueler_name", "address", "remarks", mode="before")
    def sanitize_fields(cls, v):
        return _clean(v)


class DispersionRead(BaseModel):
    id: int
    site_id: str
    grid: Optional[str] = None
    dg_capacity: Optional[float] = None
    user_email: Optional[str] = None
    team_id: Optional[str] = None
    fueler_name: Optional[str] = None
    fueling_date: str
    meter_reading: Optional[float] = None
    last_total_fuel: Optional[float] = None
    before_fuel: float
    fuel_filled: Optional[float] = None
    fuel_theft: Optional[str] = None
    fuel_theft_quantity: Optional[float] = None
    fuel_loss: Optional[str] = None
    fuel_loss_quantity: Optional[float] = None
    site_status: Optional[str] = None
    fueling_method: Optional[str] = None
    before_image_url: Optional[str] = None
    after_image_url: Optional[str] = None
    meter_image_url: Optional[str] = None
    address: Optional[str] = None
    remarks: Optional[str] = None
    ticket_id: Optional[int] = None
    deviation_value: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DispersionSubmitResult(BaseModel):
    dispersion: DispersionRead
    deviation: Optional[DeviationAnalysis] = None
    closed_ticket_ids: List[int] = Field(default_factory=list)
    alerts_queued: int = 0


# ---------------------------------------------------------------------------
# Uplifts


class UpliftCreate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    team_id: str = Field(min_length=1)
    fueler_name: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    site_id: Optional[str] = None
    pump_name: Optional[str] = None
    vendor: Optional[str] = None
    card_number: Optional[str] = None
    pump_reading_before: Optional[float] = None
    pump_reading_after: Optional[float] = None
    receipt_image_url: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("team_id", "fueler_name", "pump_name", "vendor", "remarks", mode="before")
    def sanitize_fields(cls, v):
        return _clean(v)


class UpliftRead(BaseModel):
    id: int
    team_id: str
    fueler_name: str
    user_email: Optional[str] = None
    site_id: Optional[str] = None
    pump_name: Optional[str] = None
    vendor: Optional[str] = None
    card_number: Optional[str] = None
    quantity: float
    pump_reading_before: Optional[float] = None
    pump_reading_after: Optional[float] = None
    receipt_image_url: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Reports


class GridFuel(BaseModel):
    grid: str
    fuel: float


class FuelSummary(BaseModel):
    month: str
    previous_month: str
    total_fuel: float
    previous_total_fuel: float
    fuel_change_percent: float
    sites_fueled: int
    previous_sites_fueled: int
    sites_change_percent: float
    dg_running_hours: float
    previous_dg_running_hours: float
    hours_change_percent: float
    average_fuel_per_site: float
    fuel_efficiency: float
    operational_dgs: int
    priority_grids: List[GridFuel] = Field(default_factory=list)


class GridSummaryRow(BaseModel):
    grid: str
    total_fuel: float
    sites: int
    average_per_site: float
    share_percent: float
    average_load_shedding: float
    has_load_shedding_data: bool
    has_alarm_data: bool


class FuelingHistoryPoint(BaseModel):
    month: str
    fuel: float


class FuelingHistoryReport(BaseModel):
    site_id: Optional[str] = None
    points: List[FuelingHistoryPoint]
    sites: List[str]


# ---------------------------------------------------------------------------
# Alerts


class AlertContactCreate(BaseModel):
    role: UserRole
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[str] = None

    @field_validator("name", "phone", "email", mode="before")
    def sanitize_fields(cls, v):
        return _clean(v)


class AlertContactUpdate(BaseModel):
    role: Optional[UserRole] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("name", "phone", "email", mode="before")
    def sanitize_fields(cls, v):
        return _clean(v)


class AlertContactRead(BaseModel):
    id: int
    role: str
    name: str
    phone: str
    email: Optional[str] = None
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlertLogRead(BaseModel):
    id: int
    contact_id: Optional[int] = None
    phone: str
    message: str
    status: str
    site_id: Optional[str] = None
    grid: Optional[str] = None
    deviation_value: Optional[int] = None
    fueler_name: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
