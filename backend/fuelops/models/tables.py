"""SQLAlchemy ORM models for the fuel operations API.

These models define the relational database schema used by the
application.  Dates typed by the field crew (``date``, ``fueling_date``,
``last_fueling_date``...) are stored as strings exactly as captured
(``DD-MMM-YY`` or ISO) and normalised on read by ``fuelops.utils.dates``.
Enumerated fields are stored as plain strings so that legacy values keep
loading.

If you extend or modify these models call the ``init_db`` helper during
development to recreate the tables.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    Float,
    Text,
)

from fuelops.core.database import Base
from .enums import TicketStatus, DeviationTicketStatus, AlertStatus


class UserProfile(Base):
    """Fueling team roster entry: the role and approval state of a user."""

    __tablename__ = "user_profiles"

    # Subject claim of the identity token
    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False)
    approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)


class Site(Base):
    """Registered telecom site."""

    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, unique=True, nullable=False, index=True)
    grid = Column(String, nullable=True, index=True)
    address = Column(String, nullable=True)
    region = Column(String, nullable=True)
    internal_tank_capacity = Column(Float, nullable=True)
    external_tank_capacity = Column(Float, nullable=True)


class FuelingHistory(Base):
    """One historical fueling visit to a site."""

    __tablename__ = "fueling_history"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, nullable=False, index=True)
    grid = Column(String, nullable=True)
    date = Column(String, nullable=True)
    refueling_time = Column(String, nullable=True)
    total = Column(Float, nullable=True)
    fuel_quantity_filled = Column(Float, nullable=True)
    dg_capacity_kva = Column(Float, nullable=True)
    hour_meter_before = Column(Float, nullable=True)
    hour_meter_after = Column(Float, nullable=True)
    current_site_status = Column(String, nullable=True)
    internal_tank_capacity = Column(Float, nullable=True)
    external_tank_capacity = Column(Float, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)


class DGRunningAlarm(Base):
    """Alarm-derived generator runtime for a site on one day."""

    __tablename__ = "dg_running_alarms"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, nullable=False, index=True)
    grid = Column(String, nullable=True)
    date = Column(String, nullable=True)
    dg_running_alarm = Column(Float, nullable=True)
    load_shedding = Column(Float, nullable=True)


class Location(Base):
    """Map position of a site as surveyed; coordinates are kept as typed."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, nullable=False, index=True)
    # "lat, long" in decimal degrees
    lat_long = Column(String, nullable=True)
    operational_status = Column(String, nullable=True)
    subregion = Column(String, nullable=True)


class DGInventory(Base):
    """Generator inventory row ("DG BM")."""

    __tablename__ = "dg_bm"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, nullable=False, index=True)
    dg_label = Column(String, nullable=True)
    operational_status = Column(String, nullable=True)
    dg_capacity = Column(Float, nullable=True)
    fuel_consumption = Column(Float, nullable=True)


class FuelingTeam(Base):
    __tablename__ = "fueling_teams"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(String, unique=True, nullable=False)
    team_name = Column(String, nullable=False)


class FuelRequest(Base):
    """Fuel request ticket raised by a coordinator."""

    __tablename__ = "fuel_requests"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, nullable=False, index=True)
    grid = Column(String, nullable=True)
    fuel = Column(Float, nullable=False)
    site_status = Column(String, nullable=True)
    total_dgs = Column(Integer, default=0, nullable=False)
    operational_dgs = Column(Integer, default=0, nullable=False)
    dg_capacity = Column(Float, default=0, nullable=False)
    last_fueling_date = Column(String, nullable=True)
    days_since_last_fueling = Column(Integer, nullable=True)
    last_total_fuel = Column(Float, default=0, nullable=False)
    dg_running_alarm = Column(Float, default=0, nullable=False)
    fuel_consumption = Column(Float, default=0, nullable=False)
    consumption_percentage = Column(Float, default=0, nullable=False)
    bm_fuel_consumption = Column(Float, default=0, nullable=False)
    initiated = Column(Boolean, default=False, nullable=False)
    ticket_status = Column(String, default=TicketStatus.PENDING.value, nullable=False, index=True)
    approved_fuel_quantity = Column(Float, nullable=True)
    requested_by = Column(String, nullable=True)
    reviewed_by = Column(String, nullable=True)
    review_comments = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)


class Dispersion(Base):
    """Fuel dispersion submitted by a fueler at a site."""

    __tablename__ = "dispersions"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, nullable=False, index=True)
    grid = Column(String, nullable=True)
    dg_capacity = Column(Float, nullable=True)
    user_email = Column(String, nullable=True, index=True)
    team_id = Column(String, nullable=True)
    fueler_name = Column(String, nullable=True)
    fueling_date = Column(String, nullable=False)
    meter_reading = Column(Float, nullable=True)
    last_total_fuel = Column(Float, nullable=True)
    before_fuel = Column(Float, nullable=False)
    fuel_filled = Column(Float, nullable=True)
    fuel_theft = Column(String, nullable=True)
    fuel_theft_quantity = Column(Float, nullable=True)
    fuel_loss = Column(String, nullable=True)
    fuel_loss_quantity = Column(Float, nullable=True)
    site_status = Column(String, nullable=True)
    fueling_method = Column(String, nullable=True)
    before_image_url = Column(String, nullable=True)
    after_image_url = Column(String, nullable=True)
    meter_image_url = Column(String, nullable=True)
    address = Column(String, nullable=True)
    remarks = Column(Text, nullable=True)
    ticket_id = Column(Integer, nullable=True)
    deviation_value = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)


class Deviation(Base):
    """Latest deviation between fueler-reported and alarm-derived consumption for a site."""

    __tablename__ = "deviations"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(String, unique=True, nullable=False, index=True)
    grid = Column(String, nullable=True)
    value = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    fueler_consumption = Column(Float, nullable=True)
    alarm_consumption = Column(Float, nullable=True)
    fueler_name = Column(String, nullable=True)
    supervisor_visited = Column(String, nullable=True)
    deviation_reason = Column(Text, nullable=True)
    theft_type = Column(String, nullable=True)
    recovered_quantity = Column(Float, nullable=True)
    action_taken = Column(Text, nullable=True)
    follow_up_status = Column(String, nullable=True)
    remarks = Column(Text, nullable=True)
    ticket_status = Column(String, default=DeviationTicketStatus.OPEN.value, nullable=False, index=True)
    closed_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=dt.datetime.utcnow, onupdate=dt.datetime.utcnow, nullable=False)


class Uplift(Base):
    """Fuel drawn at a pump by a fueling team."""

    __tablename__ = "uplifts"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(String, nullable=False)
    fueler_name = Column(String, nullable=False)
    user_email = Column(String, nullable=True)
    site_id = Column(String, nullable=True)
    pump_name = Column(String, nullable=True)
    vendor = Column(String, nullable=True)
    card_number = Column(String, nullable=True)
    quantity = Column(Float, nullable=False)
    pump_reading_before = Column(Float, nullable=True)
    pump_reading_after = Column(Float, nullable=True)
    receipt_image_url = Column(String, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)


class AlertContact(Base):
    """Person notified when a deviation is flagged."""

    __tablename__ = "alert_contacts"

    id = Column(Integer, primary_key=True, index=True)
    role = Column(String, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)


class AlertLog(Base):
    """Outbox row for a deviation alert."""

    __tablename__ = "alert_logs"

    id = Column(Integer, primary_key=True, index=True)
    contact_id = Column(Integer, nullable=True)
    phone = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String, default=AlertStatus.QUEUED.value, nullable=False)
    site_id = Column(String, nullable=True)
    grid = Column(String, nullable=True)
    deviation_value = Column(Integer, nullable=True)
    fueler_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False)
