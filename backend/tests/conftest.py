from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

# Test settings must be in place before `fuelops.core.config` is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["DEV_AUTH_BYPASS"] = "false"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["SENTRY_DSN"] = ""

# Add backend folder to sys.path so `import fuelops...` works in tests when running from backend root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker  # noqa: E402

from fuelops.models.tables import (  # noqa: E402
    Base,
    Site,
    FuelingHistory,
    DGRunningAlarm,
    DGInventory,
    FuelRequest,
    AlertContact,
)


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        yield session
    await engine.dispose()


def site_rows(site_id: str = "SITE-1", grid: str = "C1") -> list:
    """A site with two fueling visits, three alarm days and two generators.

    Last fueling with fuel filled is 01-Jun-25 (total 1000 L).  Alarm hours
    from that date onward sum to 10 h; the operational DG burns 5 L/h.
    """
    return [
        Site(site_id=site_id, grid=grid, address="Main Road", region="North", internal_tank_capacity=1200),
        FuelingHistory(
            site_id=site_id, grid=grid, date="15-May-25", refueling_time="2025-05-15T08:00:00Z",
            total=900, fuel_quantity_filled=300, dg_capacity_kva=20,
            hour_meter_before=100, hour_meter_after=110,
        ),
        FuelingHistory(
            site_id=site_id, grid=grid, date="01-Jun-25", refueling_time="2025-06-01T09:00:00Z",
            total=1000, fuel_quantity_filled=400, dg_capacity_kva=20,
            hour_meter_before=110, hour_meter_after=130, current_site_status="On Grid",
        ),
        DGRunningAlarm(site_id=site_id, date="31-May-25", dg_running_alarm=7, load_shedding=4),
        DGRunningAlarm(site_id=site_id, date="01-Jun-25", dg_running_alarm=4, load_shedding=2),
        DGRunningAlarm(site_id=site_id, date="2025-06-05", dg_running_alarm=6),
        DGInventory(site_id=site_id, dg_label="DG-1", operational_status="Active", dg_capacity=20, fuel_consumption=5),
        DGInventory(site_id=site_id, dg_label="DG-2", operational_status="Non-Operational", dg_capacity=15, fuel_consumption=4),
    ]


def pending_ticket(site_id: str = "SITE-1", **overrides) -> FuelRequest:
    values = dict(
        site_id=site_id,
        grid="C1",
        fuel=300,
        site_status="standby",
        last_fueling_date="01-Jun-25",
        last_total_fuel=1000,
        bm_fuel_consumption=5,
        ticket_status="Pending",
    )
    values.update(overrides)
    return FuelRequest(**values)


def alert_contacts() -> list:
    return [
        AlertContact(role="rm", name="Regional", phone="0300-1234567"),
        AlertContact(role="security", name="Guard", phone="+92 301 7654321"),
        AlertContact(role="gtl", name="Former lead", phone="03009876543", active=False),
    ]


@pytest.fixture
def factories():
    return SimpleNamespace(site_rows=site_rows, pending_ticket=pending_ticket, alert_contacts=alert_contacts)


@pytest_asyncio.fixture
async def seeded(db):
    db.add_all(site_rows())
    await db.commit()
    return db
