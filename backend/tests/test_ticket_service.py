from __future__ import annotations

import datetime as dt

import pytest

from fuelops.core.exceptions import NotFoundError, ValidationFailed
from fuelops.models.enums import ReviewAction, TicketStatus
from fuelops.models.tables import FuelRequest, FuelingHistory
from fuelops.services.site_service import SiteService
from fuelops.services.ticket_service import TicketService

TODAY = dt.date(2025, 6, 10)


@pytest.mark.asyncio
async def test_snapshot_uses_last_fueling_with_fuel_filled(seeded):
    snap = await SiteService(seeded).snapshot("SITE-1", TODAY)
    assert snap.last_fueling_date == "01-Jun-25"
    assert snap.days_since_last_fueling == 9
    assert snap.last_total_fuel == 1000
    assert snap.dg_running_alarm == pytest.approx(10)
    assert snap.total_dgs == 2
    assert snap.operational_dgs == 1
    assert snap.dg_capacity == 20
    assert snap.bm_fuel_consumption == 5
    assert snap.fuel_consumption == pytest.approx(50)
    assert snap.consumption_percentage == pytest.approx(5)
    assert snap.current_site_status == "On Grid"


@pytest.mark.asyncio
async def test_snapshot_skips_visits_without_fuel_for_last_fueling_date(seeded):
    seeded.add(FuelingHistory(site_id="SITE-1", date="05-Jun-25", refueling_time="2025-06-05T10:00:00Z", total=980, fuel_quantity_filled=0))
    await seeded.commit()
    snap = await SiteService(seeded).snapshot("SITE-1", TODAY)
    assert snap.last_fueling_date == "01-Jun-25"
    assert snap.last_total_fuel == 980


@pytest.mark.asyncio
async def test_snapshot_unknown_site(db):
    with pytest.raises(NotFoundError):
        await SiteService(db).snapshot("NOPE", TODAY)


@pytest.mark.asyncio
async def test_snapshot_site_without_history(db):
    from fuelops.models.tables import Site

    db.add(Site(site_id="EMPTY", grid="C6"))
    await db.commit()
    snap = await SiteService(db).snapshot("EMPTY", TODAY)
    assert snap.last_fueling_date is None
    assert snap.days_since_last_fueling is None
    assert snap.last_total_fuel == 0
    assert snap.consumption_percentage == 0


@pytest.mark.asyncio
async def test_initiate_stores_snapshot_fields(seeded):
    ticket = await TicketService(seeded).initiate("SITE-1", 300, "prime", today=TODAY, requested_by="coord@example.com")
    assert ticket.id is not None
    assert ticket.ticket_status == TicketStatus.PENDING.value
    assert ticket.site_status == "prime"
    assert ticket.grid == "C1"
    assert ticket.last_fueling_date == "01-Jun-25"
    assert ticket.bm_fuel_consumption == 5
    assert ticket.consumption_percentage == pytest.approx(5)
    assert ticket.initiated is False


@pytest.mark.asyncio
async def test_initiate_marks_high_consumption_as_initiated(seeded):
    from fuelops.models.tables import DGRunningAlarm

    # 180 alarm hours x 5 L/h = 900 L of 1000 L => 90 %
    seeded.add(DGRunningAlarm(site_id="SITE-1", date="08-Jun-25", dg_running_alarm=170))
    await seeded.commit()
    ticket = await TicketService(seeded).initiate("SITE-1", 500, "standby", today=TODAY)
    assert ticket.consumption_percentage == pytest.approx(90)
    assert ticket.initiated is True


@pytest.mark.asyncio
@pytest.mark.parametrize("fuel", [0, -5, "abc", None])
async def test_initiate_rejects_non_positive_fuel(seeded, fuel):
    with pytest.raises(ValidationFailed):
        await TicketService(seeded).initiate("SITE-1", fuel, "standby", today=TODAY)


@pytest.mark.asyncio
async def test_review_only_touches_pending(db, factories):
    db.add_all(
        [
            factories.pending_ticket("A"),
            factories.pending_ticket("B", ticket_status="Approved"),
            factories.pending_ticket("C", ticket_status="Closed"),
            factories.pending_ticket("D"),
        ]
    )
    await db.commit()
    svc = TicketService(db)
    tickets = {t.site_id: t.id for t in await svc.list()}

    updated, skipped = await svc.review(
        [tickets["A"], tickets["B"], tickets["C"], 999],
        ReviewAction.APPROVE,
        approved_fuel_quantity=250,
        reviewer="rm@example.com",
    )
    assert updated == [tickets["A"]]
    assert skipped == [tickets["B"], tickets["C"], 999]

    a = await svc.get(tickets["A"])
    assert a.ticket_status == "Approved"
    assert a.approved_fuel_quantity == 250
    assert a.reviewed_by == "rm@example.com"
    assert a.reviewed_at is not None
    c = await svc.get(tickets["C"])
    assert c.ticket_status == "Closed"


@pytest.mark.asyncio
async def test_reject_does_not_store_quantity(db, factories):
    db.add(factories.pending_ticket("A"))
    await db.commit()
    svc = TicketService(db)
    (ticket,) = await svc.pending()
    updated, _ = await svc.review([ticket.id], "Rejected", approved_fuel_quantity=100, comments="Not needed")
    assert updated == [ticket.id]
    refreshed = await svc.get(ticket.id)
    assert refreshed.ticket_status == "Rejected"
    assert refreshed.approved_fuel_quantity is None
    assert refreshed.review_comments == "Not needed"


@pytest.mark.asyncio
async def test_approve_defaults_quantity_to_requested(db, factories):
    db.add(factories.pending_ticket("A", fuel=320))
    await db.commit()
    svc = TicketService(db)
    (ticket,) = await svc.pending()
    await svc.review([ticket.id], ReviewAction.APPROVE)
    assert (await svc.get(ticket.id)).approved_fuel_quantity == 320


@pytest.mark.asyncio
async def test_review_requires_ids(db):
    with pytest.raises(ValidationFailed):
        await TicketService(db).review([], ReviewAction.APPROVE)


@pytest.mark.asyncio
async def test_stats_and_actionable_sites(db, factories):
    db.add_all(
        [
            factories.pending_ticket("A"),
            factories.pending_ticket("A"),
            factories.pending_ticket("B", ticket_status="Approved"),
            factories.pending_ticket("C", ticket_status="Rejected"),
            factories.pending_ticket("D", ticket_status="Closed"),
        ]
    )
    await db.commit()
    svc = TicketService(db)
    stats = await svc.stats()
    assert (stats.total, stats.pending, stats.approved, stats.rejected, stats.closed, stats.open) == (5, 2, 1, 1, 1, 3)
    assert await svc.actionable_site_ids() == ["A", "B"]
    assert {t.site_id for t in await svc.done()} == {"B", "C"}
    latest = await svc.latest_actionable("A")
    assert isinstance(latest, FuelRequest)
    assert await svc.latest_actionable("C") is None


@pytest.mark.asyncio
async def test_close_for_site(db, factories):
    db.add_all([factories.pending_ticket("A"), factories.pending_ticket("A", ticket_status="Approved"), factories.pending_ticket("B")])
    await db.commit()
    svc = TicketService(db)
    closed = await svc.close_for_site("A")
    await db.commit()
    assert len(closed) == 2
    assert await svc.actionable_site_ids() == ["B"]
