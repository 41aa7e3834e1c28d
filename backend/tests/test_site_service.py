from __future__ import annotations

import datetime as dt

import pytest

from fuelops.core.exceptions import NotFoundError
from fuelops.models.tables import FuelingTeam, Location, Site
from fuelops.services.site_service import SiteService
from fuelops.utils.geo import parse_lat_long


@pytest.mark.asyncio
async def test_search_is_case_insensitive_substring(seeded):
    seeded.add_all([Site(site_id="site-22", grid="C6"), Site(site_id="OTHER", grid="B2")])
    await seeded.commit()
    svc = SiteService(seeded)
    assert [s.site_id for s in await svc.search("SITE")] == ["SITE-1", "site-22"]
    assert [s.site_id for s in await svc.search("  te-2 ")] == ["site-22"]
    assert len(await svc.search()) == 3
    assert [s.site_id for s in await svc.search(limit=1)] == ["OTHER"]


@pytest.mark.asyncio
async def test_fueling_teams_sorted_by_name(db):
    db.add_all([FuelingTeam(team_id="T2", team_name="North"), FuelingTeam(team_id="T1", team_name="Central")])
    await db.commit()
    assert [t.team_id for t in await SiteService(db).fueling_teams()] == ["T1", "T2"]


@pytest.mark.asyncio
async def test_prefill_uses_latest_visit_and_actionable_ticket(seeded, factories):
    seeded.add(factories.pending_ticket("SITE-1", ticket_status="Approved", approved_fuel_quantity=250))
    await seeded.commit()
    prefill = await SiteService(seeded).fueler_prefill("SITE-1")
    assert prefill.grid == "C1"
    assert prefill.address == "Main Road"
    assert prefill.dg_capacity == 20
    assert prefill.meter_reading == 130
    assert prefill.last_total_fuel == 1000
    assert prefill.ticket_id is not None
    assert prefill.approved_fuel_quantity == 250


@pytest.mark.asyncio
async def test_prefill_without_ticket_or_history(db):
    db.add(Site(site_id="EMPTY", grid="C6"))
    await db.commit()
    prefill = await SiteService(db).fueler_prefill("EMPTY")
    assert prefill.ticket_id is None
    assert prefill.meter_reading is None
    assert prefill.last_total_fuel is None
    with pytest.raises(NotFoundError):
        await SiteService(db).fueler_prefill("NOPE")


@pytest.mark.asyncio
async def test_locations_skip_bad_coordinates_and_carry_latest_alarm(seeded):
    seeded.add_all(
        [
            Location(site_id="SITE-1", lat_long="33.6844, 73.0479", operational_status="On Air", subregion="North"),
            Location(site_id="SITE-2", lat_long="91, 10"),
            Location(site_id="SITE-3", lat_long=None),
            Location(site_id="SITE-4", lat_long="24.86,67.01", subregion="South"),
        ]
    )
    await seeded.commit()
    pins = await SiteService(seeded).locations()
    assert [p.site_id for p in pins] == ["SITE-1", "SITE-4"]

    site1, site4 = pins
    assert (site1.latitude, site1.longitude) == (33.6844, 73.0479)
    assert site1.operational_status == "On Air"
    assert site1.latest_alarm_date == "2025-06-05"
    assert site1.dg_running_alarm == 6
    assert site1.load_shedding is None
    assert site4.dg_running_alarm == 0
    assert site4.latest_alarm_date is None

    assert [p.site_id for p in await SiteService(seeded).locations("site-4")] == ["SITE-4"]


@pytest.mark.asyncio
async def test_alarm_averages_cover_previous_month(seeded):
    svc = SiteService(seeded)
    may = await svc.alarm_averages("SITE-1", dt.date(2025, 6, 10))
    assert may.month == "May-25"
    assert may.days == 1
    assert may.average_dg_running_alarm == pytest.approx(7)
    assert may.average_load_shedding == pytest.approx(4)

    june = await svc.alarm_averages("SITE-1", dt.date(2025, 7, 3))
    assert june.days == 2
    assert june.average_dg_running_alarm == pytest.approx(5)
    # Only 01-Jun has a load shedding reading
    assert june.average_load_shedding == pytest.approx(2)

    empty = await svc.alarm_averages("SITE-1", dt.date(2025, 9, 1))
    assert empty.days == 0
    assert empty.average_dg_running_alarm is None
    assert empty.average_load_shedding is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("33.6844, 73.0479", (33.6844, 73.0479)),
        ("-33.9,18.4", (-33.9, 18.4)),
        ("33.6844", None),
        ("1,2,3", None),
        ("north, east", None),
        ("91, 10", None),
        ("10, 181", None),
        ("nan, 10", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_lat_long(raw, expected):
    assert parse_lat_long(raw) == expected
