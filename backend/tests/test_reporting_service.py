from __future__ import annotations

import datetime as dt

import pytest
import pytest_asyncio

from fuelops.core import config as cfg
from fuelops.models.tables import FuelingHistory, Site
from fuelops.services import reporting_service
from fuelops.services.reporting_service import ReportingService, grid_sort_key, valid_grid

TODAY = dt.date(2025, 6, 10)


@pytest_asyncio.fixture
async def report_db(seeded):
    seeded.add_all(
        [
            Site(site_id="SITE-2", grid="C6"),
            Site(site_id="SITE-3", grid="B2"),
            Site(site_id="SITE-4", grid="-"),
            Site(site_id="SITE-5", grid="A9"),
            FuelingHistory(site_id="SITE-2", date="03-Jun-25", fuel_quantity_filled=200, hour_meter_before=50, hour_meter_after=55),
            FuelingHistory(site_id="SITE-3", date="2025-06-04", fuel_quantity_filled=100, hour_meter_before=10, hour_meter_after=15),
            FuelingHistory(site_id="SITE-4", date="05-Jun-25", fuel_quantity_filled=50),
            # Outside both windows
            FuelingHistory(site_id="SITE-2", date="11-Jun-25", fuel_quantity_filled=999),
            FuelingHistory(site_id="SITE-2", date="not a date", fuel_quantity_filled=999),
        ]
    )
    await seeded.commit()
    return seeded


@pytest.mark.asyncio
async def test_fuel_summary_compares_with_previous_month(report_db):
    summary = await ReportingService(report_db).fuel_summary(TODAY)
    assert summary.month == "Jun-25"
    assert summary.previous_month == "May-25"
    assert summary.total_fuel == 750
    assert summary.previous_total_fuel == 300
    assert summary.fuel_change_percent == 150.0
    assert summary.sites_fueled == 4
    assert summary.previous_sites_fueled == 1
    assert summary.sites_change_percent == 300.0
    assert summary.dg_running_hours == 30
    assert summary.hours_change_percent == 200.0
    assert summary.average_fuel_per_site == 188
    assert summary.fuel_efficiency == 25.0
    assert summary.operational_dgs == 1
    assert [(g.grid, g.fuel) for g in summary.priority_grids] == [("C1", 400), ("C6", 200)]


@pytest.mark.asyncio
async def test_fuel_summary_with_empty_previous_month(db):
    summary = await ReportingService(db).fuel_summary(TODAY)
    assert summary.total_fuel == 0
    assert summary.fuel_change_percent == 0
    assert summary.fuel_efficiency == 0
    assert summary.average_fuel_per_site == 0


@pytest.mark.asyncio
async def test_grid_summary_orders_priority_grids_first(report_db):
    rows = await ReportingService(report_db).grid_summary(TODAY)
    assert [r.grid for r in rows] == ["C1", "C6", "A9", "B2"]
    by_grid = {r.grid: r for r in rows}
    assert by_grid["C1"].total_fuel == 400
    assert by_grid["C1"].sites == 1
    assert by_grid["C1"].share_percent == pytest.approx(400 / 700 * 100)
    assert by_grid["C1"].average_load_shedding == pytest.approx(2)
    assert by_grid["C1"].has_load_shedding_data is True
    assert by_grid["C1"].has_alarm_data is True
    assert by_grid["C6"].has_alarm_data is False
    assert by_grid["A9"].total_fuel == 0
    assert by_grid["A9"].average_per_site == 0


@pytest.mark.asyncio
async def test_fueling_history_groups_by_month(report_db, monkeypatch):
    report = await ReportingService(report_db).fueling_history()
    assert [(p.month, p.fuel) for p in report.points] == [("May-25", 300), ("Jun-25", 1749)]
    assert report.sites == ["SITE-1", "SITE-2", "SITE-3", "SITE-4"]

    site_report = await ReportingService(report_db).fueling_history("SITE-1")
    assert [(p.month, p.fuel) for p in site_report.points] == [("May-25", 300), ("Jun-25", 400)]

    monkeypatch.setattr(cfg.settings, "FUELING_HISTORY_MONTHS", 1)
    capped = await ReportingService(report_db).fueling_history()
    assert [p.month for p in capped.points] == ["Jun-25"]


@pytest.mark.asyncio
async def test_reports_are_served_from_cache(report_db, monkeypatch):
    store = {}

    async def fake_get(key):
        return store.get(key)

    async def fake_set(key, value, ttl):
        store[key] = value

    monkeypatch.setattr(reporting_service, "cache_get_json", fake_get)
    monkeypatch.setattr(reporting_service, "cache_set_json", fake_set)

    first = await ReportingService(report_db).fuel_summary(TODAY)
    assert "reports:fuel_summary:2025-06-10" in store
    report_db.add(FuelingHistory(site_id="SITE-1", date="09-Jun-25", fuel_quantity_filled=1000))
    await report_db.commit()
    second = await ReportingService(report_db).fuel_summary(TODAY)
    assert second == first


def test_grid_helpers():
    assert valid_grid("C1")
    assert not valid_grid("-")
    assert not valid_grid("  ")
    assert not valid_grid(None)
    assert sorted(["B2", "C6", "A1", "C1"], key=lambda g: grid_sort_key(g, ["C1", "C6"])) == ["C1", "C6", "A1", "B2"]
