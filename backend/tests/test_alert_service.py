import pytest

from fuelops.services.alert_service import DeviationAlert, format_deviation_message, normalize_phone


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("0300-1234567", "923001234567"),
        ("+92 300 1234567", "923001234567"),
        ("923001234567", "923001234567"),
        ("3001234567", "923001234567"),
        ("0092 300 1234567", "923001234567"),
        ("00923001234567", "923001234567"),
        ("", None),
        (None, None),
        ("n/a", None),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_normalize_phone_other_country_code():
    assert normalize_phone("07700 900123", country_code="44") == "447700900123"


def test_format_deviation_message():
    message = format_deviation_message(
        DeviationAlert(
            site_id="SITE-1",
            grid="C1",
            fueler_name="Ali",
            fueling_date="05-Jun-25",
            fueler_consumption=100,
            alarm_consumption=50,
            deviation_value=50,
            dg_capacity=20,
        )
    )
    assert "Site ID: SITE-1" in message
    assert "Fueler Consumption: 100.00 L" in message
    assert "Alarm-based Consumption: 50.00 L" in message
    assert "Deviation Value: 50.00%" in message
    assert "DG Capacity: 20 KVA" in message


@pytest.mark.asyncio
async def test_logs_newest_first(db, factories):
    from fuelops.services.alert_service import AlertService

    db.add_all(factories.alert_contacts())
    await db.commit()
    svc = AlertService(db)
    alert = DeviationAlert("S1", "C1", "Ali", "05-Jun-25", 100, 50, 50)
    assert await svc.queue_deviation_alert(alert) == 2
    assert await svc.queue_deviation_alert(DeviationAlert("S2", "C6", None, "06-Jun-25", 10, 90, 100)) == 2
    logs = await svc.logs(limit=3)
    assert len(logs) == 3
    assert logs[0].site_id == "S2"
    assert logs[0].deviation_value == 100
