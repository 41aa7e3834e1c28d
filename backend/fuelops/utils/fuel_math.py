"""Fuel consumption and deviation arithmetic.

Pure functions over plain numbers and row mappings.  Services read rows
from the database and hand them here; nothing in this module touches a
session.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from fuelops.utils.dates import parse_date

DEVIATION_FLOOR = 1.0
DEVIATION_CEILING = 100.0
DEFAULT_DEVIATION_THRESHOLD = 20.0


@dataclass(frozen=True)
class DeviationResult:
    fueler_consumption: float
    alarm_consumption: float
    raw_value: float
    value: float
    status: str


@dataclass(frozen=True)
class FleetSummary:
    total_dgs: int
    operational_dgs: int
    operational_capacity: float
    average_burn_rate: float


def as_float(value: Any, default: float = 0.0) -> float:
    """Coerce a numeric column or form value; blanks, junk, NaN and infinities become ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def compute_deviation(
    last_total_fuel: float,
    before_fuel: float,
    burn_rate: float,
    alarm_hours: float,
    threshold: float = DEFAULT_DEVIATION_THRESHOLD,
) -> DeviationResult:
    """Compare the fuel the fueler saw disappear with the alarm-based estimate.

    ``fueler_consumption`` is what left the tank since the last fueling and
    ``alarm_consumption`` is the average burn rate times the alarm-on hours.
    The reported value is the absolute relative gap in percent, clamped to
    ``[1, 100]``.  The flag is computed on the unclamped value.
    """
    fueler = float(last_total_fuel) - float(before_fuel)
    alarm = float(burn_rate) * float(alarm_hours)
    raw = ((alarm / fueler) - 1) * 100 if fueler != 0 else 0.0
    value = max(DEVIATION_FLOOR, min(DEVIATION_CEILING, abs(raw)))
    status = "Yes" if abs(raw) > threshold else "No"
    return DeviationResult(
        fueler_consumption=fueler,
        alarm_consumption=alarm,
        raw_value=raw,
        value=value,
        status=status,
    )


def consumption_percentage(consumed: float, total: float) -> float:
    if total is None or total <= 0:
        return 0.0
    return consumed / total * 100


def percent_change(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def is_operational(status: Optional[str]) -> bool:
    """True for "Active"/"Operational" style statuses, false for "Non-operational"."""
    text = (status or "").strip().lower()
    if text == "active":
        return True
    return "oper" in text and "non" not in text


def summarise_dg_fleet(rows: Iterable[Mapping[str, Any]]) -> FleetSummary:
    """Collapse generator inventory rows into fleet figures.

    Rows sharing a ``dg_label`` describe the same generator and are merged:
    operational if any row says so, capacity and burn rate take the maximum.
    Rows without a label count as distinct generators.
    """
    fleet: dict[str, dict[str, Any]] = {}
    for idx, row in enumerate(rows):
        label = (row.get("dg_label") or "").strip() or f"row-{idx}"
        entry = fleet.setdefault(label, {"operational": False, "capacity": 0.0, "burn": 0.0})
        entry["operational"] = entry["operational"] or is_operational(row.get("operational_status"))
        entry["capacity"] = max(entry["capacity"], as_float(row.get("dg_capacity")))
        entry["burn"] = max(entry["burn"], as_float(row.get("fuel_consumption")))

    operational = [e for e in fleet.values() if e["operational"]]
    burn_rates = [e["burn"] for e in operational]
    return FleetSummary(
        total_dgs=len(fleet),
        operational_dgs=len(operational),
        operational_capacity=sum(e["capacity"] for e in operational),
        average_burn_rate=(sum(burn_rates) / len(burn_rates)) if burn_rates else 0.0,
    )


def sum_alarm_hours(
    rows: Iterable[Mapping[str, Any]],
    start: Optional[dt.date],
    end: Optional[dt.date],
) -> float:
    """Sum ``dg_running_alarm`` for rows dated within ``[start, end]``.

    A missing bound leaves that side open.  Rows whose date cannot be parsed
    are ignored.
    """
    total = 0.0
    for row in rows:
        day = parse_date(row.get("date"))
        if day is None:
            continue
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        total += as_float(row.get("dg_running_alarm"))
    return total
