"""Date helpers for the string dates captured by field crews.

Fueling and alarm rows carry dates as free text: ``13-Jun-25``,
``3-May-2025``, ``13/Jun/25``, ISO dates or ISO timestamps (sometimes with
a lowercase ``z``).  Everything is normalised to UTC.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Optional

_MONTHS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]

_MONTH_NAME = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t|tember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
_DAY_MON_YEAR = re.compile(r"^(\d{1,2})[-/ ](" + _MONTH_NAME + r")[-/ ](\d{2}|\d{4})$", re.IGNORECASE)

# Tried in order after the day-month-year and ISO forms
_FALLBACK_FORMATS = (
    "%d/%m/%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d %B %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M",
)


def parse_iso_datetime(value: str | None) -> Optional[dt.datetime]:
    """Parse an ISO8601 date or datetime string into an aware UTC datetime.

    ``datetime.fromisoformat`` does not accept a lowercase ``z`` as the UTC
    designator on every interpreter, so it is normalised first.  Naive values
    are taken to be UTC.  Returns ``None`` if the value cannot be parsed.
    """
    if not value:
        return None
    value = value.strip()
    if value[-1:] in ("z", "Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def _parse_day_month_year(value: str) -> Optional[dt.datetime]:
    match = _DAY_MON_YEAR.match(value)
    if not match:
        return None
    month_key = match.group(2)[:3].lower()
    if month_key not in _MONTHS:
        return None
    year = int(match.group(3))
    if year < 100:
        year += 2000
    try:
        return dt.datetime(year, _MONTHS.index(month_key) + 1, int(match.group(1)), tzinfo=dt.timezone.utc)
    except ValueError:
        return None


def parse_datetime(raw) -> Optional[dt.datetime]:
    """Return an aware UTC datetime for ``raw`` or ``None`` when unsupported."""
    if raw is None:
        return None
    if isinstance(raw, dt.datetime):
        return raw.replace(tzinfo=dt.timezone.utc) if raw.tzinfo is None else raw.astimezone(dt.timezone.utc)
    if isinstance(raw, dt.date):
        return dt.datetime(raw.year, raw.month, raw.day, tzinfo=dt.timezone.utc)
    text = str(raw).strip()
    if not text:
        return None

    parsed = _parse_day_month_year(text) or parse_iso_datetime(text)
    if parsed is not None:
        return parsed
    for fmt in _FALLBACK_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).replace(tzinfo=dt.timezone.utc)
        except ValueError:
            continue
    return None


def to_timestamp(raw) -> Optional[int]:
    """Convert a captured date to integer milliseconds since the Unix epoch.

    Returns ``None`` for empty or unparseable input.

    >>> to_timestamp("1970-01-01")
    0
    """
    parsed = parse_datetime(raw)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


def parse_date(raw) -> Optional[dt.date]:
    """Return the calendar date (UTC) of ``raw`` or ``None``."""
    parsed = parse_datetime(raw)
    return parsed.date() if parsed is not None else None


def format_db_date(value: dt.date) -> str:
    """Format a date the way fueling rows store it (``DD-MMM-YY``)."""
    return f"{value.day:02d}-{_MONTHS[value.month - 1].capitalize()}-{value.year % 100:02d}"


def month_label(value: dt.date) -> str:
    """``MMM-YY`` label used on monthly charts."""
    return f"{_MONTHS[value.month - 1].capitalize()}-{value.year % 100:02d}"


def month_start(value: dt.date) -> dt.date:
    return value.replace(day=1)


def previous_month_start(value: dt.date) -> dt.date:
    first = month_start(value)
    return (first - dt.timedelta(days=1)).replace(day=1)


def start_of_day_ms(value: dt.date) -> int:
    return int(dt.datetime(value.year, value.month, value.day, tzinfo=dt.timezone.utc).timestamp() * 1000)


def days_between(start_ms: Optional[int], today: dt.date) -> Optional[int]:
    """Whole days from ``start_ms`` to the start of ``today``; ``None`` when unknown."""
    if start_ms is None:
        return None
    return (start_of_day_ms(today) - start_ms) // 86_400_000
