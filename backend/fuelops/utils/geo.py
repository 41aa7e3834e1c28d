"""Coordinate parsing for surveyed site locations."""

from __future__ import annotations

import math
from typing import Optional, Tuple


def parse_lat_long(raw: Optional[str]) -> Optional[Tuple[float, float]]:
    """Parse ``"lat, long"`` into a ``(latitude, longitude)`` pair.

    Returns ``None`` for blanks, anything other than two comma separated
    numbers, and values outside [-90, 90] / [-180, 180].

    >>> parse_lat_long(" 33.6844, 73.0479 ")
    (33.6844, 73.0479)
    >>> parse_lat_long("33.6844") is None
    True
    """
    if not raw or not isinstance(raw, str):
        return None
    parts = raw.strip().split(",")
    if len(parts) != 2:
        return None
    try:
        lat = float(parts[0].strip())
        lon = float(parts[1].strip())
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return lat, lon
