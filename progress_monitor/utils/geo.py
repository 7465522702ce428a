"""Geographic helpers shared by the providers and the monitoring job.

- ``validate_coordinates``: accept only finite, in-range numeric lat/lng.
- ``compute_bounds``: square bounding box around a point, radius in metres.
- ``compute_date_window``: symmetric acquisition window around a date.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

from progress_monitor.models.snapshot import Bounds

METRES_PER_DEGREE_LAT = 111_320.0
"""Approximate metres per degree of latitude (and of longitude at the equator)."""


def validate_coordinates(lat: object, lng: object) -> tuple[float, float] | None:
    """Return ``(lat, lng)`` as floats, or ``None`` if they are unusable.

    Rejects missing values, booleans, strings and other non-numeric types,
    NaN / infinity, latitudes outside [-90, 90] and longitudes outside
    [-180, 180].
    """
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    if not isinstance(lat, int | float) or not isinstance(lng, int | float):
        return None
    lat_f, lng_f = float(lat), float(lng)
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        return None
    if not -90.0 <= lat_f <= 90.0:
        return None
    if not -180.0 <= lng_f <= 180.0:
        return None
    return lat_f, lng_f


def compute_bounds(lat: float, lng: float, radius_m: float) -> Bounds:
    """Return a bounding box extending *radius_m* metres around (lat, lng).

    Uses the equirectangular approximation:
    ``Δlat = r / 111320`` and ``Δlng = r / (111320 · cos(lat))``.
    The box is clipped to [-90, 90] latitude and [-180, 180] longitude, so
    near the poles it spans every longitude instead of wrapping.
    """
    lat_offset = radius_m / METRES_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    lng_offset = radius_m / (METRES_PER_DEGREE_LAT * cos_lat)
    return Bounds(
        north=min(lat + lat_offset, 90.0),
        south=max(lat - lat_offset, -90.0),
        east=min(lng + lng_offset, 180.0),
        west=max(lng - lng_offset, -180.0),
    )


def compute_date_window(target: date, window_days: int) -> tuple[date, date]:
    """Return ``(target - window_days, target + window_days)``."""
    delta = timedelta(days=window_days)
    return target - delta, target + delta
