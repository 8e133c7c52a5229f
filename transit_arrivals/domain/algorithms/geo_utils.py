from __future__ import annotations

import math

from transit_arrivals.domain.models import GeoPoint

EARTH_RADIUS_M = 6371000.0


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters (Haversine)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlat = phi2 - phi1
    dlon = math.radians(lon2 - lon1)

    s = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlon / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(s), math.sqrt(1.0 - s))


def haversine_distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return distance(a.lat, a.lon, b.lat, b.lon)


def project_point_onto_segment(
    p: GeoPoint, a: GeoPoint, b: GeoPoint
) -> tuple[float, float]:
    """Project p onto segment ab.

    Returns (t, distance_m): t is the clamped position of the foot along ab,
    computed on raw lon/lat as a plane; distance_m is the Haversine distance
    from p to the interpolated point.
    """

    dx = b.lon - a.lon
    dy = b.lat - a.lat
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return 0.0, haversine_distance_m(p, a)

    t = ((p.lon - a.lon) * dx + (p.lat - a.lat) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    foot_lat = a.lat + t * dy
    foot_lon = a.lon + t * dx
    return t, distance(p.lat, p.lon, foot_lat, foot_lon)
