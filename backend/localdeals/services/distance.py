"""Great-circle distance helpers."""

import math

from localdeals.services.geocoding import Coordinate

EARTH_RADIUS_MILES = 3959.0

# Rough degrees per mile, used only for the rectangular pre-filter.
DEGREES_PER_MILE = 0.0145


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between *a* and *b* (degrees in, miles out)."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_MILES * c


def bounding_box(center: Coordinate, radius_miles: float) -> tuple[float, float, float, float]:
    """Return ``(min_lat, max_lat, min_lng, max_lng)`` around *center*.

    Approximate: the same degree delta is used for latitude and longitude,
    so the box is not an exact radius bound.
    """
    delta = radius_miles * DEGREES_PER_MILE
    return (
        center.lat - delta,
        center.lat + delta,
        center.lng - delta,
        center.lng + delta,
    )


def is_within_radius(origin: Coordinate, point: Coordinate, radius_miles: float) -> bool:
    return distance_miles(origin, point) <= radius_miles
