"""Great-circle distances and their display strings."""

import math

from .models import GeoBounds

EARTH_RADIUS_M = 6371000.0


def distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.2f} km"
    return f"{round(meters)} m"


def bounds_dimensions(bounds: GeoBounds) -> tuple[float, float]:
    """
    Width along the northern edge and height along the western edge, meters.
    """
    nw, se = bounds.north_west, bounds.south_east
    width = distance_m(nw.lat, nw.lon, nw.lat, se.lon)
    height = distance_m(nw.lat, nw.lon, se.lat, nw.lon)
    return width, height
