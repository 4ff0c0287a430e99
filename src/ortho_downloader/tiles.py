"""Web-Mercator slippy-map tile math.

Tile ``(0, 0)`` is the top-left tile of a zoom level; each tile is
``TILE_SIZE`` pixels square. Latitudes beyond the Mercator limit are clipped
the same way Leaflet and mercantile clip them.
"""

from __future__ import annotations

import math
from typing import Optional

from .config import MAX_LATITUDE
from .models import GeoBounds, GeoPoint, TileCoord, TileGrid


def clamp_latitude(lat: float) -> float:
    return max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))


def wrap_longitude(lon: float) -> float:
    """Bring a longitude from a repeated world copy back into [-180, 180]."""
    if -180.0 <= lon <= 180.0:
        return lon
    return ((lon + 180.0) % 360.0) - 180.0


def point_to_tile(point: GeoPoint, zoom: int) -> TileCoord:
    n = 2**zoom
    lat_rad = math.radians(clamp_latitude(point.lat))
    x = math.floor((point.lon + 180.0) / 360.0 * n)
    y = math.floor(
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n
    )
    # lon == 180 and the clipped poles land one past the last tile
    x = min(max(x, 0), n - 1)
    y = min(max(y, 0), n - 1)
    return TileCoord(x=x, y=y, zoom=zoom)


def tile_corner(x: float, y: float, zoom: int) -> tuple[float, float]:
    """
    Top-left corner (lat, lon) of tile x/y. Indices outside the zoom level are
    allowed and are not wrapped.
    """
    n = math.pi - 2.0 * math.pi * y / 2**zoom
    lat = math.degrees(math.atan(math.sinh(n)))
    lon = x / 2**zoom * 360.0 - 180.0
    return lat, lon


def tile_to_point(x: float, y: float, zoom: int) -> GeoPoint:
    lat, lon = tile_corner(x, y, zoom)
    return GeoPoint(lat=lat, lon=max(-180.0, min(180.0, lon)))


def build_grid(center: GeoPoint, tile_zoom: int, grid_size: int) -> TileGrid:
    return TileGrid(center=point_to_tile(center, tile_zoom), grid_size=grid_size)


def compute_grid_bounds(
    center: Optional[GeoPoint], tile_zoom: int, grid_size: int
) -> Optional[GeoBounds]:
    if center is None:
        return None
    center_tile = point_to_tile(center, tile_zoom)
    half = grid_size // 2
    nw_lat, nw_lon = tile_corner(center_tile.x - half, center_tile.y - half, tile_zoom)
    # +1: the far corner covers the whole last tile, not just its origin
    se_lat, se_lon = tile_corner(
        center_tile.x + half + 1, center_tile.y + half + 1, tile_zoom
    )
    return GeoBounds.model_construct(
        north_west=GeoPoint.model_construct(lat=nw_lat, lon=nw_lon),
        south_east=GeoPoint.model_construct(lat=se_lat, lon=se_lon),
    )
