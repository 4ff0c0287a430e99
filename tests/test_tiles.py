import math

import pytest

from ortho_downloader.config import MAX_LATITUDE, TILE_SIZE
from ortho_downloader.geo import bounds_dimensions
from ortho_downloader.models import GeoPoint, TileCoord, TileGrid
from ortho_downloader.tiles import (
    wrap_longitude,
    build_grid,
    clamp_latitude,
    compute_grid_bounds,
    point_to_tile,
    tile_to_point,
)

PRAGUE = GeoPoint(lat=50.0755, lon=14.4378)


def test_point_to_tile_origin():
    assert point_to_tile(GeoPoint(lat=0, lon=0), 1) == TileCoord(x=1, y=1, zoom=1)
    assert point_to_tile(GeoPoint(lat=0, lon=0), 0) == TileCoord(x=0, y=0, zoom=0)


def test_point_to_tile_known_value():
    tile = point_to_tile(PRAGUE, 18)
    assert tile.x == math.floor((14.4378 + 180) / 360 * 2**18)
    assert 0 <= tile.y < 2**18


@pytest.mark.parametrize(
    "lat,lon",
    [(50.0755, 14.4378), (-33.8688, 151.2093), (40.7128, -74.006), (0.001, -0.001), (84.9, 179.9)],
)
@pytest.mark.parametrize("zoom", [0, 5, 13, 18, 21])
def test_round_trip_within_one_tile(lat, lon, zoom):
    tile = point_to_tile(GeoPoint(lat=lat, lon=lon), zoom)
    corner = tile_to_point(tile.x, tile.y, zoom)
    far = tile_to_point(tile.x + 1, tile.y + 1, zoom)
    assert corner.lon <= lon <= far.lon + 1e-9
    assert far.lat - 1e-9 <= lat <= corner.lat


def test_latitude_beyond_mercator_is_clamped():
    assert clamp_latitude(89.9) == MAX_LATITUDE
    assert clamp_latitude(-89.9) == -MAX_LATITUDE
    assert point_to_tile(GeoPoint(lat=90, lon=0), 10).y == 0
    assert point_to_tile(GeoPoint(lat=-90, lon=0), 10).y == 2**10 - 1


def test_antimeridian_longitude_stays_inside_grid():
    assert point_to_tile(GeoPoint(lat=0, lon=180), 4).x == 15
    assert point_to_tile(GeoPoint(lat=0, lon=-180), 4).x == 0


def test_tile_to_point_top_left_corner():
    point = tile_to_point(0, 0, 3)
    assert point.lon == pytest.approx(-180.0)
    assert point.lat == pytest.approx(MAX_LATITUDE, abs=1e-6)


def test_grid_placements_row_major():
    grid = build_grid(PRAGUE, 18, 3)
    placements = grid.placements()
    assert len(placements) == 9
    assert [(p.dx, p.dy) for p in placements[:3]] == [(-1, -1), (0, -1), (1, -1)]
    assert (placements[0].pixel_x, placements[0].pixel_y) == (0, 0)
    assert (placements[-1].pixel_x, placements[-1].pixel_y) == (2 * TILE_SIZE, 2 * TILE_SIZE)
    assert placements[4].tile == grid.center


def test_grid_rejects_even_size():
    with pytest.raises(ValueError):
        TileGrid(center=TileCoord(x=0, y=0, zoom=1), grid_size=4)


def test_grid_wraps_columns_and_skips_rows_past_pole():
    grid = build_grid(GeoPoint(lat=85.0, lon=179.99), 4, 3)
    tiles = [p.tile for p in grid.placements()]
    assert tiles[:3] == [None, None, None]
    assert {t.x for t in tiles if t is not None} == {14, 15, 0}


@pytest.mark.parametrize("grid_size", [1, 3, 7, 11])
def test_bounds_cover_exactly_grid_size_tiles(grid_size):
    zoom = 16
    center = point_to_tile(PRAGUE, zoom)
    bounds = compute_grid_bounds(PRAGUE, zoom, grid_size)
    n = 2**zoom
    x_nw = (bounds.north_west.lon + 180) / 360 * n
    x_se = (bounds.south_east.lon + 180) / 360 * n
    assert x_se - x_nw == pytest.approx(grid_size)
    assert round(x_nw) == center.x - grid_size // 2

    half = grid_size // 2
    inside_nw = point_to_tile(
        GeoPoint(lat=bounds.north_west.lat - 1e-9, lon=bounds.north_west.lon + 1e-9), zoom
    )
    inside_se = point_to_tile(
        GeoPoint(lat=bounds.south_east.lat + 1e-9, lon=bounds.south_east.lon - 1e-9), zoom
    )
    assert (inside_nw.x, inside_nw.y) == (center.x - half, center.y - half)
    assert (inside_se.x, inside_se.y) == (center.x + half, center.y + half)


def test_bounds_without_center():
    assert compute_grid_bounds(None, 18, 7) is None


def test_prague_end_to_end_grid():
    grid = build_grid(PRAGUE, 18, 7)
    assert grid.tile_count == 49
    assert len(grid.placements()) == 49
    assert grid.pixel_size == 1792

    width, height = bounds_dimensions(compute_grid_bounds(PRAGUE, 18, 7))
    assert 500 <= width <= 700
    assert 500 <= height <= 700


@pytest.mark.parametrize(
    "lon,expected",
    [(14.4, 14.4), (180.0, 180.0), (-180.0, -180.0), (200.0, -160.0), (374.5, 14.5), (-190.0, 170.0)],
)
def test_wrap_longitude(lon, expected):
    assert wrap_longitude(lon) == pytest.approx(expected)
