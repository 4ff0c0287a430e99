import pytest

from ortho_downloader.models import GeoBounds, GeoPoint
from ortho_downloader.worldfile import generate_world_file, world_file_extension

BOUNDS = GeoBounds(
    north_west=GeoPoint(lat=50.08, lon=14.43),
    south_east=GeoPoint(lat=50.07, lon=14.45),
)


def test_world_file_has_six_lines():
    text = generate_world_file(BOUNDS, 1000, 500)
    assert text.endswith("\n")
    lines = text.splitlines()
    assert len(lines) == 6
    assert all(len(line.split(".")[1]) == 12 for line in lines)


def test_world_file_values():
    lines = [float(v) for v in generate_world_file(BOUNDS, 1000, 500).splitlines()]
    pixel_x = (14.45 - 14.43) / 1000
    pixel_y = (50.08 - 50.07) / 500
    assert lines[0] == pytest.approx(pixel_x)
    assert lines[1] == 0.0
    assert lines[2] == 0.0
    assert lines[3] == pytest.approx(-pixel_y)
    assert lines[3] < 0


def test_world_file_recovers_corner():
    lines = [float(v) for v in generate_world_file(BOUNDS, 1792, 1792).splitlines()]
    assert lines[4] - lines[0] / 2 == pytest.approx(BOUNDS.north_west.lon, abs=1e-9)
    assert lines[5] - lines[3] / 2 == pytest.approx(BOUNDS.north_west.lat, abs=1e-9)


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 5)])
def test_world_file_rejects_empty_raster(width, height):
    with pytest.raises(ValueError):
        generate_world_file(BOUNDS, width, height)


def test_world_file_extension():
    assert world_file_extension("png") == ".pgw"
    assert world_file_extension("jpg") == ".jgw"
    assert world_file_extension("JPEG") == ".jgw"
