"""World-file (.pgw / .jgw) sidecars for georeferencing exported mosaics."""

from .models import GeoBounds
from .utils import normalize_format

_PRECISION = 12


def world_file_extension(image_format: str) -> str:
    return ".pgw" if normalize_format(image_format) == "png" else ".jgw"


def generate_world_file(bounds: GeoBounds, pixel_width: int, pixel_height: int) -> str:
    """Build the six-line affine transform for a north-up raster.

    Lines: pixel width, two rotation terms, negated pixel height, then the
    longitude/latitude of the *center* of the upper-left pixel.
    """
    if pixel_width <= 0 or pixel_height <= 0:
        raise ValueError("pixel dimensions must be positive")
    nw, se = bounds.north_west, bounds.south_east
    pixel_size_x = (se.lon - nw.lon) / pixel_width
    pixel_size_y = (nw.lat - se.lat) / pixel_height
    lines = [
        pixel_size_x,
        0.0,
        0.0,
        -pixel_size_y,
        nw.lon + pixel_size_x / 2,
        nw.lat - pixel_size_y / 2,
    ]
    return "\n".join(f"{value:.{_PRECISION}f}" for value in lines) + "\n"
