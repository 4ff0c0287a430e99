from datetime import date, datetime, timezone
from typing import Optional

_IMAGE_EXTENSIONS = {"jpg": "jpg", "jpeg": "jpg", "png": "png"}


def normalize_format(image_format: str) -> str:
    """
    Map user input ("JPEG", ".png", ...) onto "jpg" / "png".
    """
    key = image_format.strip().lower().lstrip(".")
    try:
        return _IMAGE_EXTENSIONS[key]
    except KeyError:
        raise ValueError(f"Unsupported image format: {image_format}") from None


def format_tile_url(template: str, zoom: int, x: int, y: int) -> str:
    return (
        template.replace("{z}", str(zoom))
        .replace("{x}", str(x))
        .replace("{y}", str(y))
    )


def _coord_label(value: float) -> str:
    return f"{value:.3f}".replace(".", "_")


def make_basename(lat: float, lon: float, tile_zoom: int, day: Optional[date] = None) -> str:
    if day is None:
        day = datetime.now(timezone.utc).date()
    return f"ortho_{_coord_label(lat)}_{_coord_label(lon)}_z{tile_zoom}_{day:%Y%m%d}"


def make_filename(
    lat: float,
    lon: float,
    tile_zoom: int,
    image_format: str,
    day: Optional[date] = None,
) -> str:
    return f"{make_basename(lat, lon, tile_zoom, day)}.{normalize_format(image_format)}"


def estimate_file_size(width: int, height: int, image_format: str, quality: int = 85) -> float:
    """
    Rough size of the encoded image in megabytes, for display only:
    PNG ~3.5 bytes/px, JPEG between 10% and 50% of raw RGB depending on quality.
    """
    pixels = width * height
    if normalize_format(image_format) == "png":
        return (pixels * 3.5) / (1024 * 1024)
    compression_ratio = 0.1 + (quality / 100) * 0.4
    return (pixels * 3 * compression_ratio) / (1024 * 1024)


def format_megabytes(size_mb: float) -> str:
    if size_mb >= 1024:
        return f"{size_mb / 1024:.2f} GB"
    if size_mb >= 10:
        return f"{size_mb:.0f} MB"
    return f"{size_mb:.1f} MB"
