"""Command line entry: download a mosaic or geocode a query without the GUI."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from .config import (
    DEFAULT_GRID_SIZE,
    DEFAULT_IMAGE_FORMAT,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TILE_ZOOM,
)
from .errors import OrthoError, ValidationError
from .models import GeoPoint
from .services.geocoding import resolve_query
from .services.mosaic import download_mosaic, save_mosaic
from .sources import ORTHO_SOURCES, default_source, get_source

logger = logging.getLogger(__name__)

COMMANDS = ("download", "search")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ortho-downloader",
        description="Download ortho imagery mosaics around a point",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    dl = sub.add_parser("download", help="Download a tile mosaic centered on a point")
    dl.add_argument("--lat", type=float, required=True, help="Center latitude")
    dl.add_argument("--lon", type=float, required=True, help="Center longitude")
    dl.add_argument(
        "--source",
        default=default_source().id,
        choices=[s.id for s in ORTHO_SOURCES],
        help="Tile source id",
    )
    dl.add_argument("--zoom", type=int, default=DEFAULT_TILE_ZOOM, help="Tile zoom (13..21)")
    dl.add_argument("--grid", type=int, default=DEFAULT_GRID_SIZE, help="Odd number of tiles per side")
    dl.add_argument("--format", default=DEFAULT_IMAGE_FORMAT, choices=["jpg", "png"], help="Output format")
    dl.add_argument("--quality", type=int, default=DEFAULT_JPEG_QUALITY, help="JPEG quality (10..100)")
    dl.add_argument("--world-file", action="store_true", help="Write a .jgw/.pgw world file next to the image")
    dl.add_argument("--width", type=int, default=None, help="Resample the mosaic to this width")
    dl.add_argument("--height", type=int, default=None, help="Resample the mosaic to this height")
    dl.add_argument("--out", type=Path, default=DEFAULT_OUTPUT_DIR, help="Output directory")

    search = sub.add_parser("search", help="Look up a place name or \"lat, lon\" pair")
    search.add_argument("query", help="Search text")
    return parser


def _output_size(args: argparse.Namespace) -> Optional[tuple[int, int]]:
    if args.width is None and args.height is None:
        return None
    if args.width is None or args.height is None:
        raise ValidationError("ERR_VALIDATION_OUTPUT_SIZE", "--width and --height go together")
    return args.width, args.height


def run_download(args: argparse.Namespace) -> int:
    try:
        center = GeoPoint(lat=args.lat, lon=args.lon)
    except ValueError as exc:
        raise ValidationError("ERR_VALIDATION_COORDINATES", str(exc)) from exc
    source = get_source(args.source)
    if source is None:
        raise ValidationError("ERR_VALIDATION_SOURCE", f"Unknown tile source: {args.source}")

    def _progress(percent: float) -> None:
        logger.info("Progress %.0f%%", percent)

    result = asyncio.run(
        download_mosaic(
            center,
            args.zoom,
            args.grid,
            source.tile_url,
            _progress,
            image_format=args.format,
            quality=args.quality,
            world_file=args.world_file,
            output_size=_output_size(args),
        )
    )
    for path in save_mosaic(result, Path(args.out).expanduser()):
        print(path)
    return 0


def run_search(args: argparse.Namespace) -> int:
    results = resolve_query(args.query)
    if not results:
        print("No results")
        return 1
    for result in results:
        print(f"{result.lat:.6f}\t{result.lon:.6f}\t{result.name}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    handlers = {"download": run_download, "search": run_search}
    try:
        return handlers[args.command](args)
    except OrthoError as exc:
        logger.error("%s", exc)
        return 2
