"""Tile fetch & mosaic engine.

Downloads a centered square grid of tiles in fixed-size concurrent batches,
pastes them into a single Pillow canvas and encodes the result. A tile that
cannot be fetched or decoded is replaced by a flat placeholder; only
allocation and encoding failures abort the download.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import httpx
from PIL import Image

from ..config import (
    BATCH_SIZE,
    CONNECT_TIMEOUT,
    JPEG_QUALITY_MAX,
    JPEG_QUALITY_MIN,
    PLACEHOLDER_COLOR,
    REQUEST_TIMEOUT,
    TILE_SIZE,
    TILE_ZOOM_MAX,
    USER_AGENT,
)
from ..errors import CancelledError, MosaicError, ValidationError
from ..models import CancelToken, GeoPoint, MosaicResult, TileCoord, TilePlacement
from ..tiles import build_grid, compute_grid_bounds
from ..utils import make_basename, normalize_format
from ..worldfile import generate_world_file, world_file_extension

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
TileUrlFn = Callable[[int, int, int], str]


def build_http_client(concurrency: int = BATCH_SIZE) -> httpx.AsyncClient:
    timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)
    limits = httpx.Limits(
        max_connections=concurrency,
        max_keepalive_connections=concurrency,
    )
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
    )


async def fetch_tile(client: httpx.AsyncClient, url: str) -> Image.Image:
    resp = await client.get(url)
    if not resp.is_success:
        raise RuntimeError(f"HTTP {resp.status_code}")
    img = Image.open(BytesIO(resp.content))
    img.load()
    img = img.convert("RGB")
    if img.size != (TILE_SIZE, TILE_SIZE):
        img = img.resize((TILE_SIZE, TILE_SIZE), Image.LANCZOS)
    return img


def _check_cancel(cancel_token: Optional[CancelToken]) -> None:
    if cancel_token is not None and cancel_token.cancelled:
        raise CancelledError("ERR_CANCELLED", "Download cancelled by user")


def _validate(
    tile_zoom: int,
    grid_size: int,
    image_format: str,
    quality: int,
    output_size: Optional[tuple[int, int]],
) -> str:
    if not 0 <= tile_zoom <= TILE_ZOOM_MAX:
        raise ValidationError(
            "ERR_VALIDATION_ZOOM", f"Invalid tile zoom: {tile_zoom} (allowed 0..{TILE_ZOOM_MAX})"
        )
    if grid_size < 1 or grid_size % 2 == 0:
        raise ValidationError(
            "ERR_VALIDATION_GRID_SIZE", f"Grid size must be odd and >= 1, got {grid_size}"
        )
    try:
        fmt = normalize_format(image_format)
    except ValueError as exc:
        raise ValidationError("ERR_VALIDATION_FORMAT", str(exc)) from exc
    if fmt == "jpg" and not JPEG_QUALITY_MIN <= quality <= JPEG_QUALITY_MAX:
        raise ValidationError(
            "ERR_VALIDATION_QUALITY",
            f"JPEG quality must be within {JPEG_QUALITY_MIN}..{JPEG_QUALITY_MAX}, got {quality}",
        )
    if output_size is not None and (output_size[0] <= 0 or output_size[1] <= 0):
        raise ValidationError(
            "ERR_VALIDATION_OUTPUT_SIZE", f"Invalid output size: {output_size[0]}x{output_size[1]}"
        )
    return fmt


def _allocate_canvas(pixels: int) -> Image.Image:
    try:
        return Image.new("RGB", (pixels, pixels))
    except (MemoryError, ValueError) as exc:
        raise MosaicError(
            "ERR_ALLOCATE", f"Cannot allocate {pixels}x{pixels} px canvas: {exc}"
        ) from exc


def encode_image(image: Image.Image, image_format: str, quality: int) -> bytes:
    buffer = BytesIO()
    try:
        if normalize_format(image_format) == "png":
            image.save(buffer, format="PNG")
        else:
            image.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as exc:
        raise MosaicError("ERR_ENCODE", str(exc)) from exc
    return buffer.getvalue()


def _paste_placeholder(canvas: Image.Image, placement: TilePlacement) -> None:
    box = (
        placement.pixel_x,
        placement.pixel_y,
        placement.pixel_x + TILE_SIZE,
        placement.pixel_y + TILE_SIZE,
    )
    canvas.paste(PLACEHOLDER_COLOR, box)


async def _fetch_batch(
    client: httpx.AsyncClient,
    batch: Sequence[TilePlacement],
    tile_url_fn: TileUrlFn,
) -> list:
    async def _one(placement: TilePlacement) -> Optional[Image.Image]:
        tile = placement.tile
        if tile is None:
            return None
        return await fetch_tile(client, tile_url_fn(tile.zoom, tile.x, tile.y))

    return await asyncio.gather(*(_one(p) for p in batch), return_exceptions=True)


async def download_mosaic(
    center: GeoPoint,
    tile_zoom: int,
    grid_size: int,
    tile_url_fn: TileUrlFn,
    on_progress: Optional[ProgressCallback] = None,
    *,
    image_format: str = "jpg",
    quality: int = 85,
    world_file: bool = False,
    output_size: Optional[tuple[int, int]] = None,
    cancel_token: Optional[CancelToken] = None,
    client: Optional[httpx.AsyncClient] = None,
    today: Optional[date] = None,
) -> MosaicResult:
    """Download a ``grid_size`` x ``grid_size`` tile mosaic around ``center``.

    Args:
        center: Point the middle tile is derived from.
        tile_zoom: Download zoom level.
        grid_size: Odd number of tiles per side.
        tile_url_fn: ``(zoom, x, y) -> url`` for a single tile.
        on_progress: Called with a percentage after every batch; the last
            call is exactly ``100.0``.
        image_format: ``"jpg"`` or ``"png"``.
        quality: JPEG quality (10..100), ignored for PNG.
        world_file: Attach a ``.jgw``/``.pgw`` sidecar to the result.
        output_size: Optional ``(width, height)`` to resample the finished
            mosaic to. The tile grid itself always stays authoritative.
        cancel_token: Checked between batches and before each request.
        client: Shared HTTP client; a private one is created when omitted.
        today: Date used in the output filename (UTC today by default).

    Returns:
        Encoded image plus filename, bounds and the list of failed tiles.

    Raises:
        ValidationError: Invalid parameters.
        CancelledError: ``cancel_token`` was set.
        MosaicError: Canvas allocation or encoding failed.
    """
    fmt = _validate(tile_zoom, grid_size, image_format, quality, output_size)
    grid = build_grid(center, tile_zoom, grid_size)
    placements = grid.placements()
    total = len(placements)
    logger.info(
        "Downloading %d tiles (z%d, grid %dx%d) around %.6f, %.6f",
        total,
        tile_zoom,
        grid_size,
        grid_size,
        center.lat,
        center.lon,
    )

    canvas = _allocate_canvas(grid.pixel_size)
    failed: List[TileCoord] = []
    done = 0

    owns_client = client is None
    http = client if client is not None else build_http_client()
    try:
        for start in range(0, total, BATCH_SIZE):
            _check_cancel(cancel_token)
            batch = placements[start : start + BATCH_SIZE]
            results = await _fetch_batch(http, batch, _guarded(tile_url_fn, cancel_token))
            _check_cancel(cancel_token)
            for placement, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, Image.Image):
                    canvas.paste(result, (placement.pixel_x, placement.pixel_y))
                    continue
                _paste_placeholder(canvas, placement)
                if placement.tile is not None:
                    failed.append(placement.tile)
                    logger.warning(
                        "Tile z%d/%d/%d failed: %s",
                        placement.tile.zoom,
                        placement.tile.x,
                        placement.tile.y,
                        result,
                    )
            done += len(batch)
            if on_progress is not None:
                on_progress(done * 100 / total)
    finally:
        if owns_client:
            await http.aclose()

    if output_size is not None and output_size != canvas.size:
        canvas = canvas.resize(output_size, Image.LANCZOS)

    data = encode_image(canvas, fmt, quality)
    width, height = canvas.size
    basename = make_basename(center.lat, center.lon, tile_zoom, today)
    bounds = compute_grid_bounds(center, tile_zoom, grid_size)
    result = MosaicResult(
        data=data,
        filename=f"{basename}.{fmt}",
        width=width,
        height=height,
        image_format=fmt,
        bounds=bounds,
        failed_tiles=failed,
    )
    if world_file:
        result.world_file = generate_world_file(bounds, width, height)
        result.world_file_name = basename + world_file_extension(fmt)
    logger.info(
        "Mosaic %s ready: %dx%d px, %d bytes, %d/%d tiles failed",
        result.filename,
        width,
        height,
        len(data),
        len(failed),
        total,
    )
    return result


def _guarded(tile_url_fn: TileUrlFn, cancel_token: Optional[CancelToken]) -> TileUrlFn:
    if cancel_token is None:
        return tile_url_fn

    def _url(zoom: int, x: int, y: int) -> str:
        _check_cancel(cancel_token)
        return tile_url_fn(zoom, x, y)

    return _url


def save_mosaic(result: MosaicResult, output_dir: Path) -> List[Path]:
    written: List[Path] = []
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        image_path = output_dir / result.filename
        image_path.write_bytes(result.data)
        written.append(image_path)
        if result.world_file is not None and result.world_file_name:
            world_path = output_dir / result.world_file_name
            world_path.write_text(result.world_file, encoding="ascii")
            written.append(world_path)
    except OSError as exc:
        raise MosaicError("ERR_WRITE", f"Cannot write to {output_dir}: {exc}") from exc
    return written
