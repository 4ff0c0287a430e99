"""State of the ortho download tool.

``DownloadSession`` owns the current settings, writes them back through the
settings store after every change, and guards against a second download
starting while one is running. It has no Qt dependency; the window and the
CLI drive it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from .config import (
    DEFAULT_IMAGE_FORMAT,
    DEFAULT_JPEG_QUALITY,
    JPEG_QUALITY_MAX,
    JPEG_QUALITY_MIN,
    SEARCH_RESULT_ZOOM,
    TILE_SIZE,
    TILE_ZOOM_MAX,
    TILE_ZOOM_MIN,
)
from .errors import DownloadInProgressError, ValidationError
from .geo import bounds_dimensions, format_distance
from .models import CancelToken, DownloadSettings, GeoBounds, GeoPoint, MosaicResult, SearchResult, TileSource
from .services.geocoding import parse_coordinates, resolve_query
from .services.mosaic import ProgressCallback, download_mosaic
from .services.settings import SettingsStore
from .sources import ORTHO_SOURCES, get_source
from .tiles import compute_grid_bounds, wrap_longitude
from .utils import estimate_file_size, normalize_format

logger = logging.getLogger(__name__)

KEY_ZOOM_IN = ("+", "=")
KEY_ZOOM_OUT = ("-",)
ACTION_DOWNLOAD = "download"
ACTION_CLOSE = "close"


@dataclass
class DownloadJob:
    center: GeoPoint
    tile_zoom: int
    grid_size: int
    source: TileSource
    image_format: str
    quality: int
    world_file: bool
    output_size: Optional[tuple[int, int]]
    cancel_token: CancelToken = field(default_factory=CancelToken)


class DownloadSession:
    def __init__(self, store: SettingsStore, sources: Optional[List[TileSource]] = None) -> None:
        self.store = store
        self.sources = list(ORTHO_SOURCES if sources is None else sources)
        self.settings: DownloadSettings = store.load_or_default()
        self.current_map_zoom = self.settings.map_zoom
        self.image_format = DEFAULT_IMAGE_FORMAT
        self.quality = DEFAULT_JPEG_QUALITY
        self.world_file = False
        self.custom_size: Optional[tuple[int, int]] = None
        self.downloading = False
        self.progress = 0.0
        self.search_results: List[SearchResult] = []
        self.job: Optional[DownloadJob] = None

    # -- derived values ---------------------------------------------------

    @property
    def source(self) -> TileSource:
        return get_source(self.settings.source_id, self.sources) or self.sources[0]

    @property
    def center(self) -> Optional[GeoPoint]:
        return self.settings.center

    @property
    def crop_bounds(self) -> Optional[GeoBounds]:
        return compute_grid_bounds(self.settings.center, self.settings.tile_zoom, self.settings.grid_size)

    @property
    def crop_dimensions(self) -> Optional[tuple[str, str]]:
        bounds = self.crop_bounds
        if bounds is None:
            return None
        width, height = bounds_dimensions(bounds)
        return format_distance(width), format_distance(height)

    @property
    def output_dimensions(self) -> tuple[int, int]:
        if self.custom_size is not None:
            return self.custom_size
        pixels = self.settings.grid_size * TILE_SIZE
        return pixels, pixels

    @property
    def estimated_size_mb(self) -> float:
        width, height = self.output_dimensions
        return estimate_file_size(width, height, self.image_format, self.quality)

    @property
    def can_download(self) -> bool:
        return self.settings.center is not None and not self.downloading

    # -- mutations (each one is persisted) --------------------------------

    def _update(self, **changes) -> None:
        self.settings = self.settings.model_copy(update=changes)
        self.store.save(self.settings)

    def select_source(self, source_id: str) -> None:
        if get_source(source_id, self.sources) is None:
            raise ValidationError("ERR_VALIDATION_SOURCE", f"Unknown tile source: {source_id}")
        self._update(source_id=source_id)

    def set_center(self, point: Optional[GeoPoint]) -> None:
        self._update(center=point)

    def set_tile_zoom(self, zoom: int) -> None:
        if not TILE_ZOOM_MIN <= zoom <= TILE_ZOOM_MAX:
            raise ValidationError(
                "ERR_VALIDATION_ZOOM", f"Tile zoom must be within {TILE_ZOOM_MIN}..{TILE_ZOOM_MAX}"
            )
        self._update(tile_zoom=zoom)

    def step_tile_zoom(self, delta: int) -> int:
        zoom = max(TILE_ZOOM_MIN, min(TILE_ZOOM_MAX, self.settings.tile_zoom + delta))
        if zoom != self.settings.tile_zoom:
            self._update(tile_zoom=zoom)
        return zoom

    def set_grid_size(self, grid_size: int) -> None:
        if grid_size < 1 or grid_size % 2 == 0:
            raise ValidationError("ERR_VALIDATION_GRID_SIZE", f"Grid size must be odd, got {grid_size}")
        self._update(grid_size=grid_size)

    def set_view(self, point: GeoPoint, zoom: int) -> None:
        self.current_map_zoom = zoom
        self._update(map_view=point, map_zoom=zoom)

    def set_output(
        self,
        image_format: Optional[str] = None,
        quality: Optional[int] = None,
        world_file: Optional[bool] = None,
    ) -> None:
        if image_format is not None:
            try:
                self.image_format = normalize_format(image_format)
            except ValueError as exc:
                raise ValidationError("ERR_VALIDATION_FORMAT", str(exc)) from exc
        if quality is not None:
            self.quality = max(JPEG_QUALITY_MIN, min(JPEG_QUALITY_MAX, int(quality)))
        if world_file is not None:
            self.world_file = bool(world_file)

    def set_custom_size(self, width: Optional[int], height: Optional[int]) -> None:
        if width is None or height is None:
            self.custom_size = None
            return
        if width <= 0 or height <= 0:
            raise ValidationError("ERR_VALIDATION_OUTPUT_SIZE", f"Invalid output size: {width}x{height}")
        self.custom_size = (int(width), int(height))

    # -- map interaction --------------------------------------------------

    def handle_map_click(self, lat: float, lon: float) -> GeoPoint:
        try:
            point = GeoPoint(lat=lat, lon=wrap_longitude(lon))
        except ValueError as exc:
            raise ValidationError("ERR_VALIDATION_COORDINATES", str(exc)) from exc
        self.set_center(point)
        return point

    def handle_zoom_change(self, zoom: float) -> None:
        self.current_map_zoom = round(zoom)

    def handle_view_change(self, lat: float, lon: float, zoom: float) -> None:
        try:
            point = GeoPoint(lat=lat, lon=wrap_longitude(lon))
        except ValueError as exc:
            raise ValidationError("ERR_VALIDATION_COORDINATES", str(exc)) from exc
        self.set_view(point, round(zoom))

    def handle_key(self, key: str) -> Optional[str]:
        """Apply a keyboard shortcut; return the action the UI must perform."""
        if key in KEY_ZOOM_IN:
            self.step_tile_zoom(1)
        elif key in KEY_ZOOM_OUT:
            self.step_tile_zoom(-1)
        elif key == "Enter":
            if self.can_download:
                return ACTION_DOWNLOAD
        elif key == "Escape":
            return ACTION_CLOSE
        return None

    # -- search -----------------------------------------------------------

    def submit_search(self, query: str, client: Optional[httpx.Client] = None) -> List[SearchResult]:
        """
        A "lat, lon" query is applied immediately and returns no candidates;
        free text returns up to five candidates for the user to pick from.
        """
        cleaned = query.strip()
        if not cleaned:
            self.search_results = []
            return []
        point = parse_coordinates(cleaned)
        if point is not None:
            self._go_to(point)
            self.search_results = []
            return []
        self.search_results = resolve_query(cleaned, client=client)
        return self.search_results

    def select_search_result(self, result: SearchResult) -> None:
        self._go_to(result.point)
        self.search_results = []

    def _go_to(self, point: GeoPoint) -> None:
        self.current_map_zoom = SEARCH_RESULT_ZOOM
        self._update(center=point, map_view=point, map_zoom=SEARCH_RESULT_ZOOM)

    # -- download ---------------------------------------------------------

    def begin_download(self) -> DownloadJob:
        if self.downloading:
            raise DownloadInProgressError("ERR_DOWNLOAD_IN_PROGRESS", "A download is already running")
        if self.settings.center is None:
            raise ValidationError("ERR_VALIDATION_CENTER", "Select a center point first")
        self.downloading = True
        self.progress = 0.0
        self.job = DownloadJob(
            center=self.settings.center,
            tile_zoom=self.settings.tile_zoom,
            grid_size=self.settings.grid_size,
            source=self.source,
            image_format=self.image_format,
            quality=self.quality,
            world_file=self.world_file,
            output_size=self.custom_size,
        )
        logger.info(
            "Starting %s download: z%d, grid %d, center %.6f, %.6f",
            self.job.source.name,
            self.job.tile_zoom,
            self.job.grid_size,
            self.job.center.lat,
            self.job.center.lon,
        )
        return self.job

    def report_progress(self, percent: float) -> None:
        self.progress = max(self.progress, percent)

    def finish_download(self) -> None:
        self.downloading = False
        self.progress = 0.0
        self.job = None

    def cancel_download(self) -> None:
        if self.job is not None:
            self.job.cancel_token.cancel()

    async def run_download(
        self,
        on_progress: Optional[ProgressCallback] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> MosaicResult:
        job = self.begin_download()

        def _progress(percent: float) -> None:
            self.report_progress(percent)
            if on_progress is not None:
                on_progress(percent)

        try:
            return await download_mosaic(
                job.center,
                job.tile_zoom,
                job.grid_size,
                job.source.tile_url,
                _progress,
                image_format=job.image_format,
                quality=job.quality,
                world_file=job.world_file,
                output_size=job.output_size,
                cancel_token=job.cancel_token,
                client=client,
            )
        finally:
            self.finish_download()
