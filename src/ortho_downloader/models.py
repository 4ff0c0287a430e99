from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .config import (
    DEFAULT_GRID_SIZE,
    DEFAULT_MAP_VIEW,
    DEFAULT_MAP_ZOOM,
    DEFAULT_TILE_ZOOM,
    TILE_SIZE,
    TILE_ZOOM_MAX,
    TILE_ZOOM_MIN,
)
from .utils import format_tile_url


def _point_from_pair(value: Any) -> Any:
    # settings and the map widget carry points as [lat, lon]
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValueError("point must be a [lat, lon] pair")
        return {"lat": value[0], "lon": value[1]}
    return value


class GeoPoint(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_pair(cls, pair: Any) -> "GeoPoint":
        return cls.model_validate(_point_from_pair(pair))

    def as_pair(self) -> list[float]:
        return [self.lat, self.lon]


class TileCoord(BaseModel):
    x: int
    y: int
    zoom: int = Field(ge=0, le=30)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_range(self) -> "TileCoord":
        n = 2**self.zoom
        if not (0 <= self.x < n and 0 <= self.y < n):
            raise ValueError(f"tile {self.x}/{self.y} outside zoom {self.zoom} grid")
        return self


class GeoBounds(BaseModel):
    north_west: GeoPoint
    south_east: GeoPoint

    model_config = ConfigDict(frozen=True)

    def as_pairs(self) -> list[list[float]]:
        return [self.north_west.as_pair(), self.south_east.as_pair()]


@dataclass(frozen=True)
class TilePlacement:
    """One cell of a tile grid.

    ``tile`` is ``None`` when the row lies beyond the poles; such cells are
    painted with the placeholder colour without a request.
    """

    dx: int
    dy: int
    pixel_x: int
    pixel_y: int
    tile: Optional[TileCoord]


class TileGrid(BaseModel):
    center: TileCoord
    grid_size: int

    model_config = ConfigDict(frozen=True)

    @field_validator("grid_size")
    @classmethod
    def _odd_grid(cls, value: int) -> int:
        if value < 1 or value % 2 == 0:
            raise ValueError("grid_size must be an odd number >= 1")
        return value

    @property
    def half(self) -> int:
        return self.grid_size // 2

    @property
    def tile_count(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def pixel_size(self) -> int:
        return self.grid_size * TILE_SIZE

    def placements(self) -> List[TilePlacement]:
        zoom = self.center.zoom
        n = 2**zoom
        half = self.half
        result: List[TilePlacement] = []
        for dy in range(-half, half + 1):
            for dx in range(-half, half + 1):
                y = self.center.y + dy
                tile = None
                if 0 <= y < n:
                    tile = TileCoord(x=(self.center.x + dx) % n, y=y, zoom=zoom)
                result.append(
                    TilePlacement(
                        dx=dx,
                        dy=dy,
                        pixel_x=(dx + half) * TILE_SIZE,
                        pixel_y=(dy + half) * TILE_SIZE,
                        tile=tile,
                    )
                )
        return result


class TileSource(BaseModel):
    id: str
    name: str
    url_template: str
    attribution: str = ""
    max_zoom: int = TILE_ZOOM_MAX

    model_config = ConfigDict(frozen=True)

    def tile_url(self, zoom: int, x: int, y: int) -> str:
        return format_tile_url(self.url_template, zoom, x, y)


class SearchResult(BaseModel):
    name: str
    lat: float
    lon: float

    model_config = ConfigDict(extra="ignore")

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


class DownloadSettings(BaseModel):
    source_id: str = Field(alias="sourceId")
    center: Optional[GeoPoint] = None
    map_view: GeoPoint = Field(
        default_factory=lambda: GeoPoint.from_pair(DEFAULT_MAP_VIEW),
        alias="mapView",
    )
    map_zoom: int = Field(DEFAULT_MAP_ZOOM, alias="mapZoom", ge=0, le=22)
    tile_zoom: int = Field(
        DEFAULT_TILE_ZOOM, alias="tileZoom", ge=TILE_ZOOM_MIN, le=TILE_ZOOM_MAX
    )
    grid_size: int = Field(DEFAULT_GRID_SIZE, alias="gridSize")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("center", "map_view", mode="before")
    @classmethod
    def _parse_point(cls, value: Any) -> Any:
        return _point_from_pair(value)

    @field_validator("grid_size")
    @classmethod
    def _odd_grid(cls, value: int) -> int:
        if value < 1 or value % 2 == 0:
            raise ValueError("gridSize must be an odd number >= 1")
        return value

    @field_serializer("center", "map_view")
    def _dump_point(self, value: Optional[GeoPoint]) -> Optional[list[float]]:
        return value.as_pair() if value is not None else None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass
class MosaicResult:
    data: bytes
    filename: str
    width: int
    height: int
    image_format: str
    bounds: GeoBounds
    failed_tiles: List[TileCoord] = field(default_factory=list)
    world_file: Optional[str] = None
    world_file_name: Optional[str] = None


@dataclass
class CancelToken:
    """Simple cancel flag shared between UI and the mosaic engine."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
