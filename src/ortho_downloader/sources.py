from typing import List, Optional

from .models import TileSource

ORTHO_SOURCES: List[TileSource] = [
    TileSource(
        id="google",
        name="Google",
        url_template="https://mt1.google.com/vt/lyrs=s&x={x}&y={y}&z={z}",
        attribution="Imagery © Google",
        max_zoom=21,
    ),
    TileSource(
        id="esri",
        name="Esri",
        url_template=(
            "https://server.arcgisonline.com/ArcGIS/rest/services/"
            "World_Imagery/MapServer/tile/{z}/{y}/{x}"
        ),
        attribution="Tiles © Esri",
        max_zoom=21,
    ),
]


def get_source(source_id: Optional[str], sources: Optional[List[TileSource]] = None) -> Optional[TileSource]:
    for source in ORTHO_SOURCES if sources is None else sources:
        if source.id == source_id:
            return source
    return None


def default_source(sources: Optional[List[TileSource]] = None) -> TileSource:
    return (ORTHO_SOURCES if sources is None else sources)[0]
