"""Leaflet page for the map widget and the events it reports back.

The page is rendered once; later state changes are pushed with small
``window.ortho*`` script calls so the map keeps its position. User actions
come back as ``ortho://`` navigations, which the web page intercepts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from .config import TILE_ZOOM_MAX
from .models import GeoBounds, GeoPoint, TileSource

EVENT_SCHEME = "ortho"
EVENT_CLICK = "click"
EVENT_VIEW = "view"

_CENTER_ICON_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24" fill="none" '
    'stroke="#171717" stroke-width="2"><circle cx="12" cy="12" r="3"/>'
    '<line x1="12" y1="2" x2="12" y2="6"/><line x1="12" y1="18" x2="12" y2="22"/>'
    '<line x1="2" y1="12" x2="6" y2="12"/><line x1="18" y1="12" x2="22" y2="12"/></svg>'
)


@dataclass(frozen=True)
class MapEvent:
    kind: str
    lat: float
    lon: float
    zoom: Optional[float] = None


def parse_map_event(url: str) -> Optional[MapEvent]:
    """
    "ortho://click?lat=50.1&lon=14.4" -> MapEvent. Anything else -> None.
    """
    parts = urlsplit(url)
    if parts.scheme.lower() != EVENT_SCHEME:
        return None
    kind = (parts.netloc or parts.path.lstrip("/")).lower()
    if kind not in (EVENT_CLICK, EVENT_VIEW):
        return None
    query = parse_qs(parts.query)
    try:
        lat = float(query["lat"][0])
        lon = float(query["lon"][0])
        zoom = float(query["z"][0]) if "z" in query else None
    except (KeyError, IndexError, ValueError):
        return None
    return MapEvent(kind=kind, lat=lat, lon=lon, zoom=zoom)


def state_payload(
    center: Optional[GeoPoint],
    bounds: Optional[GeoBounds],
    dimensions: Optional[tuple[str, str]] = None,
) -> dict:
    return {
        "center": center.as_pair() if center else None,
        "bounds": bounds.as_pairs() if bounds else None,
        "width": dimensions[0] if dimensions else None,
        "height": dimensions[1] if dimensions else None,
    }


def state_script(
    center: Optional[GeoPoint],
    bounds: Optional[GeoBounds],
    dimensions: Optional[tuple[str, str]] = None,
) -> str:
    payload = json.dumps(state_payload(center, bounds, dimensions))
    return f"window.orthoUpdate({payload});"


def view_script(point: GeoPoint, zoom: int) -> str:
    return f"window.orthoSetView({json.dumps(point.as_pair())}, {int(zoom)});"


def source_script(source: TileSource) -> str:
    return f"window.orthoSetSource({json.dumps(source.url_template)}, {int(source.max_zoom)});"


def build_map_html(source: TileSource, view: GeoPoint, zoom: int) -> str:
    """Leaflet map with the crop rectangle, dark surround and size labels."""
    view_js = json.dumps(view.as_pair())
    url_js = json.dumps(source.url_template)
    icon_js = json.dumps(_CENTER_ICON_SVG)
    max_zoom = min(int(source.max_zoom), TILE_ZOOM_MAX)

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <link
    rel="stylesheet"
    href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css"
  />
  <style>
    html, body, #map {{ height: 100%; margin: 0; padding: 0; background: #0f172a; }}
    .leaflet-container {{ background: #0f172a; cursor: crosshair; }}
    .dim-label {{
      background: rgba(0, 0, 0, 0.8); color: #fff; border: none; box-shadow: none;
      font: 11px monospace; padding: 2px 6px; border-radius: 3px;
    }}
    .dim-label::before {{ display: none; }}
  </style>
</head>
<body>
  <div id="map"></div>
  <script
    src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js">
  </script>
  <script>
    const map = L.map('map', {{ zoomControl: true }}).setView({view_js}, {int(zoom)});
    let tiles = L.tileLayer({url_js}, {{ maxZoom: {max_zoom} }}).addTo(map);
    const centerIcon = L.icon({{
      iconUrl: 'data:image/svg+xml;base64,' + btoa({icon_js}),
      iconSize: [32, 32],
      iconAnchor: [16, 16]
    }});
    let marker = null, rect = null, shade = null, widthLabel = null, heightLabel = null;

    function emit(kind, params) {{
      const query = Object.entries(params).map(([k, v]) => `${{k}}=${{encodeURIComponent(v)}}`).join('&');
      window.location.href = `{EVENT_SCHEME}://${{kind}}?${{query}}`;
    }}

    function clearLayers() {{
      [marker, rect, shade, widthLabel, heightLabel].forEach(layer => {{ if (layer) map.removeLayer(layer); }});
      marker = rect = shade = widthLabel = heightLabel = null;
    }}

    window.orthoUpdate = function (state) {{
      clearLayers();
      if (state.center) {{
        marker = L.marker(state.center, {{ icon: centerIcon }})
          .bindPopup(`${{state.center[0].toFixed(6)}}, ${{state.center[1].toFixed(6)}}`)
          .addTo(map);
      }}
      if (!state.bounds) return;
      const [[n, w], [s, e]] = state.bounds;
      shade = L.polygon([
        [[90, -360], [90, 360], [-90, 360], [-90, -360]],
        [[n, w], [n, e], [s, e], [s, w]]
      ], {{ stroke: false, fillColor: '#000', fillOpacity: 0.6, interactive: false }}).addTo(map);
      rect = L.rectangle(state.bounds, {{ color: '#ffffff', weight: 2, fill: false, interactive: false }}).addTo(map);
      if (state.width) {{
        widthLabel = L.tooltip({{ permanent: true, direction: 'top', className: 'dim-label' }})
          .setLatLng([n, (w + e) / 2]).setContent(state.width).addTo(map);
      }}
      if (state.height) {{
        heightLabel = L.tooltip({{ permanent: true, direction: 'left', className: 'dim-label' }})
          .setLatLng([(n + s) / 2, w]).setContent(state.height).addTo(map);
      }}
    }};

    window.orthoSetView = function (center, zoom) {{
      map.setView(center, zoom, {{ animate: true }});
    }};

    window.orthoSetSource = function (url, maxZoom) {{
      map.removeLayer(tiles);
      tiles = L.tileLayer(url, {{ maxZoom: maxZoom }}).addTo(map);
    }};

    map.on('click', e => {{
      const p = e.latlng.wrap();
      emit('{EVENT_CLICK}', {{ lat: p.lat, lon: p.lng }});
    }});
    map.on('moveend', () => {{
      const c = map.getCenter();
      emit('{EVENT_VIEW}', {{ lat: c.lat, lon: c.wrap().lng, z: map.getZoom() }});
    }});
  </script>
</body>
</html>"""
