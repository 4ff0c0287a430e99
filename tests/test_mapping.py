import json

import pytest

from ortho_downloader.mapping import (
    EVENT_CLICK,
    EVENT_VIEW,
    MapEvent,
    build_map_html,
    parse_map_event,
    source_script,
    state_payload,
    state_script,
    view_script,
)
from ortho_downloader.models import GeoPoint
from ortho_downloader.sources import ORTHO_SOURCES
from ortho_downloader.tiles import compute_grid_bounds


def test_parse_click_event():
    event = parse_map_event("ortho://click?lat=50.1&lon=14.4")
    assert event == MapEvent(kind=EVENT_CLICK, lat=50.1, lon=14.4)


def test_parse_view_event():
    event = parse_map_event("ortho://view?lat=-1.5&lon=2&z=13")
    assert event == MapEvent(kind=EVENT_VIEW, lat=-1.5, lon=2.0, zoom=13.0)


@pytest.mark.parametrize(
    "url",
    [
        "https://leaflet.local/",
        "ortho://click?lat=abc&lon=1",
        "ortho://click?lat=1",
        "ortho://drag?lat=1&lon=2",
    ],
)
def test_parse_ignores_other_urls(url):
    assert parse_map_event(url) is None


def test_state_payload_with_selection():
    center = GeoPoint(lat=50.0, lon=14.0)
    bounds = compute_grid_bounds(center, 18, 7)
    payload = state_payload(center, bounds, ("612 m", "610 m"))
    assert payload["center"] == [50.0, 14.0]
    assert payload["bounds"] == bounds.as_pairs()
    assert payload["width"] == "612 m"


def test_state_script_without_selection():
    script = state_script(None, None)
    assert script.startswith("window.orthoUpdate(")
    body = script[len("window.orthoUpdate(") : -2]
    assert json.loads(body) == {"center": None, "bounds": None, "width": None, "height": None}


def test_view_and_source_scripts():
    assert view_script(GeoPoint(lat=1.0, lon=2.0), 17) == "window.orthoSetView([1.0, 2.0], 17);"
    assert ORTHO_SOURCES[1].url_template in source_script(ORTHO_SOURCES[1])


def test_map_html_embeds_source_and_view():
    html = build_map_html(ORTHO_SOURCES[0], GeoPoint(lat=50.0755, lon=14.4378), 14)
    assert json.dumps(ORTHO_SOURCES[0].url_template) in html
    assert "[50.0755, 14.4378]" in html
    assert "ortho://" in html
    assert "window.orthoUpdate" in html


def test_map_html_wraps_clicked_longitude():
    html = build_map_html(ORTHO_SOURCES[0], GeoPoint(lat=0.0, lon=0.0), 3)
    click_handler = html[html.index("map.on('click'") : html.index("map.on('moveend'")]
    assert "e.latlng.wrap()" in click_handler
    assert "e.latlng.lng" not in click_handler
