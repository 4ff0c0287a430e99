from typing import List, Optional

from PySide6.QtCore import QUrl, Signal
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QVBoxLayout, QWidget

from ..mapping import (
    EVENT_CLICK,
    EVENT_SCHEME,
    MapEvent,
    build_map_html,
    parse_map_event,
    source_script,
    state_script,
    view_script,
)
from ..models import GeoBounds, GeoPoint, TileSource


class OrthoMapPage(QWebEnginePage):
    mapEvent = Signal(object)

    def acceptNavigationRequest(self, url, navtype, isMainFrame):  # noqa: N802
        event = parse_map_event(url.toString())
        if event is not None:
            self.mapEvent.emit(event)
            return False
        if url.scheme().lower() == EVENT_SCHEME:
            return False
        return super().acceptNavigationRequest(url, navtype, isMainFrame)


class OrthoMapView(QWidget):
    """
    Leaflet map in a QWebEngineView. Clicks pick the download center, pans and
    zooms report the current view; both arrive as ``MapEvent`` objects.
    """

    mapClicked = Signal(float, float)
    viewChanged = Signal(float, float, float)

    def __init__(self, source: TileSource, view: GeoPoint, zoom: int) -> None:
        super().__init__()
        self.webview = QWebEngineView()
        self.page = OrthoMapPage(self.webview)
        self.page.mapEvent.connect(self._on_map_event)
        self.page.loadFinished.connect(self._on_load_finished)
        self.webview.setPage(self.page)
        self._loaded = False
        self._pending: List[str] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.webview)
        self.setMinimumHeight(420)

        settings = self.webview.settings()
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, True)
        settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, True)
        settings.setAttribute(QWebEngineSettings.WebAttribute.ErrorPageEnabled, True)

        html = build_map_html(source, view, zoom)
        self.webview.setHtml(html, baseUrl=QUrl("https://leaflet.local/"))

    def set_state(
        self,
        center: Optional[GeoPoint],
        bounds: Optional[GeoBounds],
        dimensions: Optional[tuple[str, str]] = None,
    ) -> None:
        self._run(state_script(center, bounds, dimensions))

    def set_view(self, point: GeoPoint, zoom: int) -> None:
        self._run(view_script(point, zoom))

    def set_source(self, source: TileSource) -> None:
        self._run(source_script(source))

    def _run(self, script: str) -> None:
        if not self._loaded:
            self._pending.append(script)
            return
        self.page.runJavaScript(script)

    def _on_load_finished(self, ok: bool) -> None:
        self._loaded = bool(ok)
        if not ok:
            return
        pending, self._pending = self._pending, []
        for script in pending:
            self.page.runJavaScript(script)

    def _on_map_event(self, event: MapEvent) -> None:
        if event.kind == EVENT_CLICK:
            self.mapClicked.emit(event.lat, event.lon)
        elif event.zoom is not None:
            self.viewChanged.emit(event.lat, event.lon, event.zoom)
