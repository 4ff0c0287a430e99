from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QKeyEvent, QPalette
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMenuBar,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QSpinBox,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from ..config import (
    APP_VERSION,
    DEFAULT_OUTPUT_DIR,
    GRID_SIZE_PRESETS,
    JPEG_QUALITY_MAX,
    JPEG_QUALITY_MIN,
    TILE_SIZE,
    TILE_ZOOM_MAX,
    TILE_ZOOM_MIN,
)
from ..di import Container
from ..errors import OrthoError
from ..models import SearchResult
from ..services.geocoding import parse_coordinates
from ..session import ACTION_CLOSE, ACTION_DOWNLOAD, DownloadSession
from ..utils import format_megabytes
from .map_view import OrthoMapView
from .style import BASE_STYLESHEET
from .workers import MosaicThread, SearchThread

logger = logging.getLogger(__name__)

_KEY_NAMES = {
    Qt.Key.Key_Plus: "+",
    Qt.Key.Key_Equal: "=",
    Qt.Key.Key_Minus: "-",
    Qt.Key.Key_Return: "Enter",
    Qt.Key.Key_Enter: "Enter",
    Qt.Key.Key_Escape: "Escape",
}


class MainWindow(QMainWindow):
    def __init__(self, container: Container) -> None:
        super().__init__()
        self.container = container
        self.session = DownloadSession(container.settings_store())
        self.setWindowTitle(f"Ortho Map Downloader v{APP_VERSION}")
        self.output_dir = DEFAULT_OUTPUT_DIR
        self.download_thread: Optional[MosaicThread] = None
        self.search_thread: Optional[SearchThread] = None

        self.build_ui()
        self.apply_palette()
        self.build_menu()

        self.refresh_state()

    def build_ui(self) -> None:
        settings = self.session.settings
        self.map_view = OrthoMapView(self.session.source, settings.map_view, settings.map_zoom)
        self.map_view.mapClicked.connect(self.on_map_clicked)
        self.map_view.viewChanged.connect(self.on_view_changed)

        main_widget = QWidget()
        main_layout = QHBoxLayout(main_widget)
        splitter = QSplitter(Qt.Horizontal)
        splitter.setHandleWidth(4)
        splitter.addWidget(self.map_view)
        splitter.addWidget(self.build_control_panel())
        splitter.setSizes([760, 360])
        main_layout.addWidget(splitter)
        self.setCentralWidget(main_widget)
        self.resize(1180, 760)

    def build_control_panel(self) -> QWidget:
        box = QGroupBox("Ortho map")
        layout = QVBoxLayout(box)

        source_row = QHBoxLayout()
        source_row.addWidget(QLabel("Source:"))
        self.source_combo = QComboBox()
        for source in self.session.sources:
            self.source_combo.addItem(source.name, source.id)
        self.source_combo.setCurrentIndex(max(0, self.source_combo.findData(self.session.source.id)))
        self.source_combo.currentIndexChanged.connect(self.on_source_changed)
        source_row.addWidget(self.source_combo)
        layout.addLayout(source_row)

        search_row = QHBoxLayout()
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Place name or \"lat, lon\"")
        self.search_input.returnPressed.connect(self.start_search)
        self.search_btn = QPushButton("Search")
        self.search_btn.clicked.connect(self.start_search)
        search_row.addWidget(self.search_input)
        search_row.addWidget(self.search_btn)
        layout.addLayout(search_row)

        self.search_list = QListWidget()
        self.search_list.setMaximumHeight(120)
        self.search_list.itemActivated.connect(self.on_search_result_chosen)
        self.search_list.itemClicked.connect(self.on_search_result_chosen)
        self.search_list.setVisible(False)
        layout.addWidget(self.search_list)

        self.center_label = QLabel("")
        self.dims_label = QLabel("")
        self.dims_label.setObjectName("hint")
        layout.addWidget(self.center_label)
        layout.addWidget(self.dims_label)

        zoom_row = QHBoxLayout()
        zoom_row.addWidget(QLabel("Download zoom:"))
        self.zoom_input = QSpinBox()
        self.zoom_input.setRange(TILE_ZOOM_MIN, TILE_ZOOM_MAX)
        self.zoom_input.setValue(self.session.settings.tile_zoom)
        self.zoom_input.valueChanged.connect(self.on_zoom_changed)
        zoom_row.addWidget(self.zoom_input)
        layout.addLayout(zoom_row)

        grid_row = QHBoxLayout()
        grid_row.addWidget(QLabel("Output size:"))
        self.grid_combo = QComboBox()
        for size in GRID_SIZE_PRESETS:
            self.grid_combo.addItem(f"{size * TILE_SIZE} px ({size}x{size} tiles)", size)
        index = self.grid_combo.findData(self.session.settings.grid_size)
        if index < 0:
            size = self.session.settings.grid_size
            self.grid_combo.addItem(f"{size * TILE_SIZE} px ({size}x{size} tiles)", size)
            index = self.grid_combo.count() - 1
        self.grid_combo.setCurrentIndex(index)
        self.grid_combo.currentIndexChanged.connect(self.on_grid_changed)
        grid_row.addWidget(self.grid_combo)
        layout.addLayout(grid_row)

        custom_row = QHBoxLayout()
        self.custom_size_checkbox = QCheckBox("Resize to")
        self.custom_size_checkbox.stateChanged.connect(self.on_custom_size_changed)
        self.custom_width = QSpinBox()
        self.custom_width.setRange(256, 20000)
        self.custom_width.setValue(2048)
        self.custom_height = QSpinBox()
        self.custom_height.setRange(256, 20000)
        self.custom_height.setValue(2048)
        for spin in (self.custom_width, self.custom_height):
            spin.valueChanged.connect(self.on_custom_size_changed)
            spin.setEnabled(False)
        custom_row.addWidget(self.custom_size_checkbox)
        custom_row.addWidget(self.custom_width)
        custom_row.addWidget(QLabel("x"))
        custom_row.addWidget(self.custom_height)
        layout.addLayout(custom_row)

        format_row = QHBoxLayout()
        format_row.addWidget(QLabel("Format:"))
        self.format_combo = QComboBox()
        self.format_combo.addItem("JPG", "jpg")
        self.format_combo.addItem("PNG", "png")
        self.format_combo.currentIndexChanged.connect(self.on_output_changed)
        format_row.addWidget(self.format_combo)
        format_row.addWidget(QLabel("Quality:"))
        self.quality_input = QSpinBox()
        self.quality_input.setRange(JPEG_QUALITY_MIN, JPEG_QUALITY_MAX)
        self.quality_input.setValue(self.session.quality)
        self.quality_input.valueChanged.connect(self.on_output_changed)
        format_row.addWidget(self.quality_input)
        layout.addLayout(format_row)

        self.world_file_checkbox = QCheckBox("Write world file (.jgw / .pgw)")
        self.world_file_checkbox.stateChanged.connect(self.on_output_changed)
        layout.addWidget(self.world_file_checkbox)

        folder_row = QHBoxLayout()
        self.folder_input = QLineEdit(str(self.output_dir))
        self.folder_input.setPlaceholderText("Output folder")
        folder_btn = QPushButton("Choose...")
        folder_btn.clicked.connect(self.choose_folder)
        folder_row.addWidget(self.folder_input)
        folder_row.addWidget(folder_btn)
        layout.addLayout(folder_row)

        self.estimate_label = QLabel("")
        self.estimate_label.setObjectName("estimate")
        layout.addWidget(self.estimate_label)

        buttons_row = QHBoxLayout()
        self.download_btn = QPushButton("Download")
        self.download_btn.clicked.connect(self.start_download)
        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.setEnabled(False)
        self.cancel_btn.clicked.connect(self.cancel_download)
        buttons_row.addWidget(self.download_btn)
        buttons_row.addWidget(self.cancel_btn)
        layout.addLayout(buttons_row)

        self.progress_label = QLabel("Click the map to pick a center")
        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setValue(0)
        layout.addWidget(self.progress_label)
        layout.addWidget(self.progress_bar)

        shortcuts = QLabel("+ / - download zoom  ·  Enter download  ·  Esc close")
        shortcuts.setObjectName("hint")
        layout.addWidget(shortcuts)

        layout.addStretch()
        return box

    def build_menu(self) -> None:
        menu_bar: QMenuBar = self.menuBar()
        about_action = menu_bar.addAction("About")
        about_action.triggered.connect(self.show_about)

    def show_about(self) -> None:
        QMessageBox.information(
            self,
            "About",
            f"Ortho Map Downloader\nVersion: {APP_VERSION}",
        )

    def apply_palette(self) -> None:
        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Window, QColor("#0b1220"))
        palette.setColor(QPalette.ColorRole.Base, QColor("#0f172a"))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor("#111827"))
        palette.setColor(QPalette.ColorRole.Text, QColor("#e5e7eb"))
        palette.setColor(QPalette.ColorRole.WindowText, QColor("#e5e7eb"))
        palette.setColor(QPalette.ColorRole.Button, QColor("#111827"))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor("#e5e7eb"))
        palette.setColor(QPalette.ColorRole.Highlight, QColor("#22d3ee"))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor("#0b1220"))
        self.setPalette(palette)
        self.setStyleSheet(BASE_STYLESHEET)

    # -- state -> widgets ---------------------------------------------------

    def refresh_state(self) -> None:
        session = self.session
        center = session.center
        dims = session.crop_dimensions
        self.map_view.set_state(center, session.crop_bounds, dims)
        if center is not None:
            self.center_label.setText(f"Center: {center.lat:.6f}, {center.lon:.6f}")
        else:
            self.center_label.setText("Center: not selected")
        self.dims_label.setText(f"Area: {dims[0]} x {dims[1]}" if dims else "")
        width, height = session.output_dimensions
        self.estimate_label.setText(
            f"{width} x {height} px  ~{format_megabytes(session.estimated_size_mb)}"
        )
        self.quality_input.setEnabled(session.image_format == "jpg")
        self.download_btn.setEnabled(session.can_download)
        self.cancel_btn.setEnabled(session.downloading)
        if self.zoom_input.value() != session.settings.tile_zoom:
            self.zoom_input.blockSignals(True)
            self.zoom_input.setValue(session.settings.tile_zoom)
            self.zoom_input.blockSignals(False)

    # -- map ------------------------------------------------------------------

    def on_map_clicked(self, lat: float, lon: float) -> None:
        try:
            self.session.handle_map_click(lat, lon)
        except OrthoError as exc:
            self.append_log(str(exc))
            return
        self.refresh_state()

    def on_view_changed(self, lat: float, lon: float, zoom: float) -> None:
        try:
            self.session.handle_view_change(lat, lon, zoom)
        except OrthoError as exc:
            self.append_log(str(exc))

    # -- controls -------------------------------------------------------------

    def on_source_changed(self, _index: int) -> None:
        source_id = self.source_combo.currentData()
        if not source_id:
            return
        self.session.select_source(source_id)
        self.map_view.set_source(self.session.source)

    def on_zoom_changed(self, value: int) -> None:
        self.session.set_tile_zoom(value)
        self.refresh_state()

    def on_grid_changed(self, _index: int) -> None:
        size = self.grid_combo.currentData()
        if size:
            self.session.set_grid_size(int(size))
            self.refresh_state()

    def on_custom_size_changed(self, *_args) -> None:
        enabled = self.custom_size_checkbox.isChecked()
        self.custom_width.setEnabled(enabled)
        self.custom_height.setEnabled(enabled)
        if enabled:
            self.session.set_custom_size(self.custom_width.value(), self.custom_height.value())
        else:
            self.session.set_custom_size(None, None)
        self.refresh_state()

    def on_output_changed(self, *_args) -> None:
        self.session.set_output(
            image_format=self.format_combo.currentData(),
            quality=self.quality_input.value(),
            world_file=self.world_file_checkbox.isChecked(),
        )
        self.refresh_state()

    def choose_folder(self) -> None:
        selected = QFileDialog.getExistingDirectory(
            self, "Choose output folder", str(self.output_dir)
        )
        if selected:
            self.output_dir = Path(selected)
            self.folder_input.setText(selected)

    # -- search ---------------------------------------------------------------

    def start_search(self) -> None:
        if self.search_thread is not None:
            return
        query = self.search_input.text().strip()
        if not query:
            return
        try:
            point = parse_coordinates(query)
        except OrthoError as exc:
            self.append_log(str(exc))
            self.progress_label.setText("Coordinates out of range")
            return
        if point is not None:
            self.session.submit_search(query)
            self._after_jump()
            return

        self.search_btn.setEnabled(False)
        self.progress_label.setText("Searching...")
        thread = SearchThread(query)
        thread.loaded.connect(self._on_search_loaded)
        thread.failed.connect(self._on_search_failed)
        thread.finished.connect(self._on_search_finished)
        self.search_thread = thread
        thread.start()

    def _on_search_loaded(self, results: List[SearchResult]) -> None:
        self.session.search_results = results
        self.search_list.clear()
        for result in results:
            item = QListWidgetItem(result.name)
            item.setData(Qt.UserRole, result)
            self.search_list.addItem(item)
        self.search_list.setVisible(bool(results))
        self.progress_label.setText(f"{len(results)} places found")

    def _on_search_failed(self, message: str) -> None:
        self.append_log(f"Search failed: {message}")
        self.progress_label.setText("Search failed")

    def _on_search_finished(self) -> None:
        self.search_thread = None
        self.search_btn.setEnabled(True)

    def on_search_result_chosen(self, item: QListWidgetItem) -> None:
        result = item.data(Qt.UserRole)
        if not isinstance(result, SearchResult):
            return
        self.session.select_search_result(result)
        self.search_input.clear()
        self._after_jump()

    def _after_jump(self) -> None:
        self.search_list.clear()
        self.search_list.setVisible(False)
        settings = self.session.settings
        self.map_view.set_view(settings.map_view, settings.map_zoom)
        self.refresh_state()

    # -- download -------------------------------------------------------------

    def start_download(self) -> None:
        if self.download_thread is not None:
            return
        try:
            job = self.session.begin_download()
        except OrthoError as exc:
            self.append_log(str(exc))
            return

        self.output_dir = Path(self.folder_input.text()).expanduser()
        self.progress_bar.setValue(0)
        self.progress_label.setText("Downloading...")
        thread = MosaicThread(job, self.output_dir)
        thread.progress.connect(self.on_progress)
        thread.done.connect(self._on_download_done)
        thread.finished.connect(self._on_download_finished)
        self.download_thread = thread
        thread.start()
        self.refresh_state()

    def cancel_download(self) -> None:
        if self.download_thread is not None:
            self.session.cancel_download()
            self.append_log("Cancelling...")

    def on_progress(self, percent: float) -> None:
        self.session.report_progress(percent)
        self.progress_bar.setValue(int(self.session.progress))
        self.progress_label.setText(f"{self.session.progress:.0f} %")

    def _on_download_done(self, success: bool, message: str, paths: list) -> None:
        for path in paths:
            self.append_log(f"Written {path}")
        self.append_log(message)
        self.progress_label.setText(message)
        if not success and message != "Cancelled":
            QMessageBox.warning(self, "Download failed", "The map could not be downloaded.")

    def _on_download_finished(self) -> None:
        self.download_thread = None
        self.session.finish_download()
        self.progress_bar.setValue(0)
        self.refresh_state()

    # -- keys -----------------------------------------------------------------

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        key = _KEY_NAMES.get(event.key())
        if key is None or isinstance(self.focusWidget(), (QLineEdit, QSpinBox)):
            super().keyPressEvent(event)
            return
        action = self.session.handle_key(key)
        if action == ACTION_DOWNLOAD:
            self.start_download()
        elif action == ACTION_CLOSE:
            self.close()
        self.refresh_state()

    def closeEvent(self, event) -> None:  # noqa: N802
        if self.download_thread is not None:
            self.session.cancel_download()
            self.download_thread.wait(5000)
        event.accept()

    def append_log(self, message: str) -> None:
        logger.info(message)
