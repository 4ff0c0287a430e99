import logging
import os
import sys

from .config import LOG_LEVEL


def _prepare_env() -> None:
    """
    Keep QtWebEngine stable on machines without a usable GPU and share GL
    contexts between windows.
    """
    from PySide6.QtCore import Qt
    from PySide6.QtWidgets import QApplication

    os.environ.setdefault(
        "QTWEBENGINE_CHROMIUM_FLAGS",
        "--disable-gpu --disable-software-rasterizer",
    )
    QApplication.setAttribute(Qt.AA_ShareOpenGLContexts, True)


def _configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_gui() -> int:
    from PySide6.QtWidgets import QApplication

    from .di import get_container
    from .ui.main_window import MainWindow

    _prepare_env()
    container = get_container()
    container.ensure_ready()
    app = QApplication(sys.argv)
    window = MainWindow(container)
    window.show()
    return app.exec()


def main() -> None:
    _configure_logging()
    argv = sys.argv[1:]
    if argv and argv[0] in ("download", "search", "-h", "--help"):
        from .cli import main as cli_main

        sys.exit(cli_main(argv))
    sys.exit(run_gui())


if __name__ == "__main__":
    main()
