from pathlib import Path
import sys


def main() -> None:
    """
    Thin entrypoint for running from a checkout or a PyInstaller build:
    add ./src to sys.path and hand over to the packaged app.
    """
    root = Path(__file__).resolve().parent
    src_path = root / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))
    from ortho_downloader.__main__ import main as app_main

    app_main()


if __name__ == "__main__":
    main()
