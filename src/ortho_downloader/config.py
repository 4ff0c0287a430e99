import os
import sys
from pathlib import Path

from .version import __version__

APP_VERSION = os.environ.get("APP_VERSION", __version__)
USER_AGENT = f"ortho-downloader/{APP_VERSION}"
REQUEST_TIMEOUT = 30.0
CONNECT_TIMEOUT = 20.0
LOG_LEVEL = os.environ.get("ORTHO_LOG_LEVEL", "INFO").upper()

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
SEARCH_LIMIT = 5

TILE_SIZE = 256
BATCH_SIZE = 10
PLACEHOLDER_COLOR = (229, 229, 229)  # #e5e5e5
MAX_LATITUDE = 85.0511287798

TILE_ZOOM_MIN = 13
TILE_ZOOM_MAX = 21
DEFAULT_TILE_ZOOM = 18
DEFAULT_GRID_SIZE = 7
GRID_SIZE_PRESETS = (7, 11, 15, 21, 31, 41)
DEFAULT_MAP_VIEW = (50.0755, 14.4378)
DEFAULT_MAP_ZOOM = 14
SEARCH_RESULT_ZOOM = 17

DEFAULT_IMAGE_FORMAT = "jpg"
DEFAULT_JPEG_QUALITY = 85
JPEG_QUALITY_MIN = 10
JPEG_QUALITY_MAX = 100

SETTINGS_KEY = "ortho-map-settings"


def _app_root() -> Path:
    """
    Application root:
    - next to the executable in a frozen build;
    - the repository root during development.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    try:
        return Path(__file__).resolve().parents[2]
    except Exception:  # noqa: BLE001
        return Path.cwd()


def _user_data_dir() -> Path:
    home = Path.home()
    return home / ".local" / "share" / "ortho-downloader"


def _resolve_app_data_dir() -> Path:
    # 1) explicit override
    custom = os.environ.get("ORTHO_APP_DATA")
    if custom:
        return Path(custom).expanduser()

    # 2) next to executable (dev/bundle)
    candidate = _app_root()
    try:
        candidate.mkdir(parents=True, exist_ok=True)
        if os.access(candidate, os.W_OK):
            return candidate
    except Exception:
        pass

    # 3) fallback to user data dir
    fallback = _user_data_dir()
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


APP_DATA_DIR = _resolve_app_data_dir()
DEFAULT_OUTPUT_DIR = Path(
    os.environ.get("ORTHO_OUTPUT_DIR", APP_DATA_DIR / "ortho")
).expanduser()
DATABASE_PATH = APP_DATA_DIR / "ortho.db"
DATABASE_URL = f"sqlite:///{DATABASE_PATH}"
