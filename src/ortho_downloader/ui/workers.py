import asyncio
import logging
from pathlib import Path
from typing import List

from PySide6.QtCore import QThread, Signal

from ..errors import CancelledError, OrthoError
from ..models import MosaicResult
from ..services.geocoding import resolve_query
from ..services.mosaic import download_mosaic, save_mosaic
from ..session import DownloadJob

logger = logging.getLogger(__name__)


class MosaicThread(QThread):
    """
    Runs one mosaic download on its own asyncio loop and writes the files.
    ``done`` carries (success, message, written paths).
    """

    progress = Signal(float)
    done = Signal(bool, str, list)

    def __init__(self, job: DownloadJob, output_dir: Path) -> None:
        super().__init__()
        self.job = job
        self.output_dir = output_dir

    def run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            result = loop.run_until_complete(self._run())
            paths = save_mosaic(result, self.output_dir)
            message = f"Saved {paths[0].name} ({result.width}x{result.height} px)"
            if result.failed_tiles:
                message += f", {len(result.failed_tiles)} tiles missing"
            self.done.emit(True, message, [str(p) for p in paths])
        except CancelledError:
            self.done.emit(False, "Cancelled", [])
        except OrthoError as exc:
            logger.error("Download failed: %s", exc)
            self.done.emit(False, "Download failed", [])
        except Exception:  # noqa: BLE001
            logger.exception("Download failed")
            self.done.emit(False, "Download failed", [])
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def _run(self) -> MosaicResult:
        job = self.job
        return await download_mosaic(
            job.center,
            job.tile_zoom,
            job.grid_size,
            job.source.tile_url,
            self.progress.emit,
            image_format=job.image_format,
            quality=job.quality,
            world_file=job.world_file,
            output_size=job.output_size,
            cancel_token=job.cancel_token,
        )


class SearchThread(QThread):
    loaded = Signal(list)
    failed = Signal(str)

    def __init__(self, query: str) -> None:
        super().__init__()
        self.query = query

    def run(self) -> None:
        try:
            results: List = resolve_query(self.query)
            self.loaded.emit(results)
        except OrthoError as exc:
            logger.warning("Search failed: %s", exc)
            self.failed.emit(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Search failed")
            self.failed.emit(str(exc))
