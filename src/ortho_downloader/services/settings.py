from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import SETTINGS_KEY
from ..db.repositories import SettingsRepository
from ..models import DownloadSettings, TileSource
from ..sources import ORTHO_SOURCES, default_source, get_source

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


class SettingsStore:
    """Last-used download settings, kept as one JSON blob under a fixed key.

    Storage and parse failures never propagate: they are logged and the
    caller gets ``None`` (or the defaults from :meth:`load_or_default`).
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        sources: Optional[List[TileSource]] = None,
        key: str = SETTINGS_KEY,
    ) -> None:
        self.session_factory = session_factory
        self.sources = list(ORTHO_SOURCES if sources is None else sources)
        self.key = key

    def defaults(self) -> DownloadSettings:
        return DownloadSettings(source_id=default_source(self.sources).id)

    def load(self) -> Optional[DownloadSettings]:
        try:
            with self.session_factory() as session:
                raw = SettingsRepository(session).get(self.key)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Cannot read saved settings: %s", exc)
            return None
        if raw is None:
            return None
        try:
            settings = DownloadSettings.model_validate_json(raw)
        except ValueError as exc:
            logger.warning("Ignoring corrupt saved settings: %s", exc)
            return None
        if get_source(settings.source_id, self.sources) is None:
            # a stale source invalidates the whole entry, not just the field
            logger.info("Saved source '%s' no longer exists, discarding settings", settings.source_id)
            self.clear()
            return None
        return settings

    def load_or_default(self) -> DownloadSettings:
        return self.load() or self.defaults()

    def save(self, settings: DownloadSettings) -> None:
        try:
            with self.session_factory() as session:
                SettingsRepository(session).put(self.key, settings.to_json())
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Cannot save settings: %s", exc)

    def clear(self) -> None:
        try:
            with self.session_factory() as session:
                SettingsRepository(session).delete(self.key)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Cannot clear saved settings: %s", exc)
