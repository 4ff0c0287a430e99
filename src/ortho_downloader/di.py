from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from alembic.util import CommandError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import DATABASE_URL
from .db.database import SessionLocal, init_database, make_engine, make_session_factory, session_scope
from .services.settings import SettingsStore
from .sources import ORTHO_SOURCES

logger = logging.getLogger(__name__)


class Container:
    def __init__(self, database_url: Optional[str] = None) -> None:
        self._ready = False
        self._settings_store: SettingsStore | None = None
        self.database_url = database_url or DATABASE_URL
        if database_url is None:
            self._session_factory = SessionLocal
        else:
            self._session_factory = make_session_factory(make_engine(database_url))

    def ensure_ready(self) -> None:
        if self._ready:
            return
        try:
            init_database(self.database_url)
        except (SQLAlchemyError, CommandError, OSError) as exc:
            # the settings store falls back to defaults when the database is unusable
            logger.warning("Settings database unavailable, using defaults: %s", exc)
        self._ready = True

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with session_scope(self._session_factory) as session:
            yield session

    def settings_store(self) -> SettingsStore:
        if self._settings_store is None:
            self._settings_store = SettingsStore(self.session, ORTHO_SOURCES)
        return self._settings_store


_container: Container | None = None


def get_container() -> Container:
    global _container
    if _container is None:
        _container = Container()
    return _container
