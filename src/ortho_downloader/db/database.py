from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import DATABASE_PATH, DATABASE_URL
from .migration_runner import run_migrations

logger = logging.getLogger(__name__)

try:
    DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
except OSError as exc:
    logger.warning("Cannot create data directory %s: %s", DATABASE_PATH.parent, exc)


def _set_sqlite_pragma(dbapi_connection, _) -> None:
    """
    WAL keeps settings writes from blocking reads in the download worker.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA synchronous=NORMAL;")
    cursor.execute("PRAGMA busy_timeout=3000;")
    cursor.close()


def make_engine(url: str) -> Engine:
    engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,
            "timeout": 5,
        },
        pool_pre_ping=True,
    )
    event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        expire_on_commit=False,
    )


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)


def init_database(url: str = DATABASE_URL) -> None:
    """
    Run Alembic migrations to latest head.
    """
    run_migrations(url)


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:  # noqa: BLE001
        session.rollback()
        raise
    finally:
        session.close()
