"""Database helpers for local SQLite storage (SQLAlchemy + Alembic)."""

from .database import SessionLocal, init_database, session_scope
from .repositories import SettingsRepository

__all__ = [
    "SessionLocal",
    "session_scope",
    "init_database",
    "SettingsRepository",
]
