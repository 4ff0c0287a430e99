from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

logger = logging.getLogger(__name__)

SCRIPT_LOCATION = Path(__file__).parent / "alembic"


def alembic_config(db_url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    config.set_main_option("sqlalchemy.url", db_url)
    return config


def run_migrations(db_url: str, revision: str = "head") -> None:
    logger.debug("Upgrading settings database %s to %s", db_url, revision)
    command.upgrade(alembic_config(db_url), revision)
