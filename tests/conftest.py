import os
import tempfile
from contextlib import contextmanager
from io import BytesIO

# keep the app database and output folder out of the checkout
os.environ.setdefault("ORTHO_APP_DATA", tempfile.mkdtemp(prefix="ortho-tests-"))

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ortho_downloader.db.orm import Base
from ortho_downloader.services.settings import SettingsStore

TILE_COLOR = (200, 30, 40)


def make_tile(color=TILE_COLOR, size=256, fmt="PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (size, size), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def scope():
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield scope
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SettingsStore(session_factory)


@pytest.fixture
def tile_bytes():
    return make_tile()
