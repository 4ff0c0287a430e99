import json
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError

from ortho_downloader.config import SETTINGS_KEY
from ortho_downloader.db.repositories import SettingsRepository
from ortho_downloader.models import DownloadSettings, GeoPoint, TileSource
from ortho_downloader.services.settings import SettingsStore
from ortho_downloader.sources import ORTHO_SOURCES

CUSTOM = TileSource(id="custom", name="Custom", url_template="https://c.test/{z}/{x}/{y}.jpg")


def raw_value(session_factory):
    with session_factory() as session:
        return SettingsRepository(session).get(SETTINGS_KEY)


def test_repository_upsert_and_delete(session_factory):
    with session_factory() as session:
        repo = SettingsRepository(session)
        repo.put("a", "1")
        repo.put("a", "2")
    with session_factory() as session:
        repo = SettingsRepository(session)
        assert repo.get("a") == "2"
        assert repo.delete("a") is True
        assert repo.delete("a") is False
        assert repo.get("a") is None


def test_empty_store_gives_defaults(store):
    assert store.load() is None
    settings = store.load_or_default()
    assert settings.source_id == ORTHO_SOURCES[0].id
    assert settings.center is None


def test_save_then_load(store, session_factory):
    settings = DownloadSettings(
        source_id="esri",
        center=GeoPoint(lat=50.1, lon=14.4),
        map_view=GeoPoint(lat=50.0, lon=14.0),
        map_zoom=16,
        tile_zoom=20,
        grid_size=11,
    )
    store.save(settings)
    assert store.load() == settings

    payload = json.loads(raw_value(session_factory))
    assert payload["sourceId"] == "esri"
    assert payload["center"] == [50.1, 14.4]
    assert payload["gridSize"] == 11


def test_save_overwrites_previous_entry(store):
    store.save(DownloadSettings(source_id="google", tile_zoom=15))
    store.save(DownloadSettings(source_id="google", tile_zoom=16))
    assert store.load().tile_zoom == 16


def test_stale_source_discards_entry(session_factory):
    SettingsStore(session_factory, [CUSTOM, *ORTHO_SOURCES]).save(
        DownloadSettings(source_id="custom", tile_zoom=19)
    )
    store = SettingsStore(session_factory)
    assert store.load() is None
    assert raw_value(session_factory) is None
    assert store.load_or_default().source_id == ORTHO_SOURCES[0].id


def test_corrupt_entry_is_ignored(store, session_factory):
    with session_factory() as session:
        SettingsRepository(session).put(SETTINGS_KEY, "{not json")
    assert store.load() is None
    assert store.load_or_default().source_id == ORTHO_SOURCES[0].id


def test_invalid_values_are_ignored(store, session_factory):
    with session_factory() as session:
        SettingsRepository(session).put(SETTINGS_KEY, json.dumps({"sourceId": "google", "gridSize": 4}))
    assert store.load() is None


def test_storage_failures_never_raise():
    @contextmanager
    def broken():
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        yield  # pragma: no cover

    store = SettingsStore(broken)
    assert store.load() is None
    store.save(DownloadSettings(source_id="google"))
    store.clear()
    assert store.load_or_default().source_id == "google"
