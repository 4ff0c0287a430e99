from pathlib import Path

import pytest

from ortho_downloader import cli
from ortho_downloader.config import DEFAULT_GRID_SIZE, DEFAULT_TILE_ZOOM
from ortho_downloader.models import GeoPoint, MosaicResult
from ortho_downloader.tiles import compute_grid_bounds


def test_download_defaults():
    args = cli.build_parser().parse_args(["download", "--lat", "50.1", "--lon", "14.4"])
    assert args.command == "download"
    assert args.zoom == DEFAULT_TILE_ZOOM
    assert args.grid == DEFAULT_GRID_SIZE
    assert args.format == "jpg"
    assert args.world_file is False
    assert args.source == "google"


def test_subcommand_required():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_unknown_source_rejected():
    with pytest.raises(SystemExit):
        cli.main(["download", "--lat", "1", "--lon", "2", "--source", "bing"])


@pytest.mark.parametrize(
    "argv",
    [
        ["download", "--lat", "95", "--lon", "14"],
        ["download", "--lat", "50", "--lon", "14", "--width", "100"],
    ],
)
def test_invalid_download_exits_with_error(argv):
    assert cli.main(argv) == 2


def test_download_writes_files(monkeypatch, tmp_path, capsys):
    calls = {}

    async def fake_download(center, tile_zoom, grid_size, tile_url_fn, on_progress=None, **kwargs):
        calls.update(center=center, zoom=tile_zoom, grid=grid_size, url=tile_url_fn(1, 2, 3), **kwargs)
        on_progress(100.0)
        return MosaicResult(
            data=b"png-bytes",
            filename="ortho_test.png",
            width=512,
            height=256,
            image_format="png",
            bounds=compute_grid_bounds(center, tile_zoom, grid_size),
            world_file="1\n0\n0\n-1\n0\n0\n",
            world_file_name="ortho_test.pgw",
        )

    monkeypatch.setattr(cli, "download_mosaic", fake_download)
    code = cli.main(
        [
            "download", "--lat", "50.1", "--lon", "14.4", "--source", "esri",
            "--zoom", "17", "--grid", "3", "--format", "png", "--world-file",
            "--width", "512", "--height", "256", "--out", str(tmp_path),
        ]
    )
    assert code == 0
    assert calls["center"] == GeoPoint(lat=50.1, lon=14.4)
    assert (calls["zoom"], calls["grid"]) == (17, 3)
    assert calls["url"].endswith("/tile/1/3/2")
    assert calls["output_size"] == (512, 256)
    assert calls["world_file"] is True
    assert (tmp_path / "ortho_test.png").read_bytes() == b"png-bytes"
    assert (tmp_path / "ortho_test.pgw").exists()
    out = capsys.readouterr().out.splitlines()
    assert [Path(line).name for line in out] == ["ortho_test.png", "ortho_test.pgw"]


def test_search_coordinates(capsys):
    assert cli.main(["search", "50.5, 14.25"]) == 0
    assert capsys.readouterr().out.startswith("50.500000\t14.250000\t")


def test_unwritable_output_exits_with_error(monkeypatch, tmp_path):
    async def fake_download(center, tile_zoom, grid_size, tile_url_fn, on_progress=None, **kwargs):
        return MosaicResult(
            data=b"jpg-bytes",
            filename="ortho_test.jpg",
            width=256,
            height=256,
            image_format="jpg",
            bounds=compute_grid_bounds(center, tile_zoom, grid_size),
        )

    blocker = tmp_path / "taken"
    blocker.write_text("file")
    monkeypatch.setattr(cli, "download_mosaic", fake_download)
    assert cli.main(["download", "--lat", "50", "--lon", "14", "--out", str(blocker)]) == 2
