from __future__ import annotations

import json
from pathlib import Path

import pytest

from demtiles import __version__, cli, mesh
from tests.utils import ramp, write_raster


def test_version_command(capsys) -> None:
    assert cli.main(["version"]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_tile_requires_source(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["tile"])
    assert excinfo.value.code == 2
    assert "--source or --input" in capsys.readouterr().err


def test_tile_rejects_bad_definition() -> None:
    with pytest.raises(SystemExit):
        cli.main(["tile", "--input", "dem.tif", "--define", "no-equals"])


def test_tile_and_grid(tmp_path: Path, capsys) -> None:
    source_dir = tmp_path / "input"
    source_dir.mkdir()
    write_raster(source_dir / "dem.tif", ramp(10, 10), nodata=-32768)
    output = tmp_path / "output"

    code = cli.main(
        [
            "tile",
            "--source",
            str(source_dir),
            "--output",
            str(output),
            "--tile-size",
            "4",
            "--row-jobs",
            "2",
        ]
    )
    assert code == 0
    tile_dir = output / "4" / "dem"
    assert (tile_dir / "metadata.json").exists()
    assert len(list(tile_dir.glob("tile_*.png"))) == 9

    capsys.readouterr()
    assert cli.main(["grid", str(tile_dir)]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "columns": 3,
        "rows": 3,
        "columnWidths": [4, 4, 2],
        "rowHeights": [4, 4, 2],
    }


def test_tile_reads_config_file(tmp_path: Path) -> None:
    source = tmp_path / "dem.tif"
    write_raster(source, ramp(6, 6), nodata=-32768)
    config_path = tmp_path / "tiling.json"
    config_path.write_text(json.dumps({"tile_size": 3, "tile_format": "tiff"}), encoding="utf-8")

    code = cli.main(
        [
            "tile",
            "--input",
            str(source),
            "--output",
            str(tmp_path / "out"),
            "--config",
            str(config_path),
        ]
    )
    assert code == 0
    assert len(list((tmp_path / "out" / "3" / "dem").glob("tile_*.tiff"))) == 4


def test_tile_invalid_config_returns_2(tmp_path: Path) -> None:
    source = tmp_path / "dem.tif"
    write_raster(source, ramp(4, 4))
    assert cli.main(["tile", "--input", str(source), "--tile-size", "0"]) == 2


def test_tile_config_with_string_jobs_returns_2(tmp_path: Path) -> None:
    source = tmp_path / "dem.tif"
    write_raster(source, ramp(4, 4))
    config_path = tmp_path / "tiling.json"
    config_path.write_text(json.dumps({"row_jobs": "2"}), encoding="utf-8")
    assert cli.main(["tile", "--input", str(source), "--config", str(config_path)]) == 2


def test_tile_reports_failures(tmp_path: Path) -> None:
    code = cli.main(
        ["tile", "--input", str(tmp_path / "missing.tif"), "--output", str(tmp_path / "out")]
    )
    assert code == 1


def test_grid_missing_metadata(tmp_path: Path) -> None:
    assert cli.main(["grid", str(tmp_path)]) == 1


def test_inspect(tmp_path: Path, capsys) -> None:
    source = tmp_path / "dem.tif"
    write_raster(source, ramp(5, 3), nodata=-9999)
    assert cli.main(["inspect", str(source)]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["width"] == 5
    assert payload["height"] == 3
    assert payload["nodata"] == -9999


def test_mesh_without_hmm(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(cli, "resolve_hmm", lambda explicit=None: None)
    assert cli.main(["mesh", "--output", str(tmp_path)]) == 1


def test_mesh_converts_tile_dirs(tmp_path: Path, monkeypatch) -> None:
    calls = []

    def fake_convert(tile_dir, hmm, *, max_error, timeout):
        calls.append((tile_dir, hmm, max_error, timeout))
        return type("Report", (), {"errors": {}})()

    (tmp_path / "out" / "1024" / "dem").mkdir(parents=True)
    monkeypatch.setattr(cli, "convert_tiles_to_mesh", fake_convert)
    code = cli.main(
        ["mesh", "--output", str(tmp_path / "out"), "--hmm", "hmm", "--max-error", "0.01"]
    )
    assert code == 0
    assert calls == [(tmp_path / "out" / "1024" / "dem", Path("hmm"), 0.01, None)]


def test_doctor_command(monkeypatch) -> None:
    monkeypatch.setattr(cli, "run_doctor", lambda hmm=None: [])
    assert cli.main(["doctor"]) == 0


def test_mesh_fails_for_webp_tiles(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "dem.tif"
    write_raster(source, ramp(8, 8), nodata=-32768)
    output = tmp_path / "out"
    code = cli.main(
        [
            "tile",
            "--input",
            str(source),
            "--output",
            str(output),
            "--tile-size",
            "4",
            "--format",
            "webp",
        ]
    )
    assert code == 0
    hmm = tmp_path / "hmm"
    hmm.write_text("", encoding="utf-8")
    monkeypatch.setattr(mesh, "run_command", lambda command, **kwargs: None)

    assert cli.main(["mesh", "--output", str(output), "--hmm", str(hmm)]) == 1
