from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from demtiles import contracts
from demtiles.dem.footprint import compute_footprint
from demtiles.dem.models import Raster, ValueRange
from demtiles.dem.tiling import slice_tiles, tile_grid
from demtiles.errors import MetadataError
from demtiles.metadata import (
    build_metadata,
    grid_from_metadata,
    layout_spans,
    read_metadata,
    write_metadata,
)
from tests.utils import UTM15_BOUNDS, ramp


def _record(width: int = 10, height: int = 10, tile_size: int = 4) -> dict:
    raster = Raster(data=ramp(width, height), bounds=UTM15_BOUNDS, nodata=-32768.0)
    footprint = compute_footprint(raster, "EPSG:4326", "EPSG:32615")
    grid = tile_grid(width, height, tile_size)
    return build_metadata(footprint, grid, ValueRange(0.0, 99.0), unit="meters")


def test_build_metadata_fields() -> None:
    record = _record()

    assert record["sourceCRS"] == "EPSG:4326"
    assert record["targetCRS"] == "EPSG:32615"
    assert record["originalBounds"] == {
        "minX": -93.5,
        "minY": 34.0,
        "maxX": -92.5,
        "maxY": 35.0,
    }
    assert record["utmBounds"]["minX"] < record["utmBounds"]["maxX"]
    assert record["originalDimensions"] == {"width": 10, "height": 10}
    assert record["reprojectedDimensions"] == {"width": 10, "height": 10}
    assert record["tileSize"] == 4
    assert record["tileGrid"] == {"columns": 3, "rows": 3}
    assert record["valueRange"] == {"min": 0.0, "max": 99.0}
    assert record["resolution"]["unit"] == "meters"
    assert record["resolution"]["x"] == pytest.approx(
        (record["utmBounds"]["maxX"] - record["utmBounds"]["minX"]) / 10
    )


def test_write_and_read_metadata(tmp_path: Path) -> None:
    record = _record()
    path = write_metadata(tmp_path, record)

    assert path.name == "metadata.json"
    assert json.loads(path.read_text(encoding="utf-8")) == record
    assert read_metadata(tmp_path) == record
    assert read_metadata(path) == record


def test_read_metadata_missing(tmp_path: Path) -> None:
    with pytest.raises(MetadataError, match="No metadata.json"):
        read_metadata(tmp_path)


def test_read_metadata_invalid_json(tmp_path: Path) -> None:
    (tmp_path / "metadata.json").write_text("{", encoding="utf-8")
    with pytest.raises(MetadataError, match="Cannot read"):
        read_metadata(tmp_path)


def test_schema_rejects_missing_field() -> None:
    record = _record()
    del record["valueRange"]
    with pytest.raises(MetadataError, match="valueRange"):
        contracts.validate_metadata(record)


def test_schema_rejects_non_positive_tile_size() -> None:
    record = _record()
    record["tileSize"] = 0
    with pytest.raises(MetadataError):
        contracts.validate_metadata(record)


@pytest.mark.parametrize("width,height,tile_size", [(10, 10, 4), (8, 3, 4), (1, 1, 1024), (33, 17, 8)])
def test_layout_from_metadata_matches_slicer(width: int, height: int, tile_size: int) -> None:
    record = _record(width, height, tile_size)
    rgba = np.zeros((height, width, 4), dtype=np.uint8)
    tiles, _ = slice_tiles(rgba, tile_size)

    widths, heights = layout_spans(record)
    grid = grid_from_metadata(record)

    for tile in tiles:
        assert (tile.width, tile.height) == (widths[tile.col], heights[tile.row])
        assert grid.tile_shape(tile.row, tile.col) == (tile.width, tile.height)


def test_grid_from_metadata_rejects_inconsistent_layout() -> None:
    record = _record()
    record["tileGrid"]["columns"] = 2
    with pytest.raises(MetadataError, match="does not match"):
        grid_from_metadata(record)
