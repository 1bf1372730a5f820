"""Tile set metadata record: building, persistence, and grid reconstruction."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Mapping

from demtiles.contracts import validate_metadata
from demtiles.dem.models import Bounds, Footprint, TileGrid, ValueRange
from demtiles.dem.tiling import edge_span
from demtiles.errors import MetadataError

METADATA_FILENAME = "metadata.json"


def _bounds_dict(bounds: Bounds) -> dict[str, float]:
    min_x, min_y, max_x, max_y = bounds
    return {"minX": min_x, "minY": min_y, "maxX": max_x, "maxY": max_y}


def build_metadata(
    footprint: Footprint,
    grid: TileGrid,
    value_range: ValueRange,
    *,
    unit: str,
) -> dict[str, Any]:
    """Assemble the metadata record shared with viewers and mesh tools."""
    record = {
        "sourceCRS": footprint.source_crs,
        "targetCRS": footprint.target_crs,
        "originalBounds": _bounds_dict(footprint.source_bounds),
        # Destination-space bounds; the key name predates non-UTM targets.
        "utmBounds": _bounds_dict(footprint.bounds),
        "originalDimensions": {"width": footprint.width, "height": footprint.height},
        "reprojectedDimensions": {"width": grid.width, "height": grid.height},
        "tileSize": grid.tile_size,
        "tileGrid": {"columns": grid.columns, "rows": grid.rows},
        "valueRange": {"min": value_range.min, "max": value_range.max},
        "resolution": {
            "x": footprint.resolution[0],
            "y": footprint.resolution[1],
            "unit": unit,
        },
    }
    validate_metadata(record)
    return record


def write_metadata(directory: Path, record: Mapping[str, Any]) -> Path:
    """Validate and write metadata.json into a tile directory."""
    validate_metadata(record)
    path = directory / METADATA_FILENAME
    path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    return path


def read_metadata(path: Path) -> dict[str, Any]:
    """Read and validate a metadata file or the one inside a tile directory."""
    if path.is_dir():
        path = path / METADATA_FILENAME
    if not path.exists():
        raise MetadataError(f"No {METADATA_FILENAME} found at {path}")
    try:
        record = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise MetadataError(f"Cannot read {path}: {exc}") from exc
    validate_metadata(record)
    return record


def grid_from_metadata(record: Mapping[str, Any]) -> TileGrid:
    """Rebuild the tile grid from tileSize, tileGrid and reprojectedDimensions."""
    dims = record["reprojectedDimensions"]
    layout = record["tileGrid"]
    tile_size = int(record["tileSize"])
    grid = TileGrid(
        columns=int(layout["columns"]),
        rows=int(layout["rows"]),
        tile_size=tile_size,
        width=int(dims["width"]),
        height=int(dims["height"]),
    )
    if grid.columns != math.ceil(grid.width / tile_size) or grid.rows != math.ceil(
        grid.height / tile_size
    ):
        raise MetadataError("tileGrid does not match reprojectedDimensions and tileSize")
    return grid


def layout_spans(record: Mapping[str, Any]) -> tuple[list[int], list[int]]:
    """Return column widths and row heights as a grid viewer lays them out."""
    grid = grid_from_metadata(record)
    size = grid.tile_size
    last_col = edge_span(grid.width, size)
    last_row = edge_span(grid.height, size)
    widths = [size] * (grid.columns - 1) + [last_col]
    heights = [size] * (grid.rows - 1) + [last_row]
    return widths, heights
