"""Reprojection, normalization and tiling engine."""

from demtiles.dem.crs import CrsRegistry, ProjectionAdapter
from demtiles.dem.footprint import compute_footprint
from demtiles.dem.info import inspect_raster, read_raster
from demtiles.dem.models import Footprint, Raster, RasterInfo, Tile, TileGrid, ValueRange
from demtiles.dem.normalize import normalize, value_range
from demtiles.dem.resample import resample, resample_rows
from demtiles.dem.tiling import slice_tiles, tile_grid

__all__ = [
    "CrsRegistry",
    "Footprint",
    "ProjectionAdapter",
    "Raster",
    "RasterInfo",
    "Tile",
    "TileGrid",
    "ValueRange",
    "compute_footprint",
    "inspect_raster",
    "normalize",
    "read_raster",
    "resample",
    "resample_rows",
    "slice_tiles",
    "tile_grid",
    "value_range",
]
