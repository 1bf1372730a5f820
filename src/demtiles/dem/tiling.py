"""Tile grid geometry and slicing of normalized rasters."""

from __future__ import annotations

import math

import numpy as np

from demtiles.dem.models import Tile, TileGrid
from demtiles.errors import InvalidTileSizeError


def check_tile_size(tile_size: int) -> int:
    """Return tile_size as an int or raise InvalidTileSizeError."""
    if isinstance(tile_size, bool) or not isinstance(tile_size, (int, np.integer)):
        raise InvalidTileSizeError(f"Tile size must be an integer, got {tile_size!r}")
    if tile_size <= 0:
        raise InvalidTileSizeError(f"Tile size must be positive, got {tile_size}")
    return int(tile_size)


def tile_grid(width: int, height: int, tile_size: int) -> TileGrid:
    """Return the tile layout covering a width x height grid."""
    size = check_tile_size(tile_size)
    if width <= 0 or height <= 0:
        raise ValueError("Grid dimensions must be positive.")
    return TileGrid(
        columns=max(1, math.ceil(width / size)),
        rows=max(1, math.ceil(height / size)),
        tile_size=size,
        width=width,
        height=height,
    )


def edge_span(dimension: int, tile_size: int) -> int:
    """Pixel span of the last tile along an axis."""
    return dimension % tile_size or tile_size


def slice_tiles(rgba: np.ndarray, tile_size: int) -> tuple[list[Tile], TileGrid]:
    """Cut an RGBA grid into row-major tiles; edge tiles may be smaller."""
    if rgba.ndim != 3:
        raise ValueError("Expected an array shaped (height, width, channels).")
    height, width = rgba.shape[:2]
    grid = tile_grid(width, height, tile_size)
    tiles = []
    for row, col in grid.positions():
        start_x = col * grid.tile_size
        start_y = row * grid.tile_size
        tile_width, tile_height = grid.tile_shape(row, col)
        pixels = rgba[start_y : start_y + tile_height, start_x : start_x + tile_width].copy()
        tiles.append(Tile(row=row, col=col, pixels=pixels))
    return tiles, grid
