"""Data models used by the reprojection and tiling engine."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence, Tuple

import numpy as np

Bounds = Tuple[float, float, float, float]
Point = Tuple[float, float]
Resolution = Tuple[float, float]


@dataclass(frozen=True)
class Raster:
    """Single-band elevation raster as read from disk."""

    data: np.ndarray
    bounds: Bounds
    nodata: float
    crs: str | None = None
    path: Path | None = None

    def __post_init__(self) -> None:
        if self.data.ndim != 2:
            raise ValueError("Raster data must be a 2D array.")
        height, width = self.data.shape
        if width <= 0 or height <= 0:
            raise ValueError("Raster dimensions must be positive.")

    @classmethod
    def from_flat(
        cls,
        samples: Sequence[float] | np.ndarray,
        width: int,
        height: int,
        *,
        bounds: Bounds,
        nodata: float,
        crs: str | None = None,
    ) -> "Raster":
        """Build a raster from a row-major flat sample sequence."""
        if width <= 0 or height <= 0:
            raise ValueError("Raster dimensions must be positive.")
        flat = np.asarray(samples)
        if flat.size != width * height:
            raise ValueError(
                f"Expected {width * height} samples for {width}x{height}, got {flat.size}."
            )
        return cls(data=flat.reshape(height, width), bounds=bounds, nodata=nodata, crs=crs)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def resolution(self) -> Resolution:
        """Native units per source pixel along x and y."""
        min_x, min_y, max_x, max_y = self.bounds
        return ((max_x - min_x) / self.width, (max_y - min_y) / self.height)


@dataclass(frozen=True)
class Footprint:
    """Raster extent expressed in the destination CRS."""

    source_crs: str
    target_crs: str
    source_bounds: Bounds
    corners: tuple[Point, Point, Point, Point]
    bounds: Bounds
    source_resolution: Resolution
    resolution: Resolution
    width: int
    height: int


@dataclass(frozen=True)
class ValueRange:
    """Minimum and maximum over the valid cells of a grid."""

    min: float
    max: float

    @property
    def is_degenerate(self) -> bool:
        return self.min == self.max


@dataclass(frozen=True)
class TileGrid:
    """Row/column layout of fixed-size tiles over a grid."""

    columns: int
    rows: int
    tile_size: int
    width: int
    height: int

    def tile_width(self, col: int) -> int:
        return min(self.tile_size, self.width - col * self.tile_size)

    def tile_height(self, row: int) -> int:
        return min(self.tile_size, self.height - row * self.tile_size)

    def tile_shape(self, row: int, col: int) -> tuple[int, int]:
        """Return (width, height) of the tile at row/col."""
        if not (0 <= row < self.rows and 0 <= col < self.columns):
            raise IndexError(f"Tile ({row}, {col}) outside {self.rows}x{self.columns} grid")
        return self.tile_width(col), self.tile_height(row)

    def positions(self) -> Iterator[tuple[int, int]]:
        """Yield (row, col) pairs in row-major order."""
        for row in range(self.rows):
            for col in range(self.columns):
                yield row, col


@dataclass(frozen=True)
class Tile:
    """RGBA sub-image cut from the normalized grid."""

    row: int
    col: int
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def name(self, ext: str = "png") -> str:
        return f"tile_{self.row}_{self.col}.{ext}"


@dataclass(frozen=True)
class RasterInfo:
    """Header information for a raster on disk."""

    path: Path
    crs: str | None
    bounds: Bounds
    width: int
    height: int
    nodata: float | None
    resolution: Resolution
    dtype: str


def nodata_mask(data: np.ndarray, nodata: float | None) -> np.ndarray:
    """Return a boolean mask of nodata sentinel and NaN cells.

    The sentinel is compared exactly; a NaN sentinel matches NaN cells.
    """
    if np.issubdtype(data.dtype, np.floating):
        mask = np.isnan(data)
    else:
        mask = np.zeros(data.shape, dtype=bool)
    if nodata is None or np.isnan(nodata):
        return mask
    return mask | (data == nodata)
