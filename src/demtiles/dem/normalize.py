"""Value range detection and 8-bit grayscale-with-alpha encoding."""

from __future__ import annotations

import numpy as np

from demtiles.dem.models import ValueRange, nodata_mask
from demtiles.errors import EmptyRangeError


def value_range(grid: np.ndarray, nodata: float | None) -> ValueRange:
    """Return min/max over cells that are neither nodata nor NaN."""
    valid = grid[~nodata_mask(grid, nodata)]
    if valid.size == 0:
        raise EmptyRangeError("No valid elevation samples to normalize.")
    return ValueRange(min=float(valid.min()), max=float(valid.max()))


def scale_values(values: np.ndarray, value_range: ValueRange) -> np.ndarray:
    """Map values linearly onto 0..255, rounding halves up."""
    values = np.asarray(values, dtype=np.float64)
    if value_range.is_degenerate:
        return np.full(values.shape, 255, dtype=np.uint8)
    span = value_range.max - value_range.min
    scaled = np.floor((values - value_range.min) / span * 255 + 0.5)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def normalize(grid: np.ndarray, nodata: float | None) -> tuple[ValueRange, np.ndarray]:
    """Normalize a grid into an RGBA array, transparent where nodata."""
    vrange = value_range(grid, nodata)
    missing = nodata_mask(grid, nodata)
    rgba = np.zeros(grid.shape + (4,), dtype=np.uint8)
    valid = ~missing
    gray = scale_values(grid[valid], vrange)
    rgba[valid, 0] = gray
    rgba[valid, 1] = gray
    rgba[valid, 2] = gray
    rgba[valid, 3] = 255
    return vrange, rgba
