from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
import rasterio
from rasterio.transform import from_bounds

# One degree cell around the UTM 15N central meridian.
UTM15_BOUNDS = (-93.5, 34.0, -92.5, 35.0)


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    bounds: Tuple[float, float, float, float] = UTM15_BOUNDS,
    crs: str = "EPSG:4326",
    nodata: float | None = None,
) -> None:
    height, width = data.shape
    transform = from_bounds(*bounds, width=width, height=height)
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=data.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dataset:
        dataset.write(data, 1)


def ramp(width: int, height: int, dtype=np.float32) -> np.ndarray:
    """Row-major ramp 0..width*height-1."""
    return np.arange(width * height, dtype=dtype).reshape(height, width)
