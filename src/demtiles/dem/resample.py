"""Inverse-mapped bilinear resampling into the destination grid."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from demtiles.dem.crs import ProjectionAdapter
from demtiles.dem.models import Footprint, Raster, nodata_mask
from demtiles.jobs import coerce_jobs

LOGGER = logging.getLogger("demtiles.resample")

DEFAULT_BAND_ROWS = 256


def row_bands(
    height: int,
    jobs: int,
    *,
    band_rows: int = DEFAULT_BAND_ROWS,
) -> list[tuple[int, int]]:
    """Split [0, height) into disjoint, ordered (start, stop) row bands."""
    if height <= 0:
        return []
    size = max(1, min(band_rows, math.ceil(height / max(1, jobs))))
    return [(start, min(start + size, height)) for start in range(0, height, size)]


def resample_rows(
    raster: Raster,
    footprint: Footprint,
    adapter: ProjectionAdapter,
    start: int,
    stop: int,
    *,
    missing: np.ndarray | None = None,
) -> np.ndarray:
    """Resample destination rows [start, stop) and return the block.

    Each destination pixel center is mapped back into the source raster and
    blended from its 2x2 neighborhood. A neighborhood that leaves the raster
    or touches a nodata sample yields the nodata sentinel.
    """
    if missing is None:
        missing = nodata_mask(raster.data, raster.nodata)
    width = footprint.width
    dst_min_x, _, _, dst_max_y = footprint.bounds
    dst_res_x, dst_res_y = footprint.resolution

    cols = np.arange(width, dtype=np.float64)
    rows = np.arange(start, stop, dtype=np.float64)
    dst_x = dst_min_x + (cols + 0.5) * dst_res_x
    dst_y = dst_max_y - (rows + 0.5) * dst_res_y
    grid_x, grid_y = np.meshgrid(dst_x, dst_y)

    lon, lat = adapter.transform_many(
        footprint.target_crs,
        footprint.source_crs,
        grid_x.ravel(),
        grid_y.ravel(),
    )
    src_min_x, _, _, src_max_y = raster.bounds
    src_res_x, src_res_y = raster.resolution
    src_x = (lon - src_min_x) / src_res_x
    src_y = (src_max_y - lat) / src_res_y

    out = np.full(src_x.shape, raster.nodata, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        inside = (
            np.isfinite(src_x)
            & np.isfinite(src_y)
            & (src_x >= 0)
            & (src_x < raster.width - 1)
            & (src_y >= 0)
            & (src_y < raster.height - 1)
        )
    index = np.flatnonzero(inside)
    if index.size == 0:
        return out.reshape(stop - start, width)

    sx = src_x[index]
    sy = src_y[index]
    x0 = np.floor(sx).astype(np.intp)
    y0 = np.floor(sy).astype(np.intp)
    x1 = x0 + 1
    y1 = y0 + 1
    fx = sx - x0
    fy = sy - y0

    blocked = missing[y0, x0] | missing[y0, x1] | missing[y1, x0] | missing[y1, x1]
    data = raster.data
    v00 = data[y0, x0].astype(np.float64)
    v10 = data[y0, x1].astype(np.float64)
    v01 = data[y1, x0].astype(np.float64)
    v11 = data[y1, x1].astype(np.float64)
    value = (
        v00 * (1 - fx) * (1 - fy)
        + v10 * fx * (1 - fy)
        + v01 * (1 - fx) * fy
        + v11 * fx * fy
    )
    keep = ~blocked
    out[index[keep]] = value[keep]
    return out.reshape(stop - start, width)


def resample(
    raster: Raster,
    footprint: Footprint,
    adapter: ProjectionAdapter | None = None,
    *,
    row_jobs: int = 1,
    band_rows: int = DEFAULT_BAND_ROWS,
) -> np.ndarray:
    """Resample a raster into the footprint grid, optionally row-parallel."""
    if (footprint.width, footprint.height) != (raster.width, raster.height):
        raise ValueError("Footprint grid must match the raster dimensions.")
    adapter = adapter or ProjectionAdapter()
    missing = nodata_mask(raster.data, raster.nodata)
    jobs = coerce_jobs(row_jobs, raster.height)
    bands = row_bands(raster.height, jobs, band_rows=band_rows)
    grid = np.empty((raster.height, raster.width), dtype=np.float64)
    LOGGER.info(
        "Reprojecting %sx%s grid (%s band(s), %s worker(s))",
        raster.width,
        raster.height,
        len(bands),
        jobs,
    )

    def work(band: tuple[int, int]) -> np.ndarray:
        return resample_rows(raster, footprint, adapter, band[0], band[1], missing=missing)

    if jobs == 1:
        for band in bands:
            grid[band[0] : band[1]] = work(band)
        return grid
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        for band, block in zip(bands, executor.map(work, bands)):
            grid[band[0] : band[1]] = block
    return grid
