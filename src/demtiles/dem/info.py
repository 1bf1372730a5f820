"""Raster reading and inspection helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import rasterio
from rasterio.errors import RasterioError

from demtiles.dem.models import Raster, RasterInfo
from demtiles.errors import DecodeError

LOGGER = logging.getLogger("demtiles.info")

# SRTM void value, used when a file declares no nodata.
DEFAULT_NODATA = -32768.0


def inspect_raster(path: Path) -> RasterInfo:
    """Collect header metadata about a raster on disk."""
    try:
        with rasterio.open(path) as dataset:
            bounds = dataset.bounds
            return RasterInfo(
                path=Path(path),
                crs=dataset.crs.to_string() if dataset.crs else None,
                bounds=(bounds.left, bounds.bottom, bounds.right, bounds.top),
                width=dataset.width,
                height=dataset.height,
                nodata=dataset.nodata,
                resolution=(abs(dataset.res[0]), abs(dataset.res[1])),
                dtype=dataset.dtypes[0],
            )
    except RasterioError as exc:
        raise DecodeError(f"Cannot read {path}: {exc}") from exc


def read_raster(path: Path, *, band: int = 1, nodata: float | None = None) -> Raster:
    """Read one band of a raster; nodata overrides the declared value."""
    try:
        with rasterio.open(path) as dataset:
            if band < 1 or band > dataset.count:
                raise DecodeError(f"{path} has no band {band}")
            data = dataset.read(band)
            bounds = dataset.bounds
            declared = dataset.nodata
            crs = dataset.crs.to_string() if dataset.crs else None
            LOGGER.debug(
                "Read %s: %sx%s %s, %s band(s)",
                path,
                dataset.width,
                dataset.height,
                dataset.dtypes[band - 1],
                dataset.count,
            )
    except RasterioError as exc:
        raise DecodeError(f"Cannot read {path}: {exc}") from exc
    if nodata is None:
        nodata = declared if declared is not None else DEFAULT_NODATA
    return Raster(
        data=data,
        bounds=(bounds.left, bounds.bottom, bounds.right, bounds.top),
        nodata=float(nodata),
        crs=crs,
        path=Path(path),
    )
