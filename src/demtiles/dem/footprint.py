"""Raster footprint reprojection."""

from __future__ import annotations

import logging

from demtiles.dem.crs import ProjectionAdapter
from demtiles.dem.models import Footprint, Raster

LOGGER = logging.getLogger("demtiles.footprint")


def compute_footprint(
    raster: Raster,
    src_crs: str,
    dst_crs: str,
    adapter: ProjectionAdapter | None = None,
) -> Footprint:
    """Map the raster corners into dst_crs and derive bounds and resolution.

    The destination resolution is the projected extent divided by the source
    pixel counts, so the output grid keeps the source width and height. This
    is an approximation of the true pixel pitch: it does not vary across the
    footprint and its error grows with the distortion of the projection.
    Callers that need more fidelity should split the raster before tiling.
    """
    adapter = adapter or ProjectionAdapter()
    min_x, min_y, max_x, max_y = raster.bounds
    corners = (
        adapter.transform(src_crs, dst_crs, (min_x, min_y)),
        adapter.transform(src_crs, dst_crs, (max_x, min_y)),
        adapter.transform(src_crs, dst_crs, (max_x, max_y)),
        adapter.transform(src_crs, dst_crs, (min_x, max_y)),
    )
    xs = [corner[0] for corner in corners]
    ys = [corner[1] for corner in corners]
    bounds = (min(xs), min(ys), max(xs), max(ys))
    resolution = (
        (bounds[2] - bounds[0]) / raster.width,
        (bounds[3] - bounds[1]) / raster.height,
    )
    LOGGER.debug("Transformed corners (%s): %s", dst_crs, corners)
    LOGGER.info(
        "Destination bounds [%s, %s, %s, %s], resolution %.2f x %.2f per pixel",
        *bounds,
        *resolution,
    )
    return Footprint(
        source_crs=src_crs,
        target_crs=dst_crs,
        source_bounds=raster.bounds,
        corners=corners,
        bounds=bounds,
        source_resolution=raster.resolution,
        resolution=resolution,
        width=raster.width,
        height=raster.height,
    )
