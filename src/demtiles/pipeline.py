"""Per-raster reprojection and tiling jobs, and batches of them."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from demtiles.codec import save_tile
from demtiles.config import TilingConfig
from demtiles.dem.crs import ProjectionAdapter
from demtiles.dem.footprint import compute_footprint
from demtiles.dem.info import read_raster
from demtiles.dem.models import Footprint, Raster, Tile, TileGrid, ValueRange
from demtiles.dem.normalize import normalize
from demtiles.dem.resample import resample
from demtiles.dem.tiling import slice_tiles
from demtiles.jobs import coerce_jobs, run_jobs
from demtiles.metadata import METADATA_FILENAME, build_metadata, write_metadata
from demtiles.perf import PerfTracker

LOGGER = logging.getLogger("demtiles.pipeline")

RASTER_SUFFIXES = (".tif", ".tiff")


@dataclass(frozen=True)
class TileSet:
    """In-memory result of tiling one raster, before anything is written."""

    footprint: Footprint
    value_range: ValueRange
    grid: TileGrid
    tiles: tuple[Tile, ...]
    metadata: Mapping[str, Any]


@dataclass(frozen=True)
class RasterJobResult:
    """Outputs written for one raster."""

    source: Path
    output_dir: Path
    grid: TileGrid
    value_range: ValueRange
    tile_paths: tuple[Path, ...]
    metadata_path: Path
    performance: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchReport:
    """Results and per-file failures for a batch of rasters."""

    results: tuple[RasterJobResult, ...]
    errors: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def find_rasters(source_dir: Path) -> list[Path]:
    """Return GeoTIFF files directly inside a directory, sorted by name."""
    return sorted(
        path
        for path in source_dir.iterdir()
        if path.is_file() and path.suffix.lower() in RASTER_SUFFIXES
    )


def output_dir_for(source: Path, output_root: Path, tile_size: int) -> Path:
    """Return <output_root>/<tile_size>/<stem> for a source raster."""
    return output_root / str(tile_size) / source.stem


def build_tile_set(
    raster: Raster,
    config: TilingConfig,
    adapter: ProjectionAdapter,
    perf: PerfTracker | None = None,
) -> TileSet:
    """Run footprint, resampling, normalization and slicing in memory."""
    perf = perf or PerfTracker(enabled=False)
    with perf.span("footprint"):
        footprint = compute_footprint(raster, config.source_crs, config.target_crs, adapter)
    with perf.span("resample"):
        grid_values = resample(raster, footprint, adapter, row_jobs=config.row_jobs)
    with perf.span("normalize"):
        value_range, rgba = normalize(grid_values, raster.nodata)
    LOGGER.info("Value range: %s to %s", value_range.min, value_range.max)
    with perf.span("slice"):
        tiles, grid = slice_tiles(rgba, config.tile_size)
    metadata = build_metadata(
        footprint,
        grid,
        value_range,
        unit=adapter.unit_label(config.target_crs),
    )
    return TileSet(
        footprint=footprint,
        value_range=value_range,
        grid=grid,
        tiles=tuple(tiles),
        metadata=metadata,
    )


def write_tile_set(
    tile_set: TileSet,
    output_dir: Path,
    *,
    tile_format: str = "png",
    tile_jobs: int = 1,
) -> tuple[tuple[Path, ...], Path]:
    """Write tiles and metadata into a staging directory, then swap it in.

    Nothing appears at output_dir unless every tile and the metadata were
    written. An existing output_dir is replaced.
    """
    output_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{output_dir.name}.", dir=output_dir.parent))
    try:
        jobs = coerce_jobs(tile_jobs, len(tile_set.tiles))
        run_jobs(
            list(tile_set.tiles),
            jobs,
            lambda tile: save_tile(tile, staging, tile_format=tile_format),
            continue_on_error=False,
        )
        write_metadata(staging, tile_set.metadata)
        if output_dir.exists():
            shutil.rmtree(output_dir)
        staging.rename(output_dir)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    tile_paths = tuple(output_dir / tile.name(tile_format) for tile in tile_set.tiles)
    return tile_paths, output_dir / METADATA_FILENAME


def process_raster(
    source: Path,
    output_root: Path,
    config: TilingConfig,
    *,
    adapter: ProjectionAdapter | None = None,
    profile: bool = False,
) -> RasterJobResult:
    """Reproject, normalize and tile one raster; all-or-nothing on disk."""
    adapter = adapter or ProjectionAdapter(config.registry())
    perf = PerfTracker(enabled=profile)
    context = {"raster": source.name}
    LOGGER.info("Processing: %s", source, extra=context)
    with perf.span("read"):
        raster = read_raster(source, nodata=config.nodata)
    LOGGER.info(
        "Original dimensions: %sx%s, bounds %s",
        raster.width,
        raster.height,
        raster.bounds,
        extra=context,
    )
    if raster.crs and raster.crs != config.source_crs:
        LOGGER.warning(
            "Raster CRS %s differs from configured source CRS %s",
            raster.crs,
            config.source_crs,
            extra=context,
        )
    tile_set = build_tile_set(raster, config, adapter, perf)
    output_dir = output_dir_for(source, output_root, config.tile_size)
    LOGGER.info(
        "Creating %sx%s tiles (%s total)",
        tile_set.grid.columns,
        tile_set.grid.rows,
        len(tile_set.tiles),
        extra=context,
    )
    with perf.span("write"):
        tile_paths, metadata_path = write_tile_set(
            tile_set,
            output_dir,
            tile_format=config.tile_format,
            tile_jobs=config.tile_jobs,
        )
    LOGGER.info("Tiles saved to: %s", output_dir, extra=context)
    summary = perf.summary()
    if summary:
        LOGGER.debug("Timings: %s", summary, extra=context)
    return RasterJobResult(
        source=source,
        output_dir=output_dir,
        grid=tile_set.grid,
        value_range=tile_set.value_range,
        tile_paths=tile_paths,
        metadata_path=metadata_path,
        performance=summary,
    )


def process_batch(
    sources: Iterable[Path],
    output_root: Path,
    config: TilingConfig,
    *,
    profile: bool = False,
) -> BatchReport:
    """Process rasters independently; a failure never stops the batch."""
    sources = list(sources)
    LOGGER.info("Found %s raster file(s)", len(sources))
    errors: dict[str, str] = {}
    claimed: dict[Path, Path] = {}
    unique = []
    for source in sources:
        target = output_dir_for(source, output_root, config.tile_size)
        if target in claimed:
            message = f"Output directory {target} is already used by {claimed[target]}"
            LOGGER.error("Skipping %s: %s", source, message, extra={"raster": source.name})
            errors[str(source)] = message
            continue
        claimed[target] = source
        unique.append(source)
    jobs = coerce_jobs(config.raster_jobs, len(unique))

    def worker(source: Path) -> RasterJobResult:
        return process_raster(source, output_root, config, profile=profile)

    outcomes = run_jobs(unique, jobs, worker, continue_on_error=True)
    results = []
    for outcome in outcomes:
        if outcome.error is not None:
            LOGGER.error(
                "Error processing %s: %s",
                outcome.item,
                outcome.error,
                extra={"raster": outcome.item.name},
            )
            errors[str(outcome.item)] = outcome.error
        elif outcome.result is not None:
            results.append(outcome.result)
    return BatchReport(results=tuple(results), errors=errors)

