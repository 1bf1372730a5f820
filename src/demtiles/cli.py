"""Command-line interface for demtiles."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from demtiles import __version__
from demtiles.codec import TILE_FORMATS
from demtiles.config import TilingConfig, load_config, resolve_hmm
from demtiles.dem.info import inspect_raster
from demtiles.doctor import run_doctor
from demtiles.errors import DemTilesError
from demtiles.logging_utils import LogOptions, configure_logging
from demtiles.mesh import DEFAULT_MAX_ERROR, convert_tiles_to_mesh, find_tile_dirs
from demtiles.metadata import layout_spans, read_metadata
from demtiles.pipeline import find_rasters, process_batch

LOGGER = logging.getLogger("demtiles.cli")


def _parse_definition(value: str) -> tuple[str, str]:
    identifier, sep, definition = value.partition("=")
    if not sep or not identifier or not definition:
        raise argparse.ArgumentTypeError("CRS definitions must look like ID=DEFINITION")
    return identifier, definition


def _add_tile_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the tile subcommand."""
    tile = subparsers.add_parser("tile", help="Reproject rasters and write image tiles.")
    tile.add_argument("--source", help="Directory of .tif/.tiff rasters.")
    tile.add_argument("--input", action="append", help="Path to a raster file.")
    tile.add_argument("--output", default="output", help="Output root directory.")
    tile.add_argument("--config", help="JSON file with tiling options.")
    tile.add_argument("--tile-size", type=int, help="Tile edge length in pixels.")
    tile.add_argument("--source-crs", help="CRS of the input rasters.")
    tile.add_argument("--target-crs", help="CRS to reproject into.")
    tile.add_argument(
        "--define",
        action="append",
        type=_parse_definition,
        help="Register a CRS as ID=PROJ_STRING (repeatable).",
    )
    tile.add_argument("--format", choices=sorted(TILE_FORMATS), help="Tile image format.")
    tile.add_argument("--nodata", type=float, help="Override the declared nodata value.")
    tile.add_argument("--row-jobs", type=int, help="Resampling workers (0 = auto).")
    tile.add_argument("--tile-jobs", type=int, help="Tile encoding workers (0 = auto).")
    tile.add_argument("--raster-jobs", type=int, help="Rasters processed in parallel (0 = auto).")
    tile.add_argument("--profile", action="store_true", help="Log per-stage timings.")


def _add_mesh_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the mesh subcommand."""
    mesh = subparsers.add_parser("mesh", help="Convert tiles to meshes with hmm.")
    mesh.add_argument("--output", default="output", help="Output root to scan for tile sets.")
    mesh.add_argument("--tile-dir", action="append", help="Convert a single tile directory.")
    mesh.add_argument("--hmm", help="Path to the hmm executable.")
    mesh.add_argument(
        "--max-error",
        type=float,
        default=DEFAULT_MAX_ERROR,
        help="Maximum triangulation error as a fraction of the height range.",
    )
    mesh.add_argument("--timeout", type=float, help="Per-tile timeout in seconds.")


def _add_grid_parser(subparsers: argparse._SubParsersAction) -> None:
    grid = subparsers.add_parser("grid", help="Show the tile layout described by metadata.")
    grid.add_argument("metadata", help="metadata.json or a tile directory.")


def _add_inspect_parser(subparsers: argparse._SubParsersAction) -> None:
    inspect = subparsers.add_parser("inspect", help="Print raster header information.")
    inspect.add_argument("raster", help="Path to a raster file.")


def _add_doctor_parser(subparsers: argparse._SubParsersAction) -> None:
    doctor = subparsers.add_parser("doctor", help="Check dependencies and external tools.")
    doctor.add_argument("--hmm", help="Path to the hmm executable.")


def _tiling_config(args: argparse.Namespace) -> TilingConfig:
    """Merge the optional config file with CLI overrides."""
    base = load_config(Path(args.config)) if args.config else TilingConfig()
    definitions = None
    if args.define:
        definitions = dict(base.crs_definitions or {})
        definitions.update(dict(args.define))
    return base.with_overrides(
        source_crs=args.source_crs,
        target_crs=args.target_crs,
        tile_size=args.tile_size,
        tile_format=args.format,
        nodata=args.nodata,
        crs_definitions=definitions,
        row_jobs=args.row_jobs,
        tile_jobs=args.tile_jobs,
        raster_jobs=args.raster_jobs,
    )


def _run_tile(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if not args.source and not args.input:
        parser.error("--source or --input is required for tile")
    try:
        config = _tiling_config(args)
    except (OSError, ValueError) as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    sources = [Path(path) for path in (args.input or [])]
    if args.source:
        source_dir = Path(args.source)
        if not source_dir.is_dir():
            parser.error(f"Source directory not found: {source_dir}")
        sources.extend(find_rasters(source_dir))
    report = process_batch(sources, Path(args.output), config, profile=args.profile)
    for result in report.results:
        LOGGER.info(
            "%s: %sx%s tiles in %s",
            result.source.name,
            result.grid.columns,
            result.grid.rows,
            result.output_dir,
        )
    if not report.ok:
        LOGGER.error("%s of %s raster(s) failed.", len(report.errors), len(sources))
        return 1
    LOGGER.info("Done!")
    return 0


def _run_mesh(args: argparse.Namespace) -> int:
    hmm = resolve_hmm(args.hmm)
    if hmm is None:
        LOGGER.error("hmm not found. Build it under libs/hmm or pass --hmm.")
        return 1
    tile_dirs = [Path(path) for path in args.tile_dir] if args.tile_dir else find_tile_dirs(
        Path(args.output)
    )
    failed = False
    for tile_dir in tile_dirs:
        try:
            report = convert_tiles_to_mesh(
                tile_dir,
                hmm,
                max_error=args.max_error,
                timeout=args.timeout,
            )
        except (DemTilesError, ValueError) as exc:
            LOGGER.error("Error converting %s: %s", tile_dir, exc)
            failed = True
            continue
        if report.errors:
            failed = True
    return 1 if failed else 0


def _run_grid(args: argparse.Namespace) -> int:
    try:
        record = read_metadata(Path(args.metadata))
        widths, heights = layout_spans(record)
    except DemTilesError as exc:
        LOGGER.error("%s", exc)
        return 1
    payload = {
        "columns": len(widths),
        "rows": len(heights),
        "columnWidths": widths,
        "rowHeights": heights,
    }
    print(json.dumps(payload, indent=2))
    return 0


def _run_inspect(args: argparse.Namespace) -> int:
    try:
        info = inspect_raster(Path(args.raster))
    except DemTilesError as exc:
        LOGGER.error("%s", exc)
        return 1
    payload = {
        "path": str(info.path),
        "crs": info.crs,
        "bounds": list(info.bounds),
        "width": info.width,
        "height": info.height,
        "nodata": info.nodata,
        "resolution": list(info.resolution),
        "dtype": info.dtype,
    }
    print(json.dumps(payload, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="demtiles",
        description="Reproject elevation rasters into image tiles",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON on stderr.",
    )
    parser.add_argument(
        "--log-file",
        help="Optional path for JSON log output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_tile_parser(subparsers)
    _add_mesh_parser(subparsers)
    _add_grid_parser(subparsers)
    _add_inspect_parser(subparsers)
    _add_doctor_parser(subparsers)
    subparsers.add_parser("version", help="Print the demtiles version.")

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    configure_logging(
        LogOptions(
            verbose=args.verbose or 0,
            quiet=bool(args.quiet),
            log_file=Path(log_file_value) if log_file_value else None,
            json_console=bool(args.log_json),
        )
    )

    if args.command == "version":
        print(__version__)
        return 0
    if args.command == "tile":
        return _run_tile(args, parser)
    if args.command == "mesh":
        return _run_mesh(args)
    if args.command == "grid":
        return _run_grid(args)
    if args.command == "inspect":
        return _run_inspect(args)
    if args.command == "doctor":
        results = run_doctor(args.hmm)
        for result in results:
            LOGGER.info("%s: %s - %s", result.name, result.status, result.detail)
        return 1 if any(result.status == "error" for result in results) else 0

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
