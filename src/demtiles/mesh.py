"""Tile-to-mesh conversion through the external hmm heightmap mesher."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from demtiles.codec import TILE_FORMATS
from demtiles.errors import MeshConversionError
from demtiles.metadata import read_metadata
from demtiles.subprocess_utils import run_command

LOGGER = logging.getLogger("demtiles.mesh")

DEFAULT_MAX_ERROR = 0.001
MESH_FORMATS = ("png",)
TILE_PATTERN = re.compile(r"^tile_(\d+)_(\d+)\.(" + "|".join(TILE_FORMATS) + r")$")


@dataclass(frozen=True)
class MeshReport:
    """Meshes and normal maps produced for one tile directory."""

    tile_dir: Path
    z_scale: float
    meshes: tuple[Path, ...]
    normals: tuple[Path, ...]
    errors: Mapping[str, str] = field(default_factory=dict)


def z_scale(record: Mapping[str, Any]) -> float:
    """Elevation range over the mean pixel size, both in destination units."""
    elevation_range = record["valueRange"]["max"] - record["valueRange"]["min"]
    resolution = record["resolution"]
    pixel_size = (resolution["x"] + resolution["y"]) / 2
    if pixel_size <= 0:
        raise ValueError("Average pixel size must be positive to derive a z scale.")
    return elevation_range / pixel_size


def hmm_command(
    hmm: Path,
    tile_path: Path,
    stl_path: Path,
    normal_path: Path,
    *,
    scale: float,
    max_error: float = DEFAULT_MAX_ERROR,
) -> list[str]:
    """Build the hmm invocation for one tile."""
    return [
        str(hmm),
        "-z",
        f"{scale:.4f}",
        "-e",
        str(max_error),
        "--normal-map",
        str(normal_path),
        str(tile_path),
        str(stl_path),
    ]


def tile_images(tile_dir: Path) -> list[Path]:
    """Return tile images of any supported format in row-major order."""
    found = []
    for path in tile_dir.iterdir():
        match = TILE_PATTERN.match(path.name)
        if match and path.is_file():
            found.append(((int(match.group(1)), int(match.group(2)), match.group(3)), path))
    return [path for _, path in sorted(found)]


def find_tile_dirs(output_root: Path) -> list[Path]:
    """Return <output_root>/<tile_size>/<name> directories holding tiles."""
    if not output_root.is_dir():
        return []
    tile_dirs = []
    for size_dir in sorted(output_root.iterdir()):
        if not (size_dir.is_dir() and size_dir.name.isdigit()):
            continue
        for tile_dir in sorted(size_dir.iterdir()):
            if tile_dir.is_dir() and not tile_dir.name.startswith("."):
                tile_dirs.append(tile_dir)
    return tile_dirs


def _check_hmm(hmm: Path) -> None:
    if not (hmm.exists() or shutil.which(str(hmm))):
        raise MeshConversionError(f"hmm not found at {hmm}. Build it or pass --hmm.")


def convert_tiles_to_mesh(
    tile_dir: Path,
    hmm: Path,
    *,
    max_error: float = DEFAULT_MAX_ERROR,
    timeout: float | None = None,
) -> MeshReport:
    """Convert every tile in a directory into an STL mesh and a normal map.

    A failing tile is logged and recorded; the remaining tiles still run.
    """
    _check_hmm(hmm)
    record = read_metadata(tile_dir)
    scale = z_scale(record)
    context = {"raster": tile_dir.name}
    resolution = record["resolution"]
    LOGGER.info(
        "Resolution %.2f x %.2f %s per pixel, z scale %.4f",
        resolution["x"],
        resolution["y"],
        resolution["unit"],
        scale,
        extra=context,
    )

    tiles = tile_images(tile_dir)
    if not tiles:
        raise MeshConversionError(f"No tile images found in {tile_dir}")
    LOGGER.info("Found %s tiles", len(tiles), extra=context)

    mesh_dir = tile_dir / "meshes"
    normals_dir = tile_dir / "normals"
    mesh_dir.mkdir(parents=True, exist_ok=True)
    normals_dir.mkdir(parents=True, exist_ok=True)

    meshes = []
    normals = []
    errors: dict[str, str] = {}
    for tile_path in tiles:
        if tile_path.suffix.lstrip(".") not in MESH_FORMATS:
            message = f"hmm reads {', '.join(MESH_FORMATS)} heightmaps only; re-tile as png"
            errors[tile_path.name] = message
            LOGGER.error("Skipping %s: %s", tile_path.name, message, extra=context)
            continue
        stl_path = mesh_dir / f"{tile_path.stem}.stl"
        normal_path = normals_dir / f"{tile_path.stem}_normal.png"
        command = hmm_command(
            hmm,
            tile_path,
            stl_path,
            normal_path,
            scale=scale,
            max_error=max_error,
        )
        LOGGER.debug("Converting %s -> %s", tile_path.name, stl_path.name, extra=context)
        try:
            result = run_command(command, timeout=timeout)
        except OSError as exc:
            errors[tile_path.name] = str(exc)
            LOGGER.error("hmm failed for %s: %s", tile_path.name, exc, extra=context)
            continue
        if not result.ok:
            message = result.stderr.strip() or f"exit code {result.returncode}"
            errors[tile_path.name] = message
            LOGGER.error("hmm failed for %s: %s", tile_path.name, message, extra=context)
            continue
        meshes.append(stl_path)
        normals.append(normal_path)

    LOGGER.info("Meshes saved to: %s", mesh_dir, extra=context)
    return MeshReport(
        tile_dir=tile_dir,
        z_scale=scale,
        meshes=tuple(meshes),
        normals=tuple(normals),
        errors=errors,
    )
