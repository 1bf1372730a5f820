"""Tile image encoding through Pillow."""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from demtiles.dem.models import Tile
from demtiles.errors import EncodeError

TILE_FORMATS = {
    "png": ("PNG", {"optimize": True}),
    "tiff": ("TIFF", {"compression": "tiff_deflate"}),
    "webp": ("WEBP", {"lossless": True, "exact": True}),
}


def save_tile(tile: Tile, directory: Path, *, tile_format: str = "png") -> Path:
    """Write a tile as an 8-bit RGBA image named tile_<row>_<col>.<ext>."""
    if tile_format not in TILE_FORMATS:
        raise EncodeError(f"Unsupported tile format: {tile_format}")
    pil_format, options = TILE_FORMATS[tile_format]
    target = directory / tile.name(tile_format)
    try:
        image = Image.fromarray(np.ascontiguousarray(tile.pixels, dtype=np.uint8))
        image.save(target, format=pil_format, **options)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Cannot encode {target.name}: {exc}") from exc
    return target


def load_tile(path: Path) -> np.ndarray:
    """Read a tile back as an (height, width, 4) uint8 array."""
    with Image.open(path) as image:
        return np.asarray(image.convert("RGBA"))
