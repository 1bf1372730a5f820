"""Exception types raised by the tiling pipeline."""

from __future__ import annotations


class DemTilesError(Exception):
    """Base class for pipeline failures."""


class ProjectionError(DemTilesError):
    """Unsupported CRS pair or a non-finite transform result."""


class EmptyRangeError(DemTilesError):
    """Raised when a grid holds no valid elevation samples."""


class InvalidTileSizeError(DemTilesError, ValueError):
    """Raised for a non-positive tile size."""


class DecodeError(DemTilesError):
    """Raster decoding failed."""


class EncodeError(DemTilesError):
    """Tile image encoding failed."""


class MetadataError(DemTilesError):
    """Metadata record is missing or does not match the schema."""


class MeshConversionError(DemTilesError):
    """Mesh conversion tool is missing or unusable."""
