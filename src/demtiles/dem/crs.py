"""CRS registry and point transformation helpers."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from demtiles.dem.models import Point
from demtiles.errors import ProjectionError

DEFAULT_DEFINITIONS: Mapping[str, str] = {
    "EPSG:4326": "+proj=longlat +datum=WGS84 +no_defs",
    "EPSG:32615": "+proj=utm +zone=15 +datum=WGS84 +units=m +no_defs",
}

_UNIT_LABELS = {
    "metre": "meters",
    "meter": "meters",
    "degree": "degrees",
    "US survey foot": "us-feet",
    "foot": "feet",
}


class CrsRegistry:
    """Named CRS definitions shared by one set of projection jobs."""

    def __init__(self, definitions: Mapping[str, str] | None = None) -> None:
        self._definitions: dict[str, str] = {}
        self._cache: dict[str, CRS] = {}
        for identifier, definition in (definitions or {}).items():
            self.define(identifier, definition)

    @classmethod
    def default(cls) -> "CrsRegistry":
        return cls(DEFAULT_DEFINITIONS)

    def define(self, identifier: str, definition: str) -> None:
        """Register a proj string or WKT under an identifier."""
        try:
            crs = CRS.from_user_input(definition)
        except CRSError as exc:
            raise ProjectionError(f"Invalid CRS definition for {identifier}: {exc}") from exc
        self._definitions[identifier] = definition
        self._cache[identifier] = crs

    def identifiers(self) -> list[str]:
        return sorted(self._definitions)

    def resolve(self, identifier: str) -> CRS:
        """Return the CRS for an identifier, falling back to pyproj lookup."""
        cached = self._cache.get(identifier)
        if cached is not None:
            return cached
        try:
            crs = CRS.from_user_input(identifier)
        except CRSError as exc:
            raise ProjectionError(f"Unsupported CRS: {identifier}") from exc
        self._cache[identifier] = crs
        return crs


class ProjectionAdapter:
    """Transform points between CRS identifiers known to a registry."""

    def __init__(self, registry: CrsRegistry | None = None) -> None:
        self.registry = registry or CrsRegistry.default()
        self._transformers: dict[tuple[str, str], Transformer] = {}

    def transformer(self, src: str, dst: str) -> Transformer:
        """Return a cached transformer that respects lon/lat axis order."""
        key = (src, dst)
        cached = self._transformers.get(key)
        if cached is not None:
            return cached
        src_crs = self.registry.resolve(src)
        dst_crs = self.registry.resolve(dst)
        try:
            tx = Transformer.from_crs(src_crs, dst_crs, always_xy=True)
        except (CRSError, ProjError) as exc:
            raise ProjectionError(f"No transformation from {src} to {dst}: {exc}") from exc
        self._transformers[key] = tx
        return tx

    def transform(self, src: str, dst: str, point: Point) -> Point:
        """Transform a single point, failing on non-finite output."""
        xs, ys = self.transform_many(src, dst, [point[0]], [point[1]])
        x, y = float(xs[0]), float(ys[0])
        if not (np.isfinite(x) and np.isfinite(y)):
            raise ProjectionError(f"Non-finite transform of {point} from {src} to {dst}")
        return (x, y)

    def transform_many(
        self,
        src: str,
        dst: str,
        xs: Sequence[float] | np.ndarray,
        ys: Sequence[float] | np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Transform coordinate arrays; failed points come back as inf."""
        tx = self.transformer(src, dst)
        try:
            out_xs, out_ys = tx.transform(
                np.asarray(xs, dtype=np.float64),
                np.asarray(ys, dtype=np.float64),
                errcheck=False,
            )
        except ProjError as exc:
            raise ProjectionError(f"Transform from {src} to {dst} failed: {exc}") from exc
        return np.asarray(out_xs, dtype=np.float64), np.asarray(out_ys, dtype=np.float64)

    def unit_label(self, identifier: str) -> str:
        """Return a plural label for the first axis unit of a CRS."""
        crs = self.registry.resolve(identifier)
        if not crs.axis_info:
            return "unknown"
        unit = crs.axis_info[0].unit_name
        return _UNIT_LABELS.get(unit, unit)
