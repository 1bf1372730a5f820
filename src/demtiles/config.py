"""Pipeline configuration and external tool discovery."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from demtiles.codec import TILE_FORMATS
from demtiles.dem.crs import DEFAULT_DEFINITIONS, CrsRegistry
from demtiles.dem.tiling import check_tile_size

ENV_TOOL_PATHS = "DEMTILES_TOOL_PATHS"
DEFAULT_HMM_PATH = Path("libs") / "hmm" / "hmm"


@dataclass(frozen=True)
class TilingConfig:
    """Options for one tiling run."""

    source_crs: str = "EPSG:4326"
    target_crs: str = "EPSG:32615"
    tile_size: int = 1024
    tile_format: str = "png"
    nodata: float | None = None
    crs_definitions: Mapping[str, str] | None = None
    row_jobs: int = 1
    tile_jobs: int = 1
    raster_jobs: int = 1

    def __post_init__(self) -> None:
        check_tile_size(self.tile_size)
        if self.tile_format not in TILE_FORMATS:
            raise ValueError(f"Unknown tile format: {self.tile_format}")
        for name in ("row_jobs", "tile_jobs", "raster_jobs"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be >= 0")

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def registry(self) -> CrsRegistry:
        """Return a fresh CRS registry with the default and configured definitions."""
        definitions = dict(DEFAULT_DEFINITIONS)
        definitions.update(self.crs_definitions or {})
        return CrsRegistry(definitions)

    def with_overrides(self, **overrides: Any) -> "TilingConfig":
        """Return a copy with non-None overrides applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)


def config_from_mapping(payload: Mapping[str, Any]) -> TilingConfig:
    """Build a TilingConfig, rejecting unknown keys."""
    known = {field.name for field in fields(TilingConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown config key(s): {', '.join(unknown)}")
    return TilingConfig(**dict(payload))


def load_config(path: Path) -> TilingConfig:
    """Load a TilingConfig from a JSON object file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a JSON object.")
    return config_from_mapping(data)


def _default_candidate_paths() -> list[Path]:
    """Return default tool config locations in priority order."""
    return [Path.cwd() / "tools" / "tool_paths.json"]


def _load_candidate(candidate: Path) -> dict[str, Path] | None:
    """Load a tool config from a single candidate path."""
    if not candidate.exists():
        return None
    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    if not isinstance(data, dict):
        return {}
    return {key: Path(value) for key, value in data.items() if isinstance(value, str)}


def load_tool_paths(path: Path | None = None) -> dict[str, Path]:
    """Load tool paths from JSON config, if available."""
    if path:
        return _load_candidate(path) or {}
    env_path = os.environ.get(ENV_TOOL_PATHS)
    if env_path:
        return _load_candidate(Path(env_path)) or {}
    for candidate in _default_candidate_paths():
        result = _load_candidate(candidate)
        if result is not None:
            return result
    return {}


def resolve_hmm(explicit: str | Path | None = None) -> Path | None:
    """Locate the hmm heightmap mesher."""
    if explicit:
        return Path(explicit)
    configured = load_tool_paths().get("hmm")
    if configured:
        return configured
    found = shutil.which("hmm")
    if found:
        return Path(found)
    if DEFAULT_HMM_PATH.exists():
        return DEFAULT_HMM_PATH
    return None
