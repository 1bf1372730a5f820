"""Schema validation helpers for tile set metadata."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

from demtiles.errors import MetadataError


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("demtiles.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_metadata(record: Mapping[str, Any]) -> None:
    """Validate a metadata record against the schema."""
    schema = _load_schema("metadata.schema.json")
    try:
        jsonschema.validate(record, schema)
    except jsonschema.ValidationError as exc:
        raise MetadataError(f"Invalid metadata: {exc.message}") from exc
