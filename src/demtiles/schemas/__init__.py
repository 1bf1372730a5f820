"""JSON schemas bundled with demtiles."""
