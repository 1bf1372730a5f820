"""Reproject elevation rasters and slice them into image tiles."""

__version__ = "0.1.0"
