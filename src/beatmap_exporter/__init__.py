"""Beatmap Exporter - select beatmaps from a local library with filters and export them."""

__version__ = "2.0.0"
