"""Selection domain - applies active filters to the loaded library."""

from .engine import (
    FilterDetail,
    SelectionEngine,
    resolve_collection_filters,
    resolve_collection_name,
    select_beatmaps,
)

__all__ = [
    "FilterDetail",
    "SelectionEngine",
    "resolve_collection_filters",
    "resolve_collection_name",
    "select_beatmaps",
]
