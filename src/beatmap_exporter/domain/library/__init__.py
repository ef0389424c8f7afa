"""Library domain - beatmaps, beatmap sets and collections loaded into memory."""

from .loader import CollectionMap, Library, build_collection_map, build_library
from .models import (
    Beatmap,
    BeatmapCollection,
    BeatmapMetadata,
    BeatmapSet,
    MapCollection,
    NamedFile,
)

__all__ = [
    "CollectionMap",
    "Library",
    "build_collection_map",
    "build_library",
    "Beatmap",
    "BeatmapCollection",
    "BeatmapMetadata",
    "BeatmapSet",
    "MapCollection",
    "NamedFile",
]
