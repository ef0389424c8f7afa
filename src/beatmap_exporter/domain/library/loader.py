"""
In-memory beatmap library built from the library database.

The Library holds every loaded beatmap set in export order and the
collection map used to resolve collection filters.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from loguru import logger

from beatmap_exporter.exceptions import InvariantViolation
from beatmap_exporter.utils.names import NameKeyedDict

from .models import Beatmap, BeatmapCollection, BeatmapSet, MapCollection

CollectionMap = NameKeyedDict[MapCollection]


@dataclass
class Library:
    """All loaded beatmap sets and, when available, the user's collections.

    Attributes:
        beatmap_sets: Non-empty sets ordered by online id
        collections: Collection name -> MapCollection, or None if collections
            could not be loaded
    """

    beatmap_sets: List[BeatmapSet]
    collections: Optional[CollectionMap] = None
    beatmaps: List[Beatmap] = field(init=False)

    def __post_init__(self) -> None:
        for beatmap_set in self.beatmap_sets:
            if not beatmap_set.beatmaps:
                raise InvariantViolation(
                    f"Beatmap set {beatmap_set.id} has no beatmaps; empty sets must be dropped at load time"
                )
        self.beatmaps = [b for s in self.beatmap_sets for b in s.beatmaps]

    @property
    def total_set_count(self) -> int:
        return len(self.beatmap_sets)

    @property
    def total_beatmap_count(self) -> int:
        return len(self.beatmaps)

    @property
    def collection_count(self) -> int:
        return len(self.collections) if self.collections is not None else 0

    def find_set(self, online_id: int) -> Optional[BeatmapSet]:
        """First loaded beatmap set with the given online id, or None."""
        for beatmap_set in self.beatmap_sets:
            if beatmap_set.online_id == online_id:
                return beatmap_set
        return None


def build_collection_map(
    collections: Sequence[BeatmapCollection],
    beatmaps: Sequence[Beatmap],
    case_insensitive: bool = False,
) -> CollectionMap:
    """
    Resolve record-store collections against the loaded beatmaps.

    Ordinals are assigned 1-based in load order. Names that collide under the
    chosen case rule coalesce into the first collection, keeping its ordinal.

    Args:
        collections: Collections in load order
        beatmaps: All loaded beatmaps
        case_insensitive: Whether collection names compare case-insensitively

    Returns:
        Name-keyed map of MapCollection
    """
    by_md5: Dict[str, List[Beatmap]] = {}
    for beatmap in beatmaps:
        by_md5.setdefault(beatmap.md5_hash, []).append(beatmap)

    collection_map: CollectionMap = NameKeyedDict(case_insensitive)
    next_id = 1
    for collection in collections:
        members = [b for md5 in collection.beatmap_md5_hashes for b in by_md5.get(md5, [])]
        existing = collection_map.get(collection.name)
        if existing is not None:
            logger.warning(
                f"Collection '{collection.name}' coalesces with '{existing.name}' "
                f"(#{existing.collection_id})"
            )
            seen = set(existing.beatmaps)
            existing.beatmaps.extend(b for b in members if b not in seen)
            continue
        collection_map[collection.name] = MapCollection(collection.name, next_id, members)
        next_id += 1

    return collection_map


def build_library(
    beatmap_sets: Sequence[BeatmapSet],
    collections: Optional[Sequence[BeatmapCollection]] = None,
    case_insensitive: bool = False,
) -> Library:
    """
    Build the in-memory library from loaded record-store objects.

    Sets without beatmaps are dropped here; remaining sets are ordered by
    online id.
    """
    kept = [s for s in beatmap_sets if s.beatmaps]
    dropped = len(beatmap_sets) - len(kept)
    if dropped:
        logger.info(f"Skipped {dropped} beatmap sets without beatmaps")
    kept.sort(key=lambda s: s.online_id)

    library = Library(kept)
    if collections is not None:
        library.collections = build_collection_map(collections, library.beatmaps, case_insensitive)

    logger.info(
        f"Loaded {library.total_set_count} beatmap sets ({library.total_beatmap_count} beatmaps), "
        f"{library.collection_count} collections"
    )
    return library
