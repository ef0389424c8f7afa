"""
Beatmap selection engine.

Applies the active filters to the whole library and keeps the resulting
selection in a side table owned by the engine (beatmap set id -> selected
beatmaps). Collection filters are resolved against the library's collection
map before every pass and replaced by a single concrete filter.
"""

import re
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from beatmap_exporter.domain.filters.models import (
    ANY_COLLECTION,
    BeatmapFilter,
    CollectionMatch,
    ResolvedCollectionMatch,
)
from beatmap_exporter.domain.filters.templates import COLLECTION
from beatmap_exporter.domain.library.loader import CollectionMap, Library
from beatmap_exporter.domain.library.models import Beatmap, BeatmapSet, MapCollection
from beatmap_exporter.exceptions import FilterValidationError, InvariantViolation

CollectionFailureCallback = Callable[[str], None]

_COLLECTION_ORDINAL = re.compile(r"#(\d+)")


@dataclass(frozen=True)
class FilterDetail:
    """Listing entry for an active filter."""

    id: int  # 1-based position in the filter list
    description: str
    beatmap_count: int  # beatmaps this filter includes on its own


def resolve_collection_name(requested: str, collections: CollectionMap) -> Optional[MapCollection]:
    """
    Find the collection a requested name refers to.

    '#N' refers to the collection with ordinal N; otherwise the name is looked
    up using the collection map's case rule.

    Returns:
        The matching collection, or None
    """
    ordinal = _COLLECTION_ORDINAL.fullmatch(requested)
    if ordinal:
        collection_id = int(ordinal.group(1))
        for collection in collections.values():
            if collection.collection_id == collection_id:
                return collection
    return collections.get(requested)


def resolve_collection_filters(
    filters: Sequence[BeatmapFilter],
    collections: Optional[CollectionMap],
    on_failure: Optional[CollectionFailureCallback] = None,
) -> List[BeatmapFilter]:
    """
    Merge every collection filter, placeholder or already resolved, into one resolved filter.

    Args:
        filters: Active filters, possibly including collection placeholders
        collections: The library's collections, or None if unavailable
        on_failure: Called with each requested name that matches no collection

    Returns:
        New filter list: the non-placeholder filters in order, followed by the
        resolved collection filter if any requested name matched

    Raises:
        InvariantViolation: If placeholders disagree on negation
    """
    normal_filters: List[BeatmapFilter] = []
    placeholders: List[BeatmapFilter] = []
    for beatmap_filter in filters:
        if beatmap_filter.template is COLLECTION:
            placeholders.append(beatmap_filter)
        else:
            normal_filters.append(beatmap_filter)

    if not placeholders:
        return normal_filters

    negations = {f.negated for f in placeholders}
    if len(negations) > 1:
        raise InvariantViolation("Collection filters must share the same negation")
    negated = negations.pop()

    resolved_names: List[str] = []
    matched: Dict[int, MapCollection] = {}
    any_collection = False
    for placeholder in placeholders:
        by_name = isinstance(placeholder.match, ResolvedCollectionMatch)
        for requested in _requested_names(placeholder):
            if collections is None:
                _report_failure(requested, on_failure)
                continue
            if requested == ANY_COLLECTION:
                any_collection = True
                resolved_names.append(requested)
                continue
            if by_name:
                collection = collections.get(requested)
            else:
                collection = resolve_collection_name(requested, collections)
            if collection is None:
                _report_failure(requested, on_failure)
                continue
            matched[collection.collection_id] = collection
            resolved_names.append(collection.name)

    if not resolved_names:
        return normal_filters

    selected_collections = list(collections.values()) if any_collection else list(matched.values())
    included_ids = frozenset(b.id for c in selected_collections for b in c.beatmaps)
    unique_names = tuple(dict.fromkeys(resolved_names))
    description = ", ".join(unique_names)
    logger.debug(
        f"Resolved collection filter '{description}' to {len(included_ids)} beatmaps (negated={negated})"
    )
    collection_filter = BeatmapFilter(
        description,
        negated,
        COLLECTION,
        ResolvedCollectionMatch(lambda b: b.id in included_ids, unique_names),
    )
    return normal_filters + [collection_filter]


def _requested_names(collection_filter: BeatmapFilter) -> Tuple[str, ...]:
    """Names a collection filter asks for, or the names it resolved to last time."""
    if isinstance(collection_filter.match, (CollectionMatch, ResolvedCollectionMatch)):
        return collection_filter.match.names
    raise InvariantViolation(f"Collection filter '{collection_filter.input}' carries no collection names")


def _report_failure(requested: str, on_failure: Optional[CollectionFailureCallback]) -> None:
    logger.warning(f"Collection filter: no collection matches '{requested}'")
    if on_failure is not None:
        on_failure(requested)


def select_beatmaps(
    beatmap_set: BeatmapSet, filters: Sequence[BeatmapFilter], match_all: bool
) -> List[Beatmap]:
    """Beatmaps of a set that pass the filters; an empty filter list selects everything."""
    if not filters:
        return list(beatmap_set.beatmaps)
    if match_all:
        return [b for b in beatmap_set.beatmaps if all(f.includes(b) for f in filters)]
    return [b for b in beatmap_set.beatmaps if any(f.includes(b) for f in filters)]


class SelectionEngine:
    """
    Owns the active filter list and the selection computed from it.

    Every filter change recomputes the selection over the full library so the
    cached counts stay exact. Changing match mode does not recompute on its
    own; callers run update_selected_beatmaps() afterwards.
    """

    def __init__(
        self,
        library: Library,
        match_all: bool = True,
        on_collection_failure: Optional[CollectionFailureCallback] = None,
    ):
        self.library = library
        self.match_all = match_all
        self.on_collection_failure = on_collection_failure
        self._filters: List[BeatmapFilter] = []
        self._selection: Dict[uuid.UUID, List[Beatmap]] = {
            s.id: list(s.beatmaps) for s in library.beatmap_sets
        }
        self._selected_sets: List[BeatmapSet] = list(library.beatmap_sets)
        self._selected_beatmap_count = library.total_beatmap_count

    # Filter list management

    @property
    def filters(self) -> Tuple[BeatmapFilter, ...]:
        """Active filters in ordinal order."""
        return tuple(self._filters)

    def add_filter(self, beatmap_filter: BeatmapFilter) -> None:
        """
        Add a filter and recompute the selection.

        Raises:
            FilterValidationError: If a collection filter's negation differs
                from collection filters already active
        """
        if beatmap_filter.template is COLLECTION:
            for existing in self._filters:
                if existing.template is COLLECTION and existing.negated != beatmap_filter.negated:
                    raise FilterValidationError(
                        "Collection filters must either all be negated or all not negated. "
                        "Remove the existing collection filter first."
                    )
        self._filters.append(beatmap_filter)
        self.update_selected_beatmaps()

    def remove_filter(self, ordinal: int) -> BeatmapFilter:
        """
        Remove the filter at a 1-based ordinal and recompute the selection.

        Raises:
            IndexError: If the ordinal doesn't refer to an active filter
        """
        if ordinal < 1 or ordinal > len(self._filters):
            raise IndexError(f"Not an existing filter ID: {ordinal}")
        removed = self._filters.pop(ordinal - 1)
        self.update_selected_beatmaps()
        return removed

    def reset_filters(self) -> None:
        """Remove every filter and recompute the selection."""
        self._filters.clear()
        self.update_selected_beatmaps()

    def set_match_all(self, match_all: bool) -> None:
        """Switch between ALL (True) and ANY (False) filter matching."""
        self.match_all = match_all

    # Selection

    def update_selected_beatmaps(self) -> None:
        """Resolve collection filters, then recompute the selection for every beatmap set."""
        self._filters = resolve_collection_filters(
            self._filters, self.library.collections, self.on_collection_failure
        )

        selection: Dict[uuid.UUID, List[Beatmap]] = {}
        selected_sets: List[BeatmapSet] = []
        selected_count = 0
        for beatmap_set in self.library.beatmap_sets:
            selected = select_beatmaps(beatmap_set, self._filters, self.match_all)
            selection[beatmap_set.id] = selected
            selected_count += len(selected)
            # A set stays selected only while at least one of its beatmaps is
            if selected:
                selected_sets.append(beatmap_set)

        self._selection = selection
        self._selected_sets = selected_sets
        self._selected_beatmap_count = selected_count
        logger.debug(
            f"Selection updated: {selected_count}/{self.library.total_beatmap_count} beatmaps, "
            f"{len(selected_sets)}/{self.library.total_set_count} sets, "
            f"{len(self._filters)} filters (match_all={self.match_all})"
        )

    def selected_beatmaps(self, beatmap_set: BeatmapSet) -> List[Beatmap]:
        """Currently selected beatmaps of a set."""
        return list(self._selection.get(beatmap_set.id, beatmap_set.beatmaps))

    @contextmanager
    def selection_override(
        self, beatmap_set: BeatmapSet, beatmaps: Sequence[Beatmap]
    ) -> Iterator[BeatmapSet]:
        """
        Temporarily select specific beatmaps of one set (e.g. to export a single difficulty).

        The engine's selection for the set is restored on exit, even on failure.

        Raises:
            InvariantViolation: If a beatmap doesn't belong to the set
        """
        members = set(beatmap_set.beatmaps)
        for beatmap in beatmaps:
            if beatmap not in members:
                raise InvariantViolation(
                    f"Beatmap {beatmap.id} is not part of beatmap set {beatmap_set.id}"
                )
        previous = self._selection.get(beatmap_set.id)
        self._selection[beatmap_set.id] = list(beatmaps)
        try:
            yield beatmap_set
        finally:
            if previous is None:
                del self._selection[beatmap_set.id]
            else:
                self._selection[beatmap_set.id] = previous

    @property
    def selected_sets(self) -> List[BeatmapSet]:
        return list(self._selected_sets)

    @property
    def selected_set_count(self) -> int:
        return len(self._selected_sets)

    @property
    def selected_beatmap_count(self) -> int:
        return self._selected_beatmap_count

    @property
    def total_set_count(self) -> int:
        return self.library.total_set_count

    @property
    def total_beatmap_count(self) -> int:
        return self.library.total_beatmap_count

    def filter_details(self) -> List[FilterDetail]:
        """Description and standalone beatmap count for each active filter."""
        details = []
        for index, beatmap_filter in enumerate(self._filters, start=1):
            if isinstance(beatmap_filter.match, CollectionMatch):
                count = 0
            else:
                count = sum(1 for b in self.library.beatmaps if beatmap_filter.includes(b))
            details.append(FilterDetail(index, beatmap_filter.description, count))
        return details

    def collection_membership(self) -> Dict[str, List[str]]:
        """
        Selected beatmaps per collection, as md5 hashes.

        Collections without any selected beatmap are left out.
        """
        if self.library.collections is None:
            return {}
        selected_ids = {b.id for beatmaps in self._selection.values() for b in beatmaps}
        membership: Dict[str, List[str]] = {}
        for name, collection in self.library.collections.items():
            hashes = [b.md5_hash for b in collection.beatmaps if b.id in selected_ids]
            if hashes:
                membership[name] = list(dict.fromkeys(hashes))
        return membership
