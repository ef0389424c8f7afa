"""
Beatmap filter models.

A BeatmapFilter is one active, user-configured filter. Its match is either a
predicate over a single beatmap, or the names of requested collections that
the selection engine resolves against the loaded collection map.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Tuple, Union

from beatmap_exporter.domain.library.models import Beatmap
from beatmap_exporter.exceptions import InvariantViolation

if TYPE_CHECKING:
    from .templates import FilterTemplate

BeatmapPredicate = Callable[[Beatmap], bool]

# Requested collection name meaning "contained in any collection"
ANY_COLLECTION = "-all"


@dataclass(frozen=True)
class PredicateMatch:
    """Filter match backed by a predicate, before any negation."""

    predicate: BeatmapPredicate


@dataclass(frozen=True)
class CollectionMatch:
    """Filter match naming collections; resolved by the selection engine."""

    names: Tuple[str, ...]

    @property
    def any_collection(self) -> bool:
        return ANY_COLLECTION in self.names


@dataclass(frozen=True)
class ResolvedCollectionMatch(PredicateMatch):
    """Predicate match for resolved collections.

    names holds the display names that resolved (or the any-collection
    marker) so the filter can be resolved again after the collection map
    changes. Names may contain commas.
    """

    names: Tuple[str, ...] = ()


FilterMatch = Union[PredicateMatch, CollectionMatch]


@dataclass(frozen=True)
class BeatmapFilter:
    """A single active beatmap filter.

    Attributes:
        input: The original user input used as this filter's argument
        negated: Whether the user negated the filter
        template: The FilterTemplate this filter was built from
        match: PredicateMatch or CollectionMatch
    """

    input: str
    negated: bool
    template: "FilterTemplate"
    match: FilterMatch

    @property
    def is_collection_filter(self) -> bool:
        return isinstance(self.match, CollectionMatch)

    @property
    def description(self) -> str:
        """Description for listings, e.g. 'Beatmap star rating/difficulty minimum: 6.3'."""
        return f"{self.template.input_description(self.negated)}: {self.input}"

    def includes(self, beatmap: Beatmap) -> bool:
        """Check whether this filter includes a beatmap.

        Raises:
            InvariantViolation: If called on an unresolved collection filter
        """
        if not isinstance(self.match, PredicateMatch):
            raise InvariantViolation(
                f"Collection filter '{self.input}' must be resolved before evaluation"
            )
        included = self.match.predicate(beatmap)
        return not included if self.negated else included
