"""
Filter template registry.

Each FilterTemplate describes one kind of filter the user can configure and
knows how to turn user text into a BeatmapFilter. ALL_TEMPLATES is the
closed, ordered catalog; its order is the numbering shown to users.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from beatmap_exporter.domain.library.models import Beatmap
from beatmap_exporter.exceptions import FilterValidationError
from beatmap_exporter.utils.parsers import parse_duration
from beatmap_exporter.utils.strings import comma_separated_arg

from .models import BeatmapFilter, CollectionMatch, PredicateMatch


class FilterInput(Enum):
    """Kind of input a template collects; front ends may offer a better control than text."""

    RAW_TEXT = "raw_text"
    GAMEMODE = "gamemode"
    STATUS = "status"
    COLLECTION = "collection"


@dataclass(frozen=True)
class FilterTemplate:
    """A pre-defined kind of filter.

    Attributes:
        short_name: Key used in filter commands, e.g. 'stars'
        full_name: Name for user-facing output
        normal_input: What the input means normally, e.g. 'minimum'
        negated_input: What the input means when negated, e.g. 'maximum'
        detail: Longer help text
        input_type: Hint for front ends
        build: Function (template, input, negate) -> BeatmapFilter, raising FilterValidationError
    """

    short_name: str
    full_name: str
    normal_input: str
    negated_input: str
    detail: str
    input_type: FilterInput
    build: Callable[["FilterTemplate", str, bool], BeatmapFilter]

    def construct(self, user_input: str, negate: bool = False) -> BeatmapFilter:
        """Build a filter of this type from user input.

        Raises:
            FilterValidationError: If the input is not valid for this filter
        """
        return self.build(self, user_input.strip(), negate)

    def input_description(self, negated: bool) -> str:
        """Full name followed by the input descriptor for the negation state."""
        descriptor = self.negated_input if negated else self.normal_input
        return f"{self.full_name} {descriptor}" if descriptor else self.full_name


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_since(moment: Optional[datetime]) -> Optional[timedelta]:
    """Time elapsed since a moment; naive datetimes are taken as UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _now() - moment


def _require_duration(user_input: str) -> timedelta:
    interval = parse_duration(user_input)
    if interval is None:
        raise FilterValidationError(f"Invalid time interval: {user_input}")
    return interval


def _predicate(template: FilterTemplate, user_input: str, negate: bool, predicate) -> BeatmapFilter:
    return BeatmapFilter(user_input, negate, template, PredicateMatch(predicate))


# Constructors, one per template


def _build_star_rating(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # 6.3
    try:
        star_rating = float(user_input)
    except ValueError:
        raise FilterValidationError(f"Invalid star rating: {user_input}")
    if not math.isfinite(star_rating):
        raise FilterValidationError(f"Invalid star rating: {user_input}")
    return _predicate(template, user_input, negate, lambda b: b.star_rating >= star_rating)


def _build_length(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # 90
    try:
        duration = int(user_input)
    except ValueError:
        raise FilterValidationError(f"Invalid map length/duration: {user_input}")
    millis = duration * 1000
    return _predicate(template, user_input, negate, lambda b: b.length >= millis)


def _build_bpm(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # 180
    try:
        bpm = int(user_input)
    except ValueError:
        raise FilterValidationError(f"Invalid BPM: {user_input}")
    return _predicate(template, user_input, negate, lambda b: b.bpm >= bpm)


def _build_author(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # RLC, Nathan
    authors = frozenset(comma_separated_arg(user_input.lower()))
    return _predicate(template, user_input, negate, lambda b: b.metadata.author.lower() in authors)


def _build_set_id(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # 1, 2, 3
    try:
        set_ids = frozenset(int(part) for part in comma_separated_arg(user_input))
    except ValueError:
        raise FilterValidationError(f"Invalid beatmap set ID: {user_input}")
    if not set_ids:
        raise FilterValidationError("Provide at least one beatmap set ID")
    return _predicate(
        template, user_input, negate, lambda b: b.set_online_id != -1 and b.set_online_id in set_ids
    )


def _build_artist(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # Camellia, Nanahira
    artists = frozenset(comma_separated_arg(user_input.lower()))
    return _predicate(template, user_input, negate, lambda b: b.metadata.artist.lower() in artists)


def _build_tag(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # touhou
    tags = comma_separated_arg(user_input.lower())

    def has_tag(beatmap: Beatmap) -> bool:
        beatmap_tags = beatmap.metadata.tags
        if beatmap_tags is None:
            return False
        beatmap_tags = beatmap_tags.lower()
        return any(tag in beatmap_tags for tag in tags)

    return _predicate(template, user_input, negate, has_tag)


def _build_elapsed(moment_of: Callable[[Beatmap], Optional[datetime]]):
    """Constructor for filters matching beatmaps whose event happened within an interval."""

    def build(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
        # 2:00
        interval = _require_duration(user_input)

        def within(beatmap: Beatmap) -> bool:
            elapsed = _elapsed_since(moment_of(beatmap))
            return elapsed is not None and elapsed < interval

        return _predicate(template, user_input, negate, within)

    return build


GAMEMODE_IDS: Dict[str, int] = {
    "osu": 0,
    "taiko": 1,
    "ctb": 2,
    "catch": 2,
    "fruits": 2,
    "mania": 3,
}


def _build_gamemode(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # osu/mania/ctb/taiko
    ruleset_id = GAMEMODE_IDS.get(user_input.lower())
    if ruleset_id is None:
        raise FilterValidationError("Unknown osu! game mode. Use osu, mania, ctb, or taiko.")
    return _predicate(template, user_input, negate, lambda b: b.ruleset_id == ruleset_id)


# (prefix, status codes); checked in order, first match wins
STATUS_PREFIXES: List[tuple] = [
    ("graveyard", frozenset({-3})),
    ("leaderboard", frozenset({1, 2, 3, 4})),
    ("rank", frozenset({1})),
    ("approve", frozenset({2})),
    ("qualif", frozenset({3})),
    ("love", frozenset({4})),
]


def resolve_status_codes(user_input: str) -> Optional[FrozenSet[int]]:
    """Map a status keyword to online status codes by prefix, or None if unknown."""
    keyword = user_input.strip().lower()
    if not keyword:
        return None
    if keyword == "unknown":
        return frozenset({-3})
    for prefix, codes in STATUS_PREFIXES:
        if keyword.startswith(prefix):
            return codes
    return None


def _build_status(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # graveyard/leaderboard/ranked/approved/qualified/loved
    codes = resolve_status_codes(user_input)
    if codes is None:
        raise FilterValidationError(
            "Unknown beatmap status. Use graveyard, leaderboard, ranked, approved, qualified, or loved."
        )
    return _predicate(template, user_input, negate, lambda b: b.status in codes)


def _build_collection(template: FilterTemplate, user_input: str, negate: bool) -> BeatmapFilter:
    # name1, name2 / #1 / -all
    names = tuple(comma_separated_arg(user_input))
    if not names:
        raise FilterValidationError("Provide at least one collection name")
    return BeatmapFilter(user_input, negate, template, CollectionMatch(names))


STAR_RATING = FilterTemplate(
    short_name="stars",
    full_name="Beatmap star rating/difficulty",
    normal_input="minimum",
    negated_input="maximum",
    detail=(
        "Selects beatmaps by their in-game star rating.\n"
        "For example, input '6.3' to only export beatmaps 6.3 stars or harder, "
        "or negate this filter to only export beatmaps easier than 6.3 stars."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_star_rating,
)

LENGTH = FilterTemplate(
    short_name="length",
    full_name="Song length (seconds)",
    normal_input="longer than",
    negated_input="shorter than",
    detail=(
        "Selects beatmaps which are longer/shorter than a given number of seconds.\n"
        "For example, input '90' to only export beatmaps 90 seconds or more, "
        "or negate this filter to only export beatmaps shorter than 90 seconds."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_length,
)

BPM = FilterTemplate(
    short_name="bpm",
    full_name="Song BPM",
    normal_input="minimum",
    negated_input="maximum",
    detail=(
        "Selects beatmaps with songs above/below a given BPM.\n"
        "For example, input '180' to only export beatmaps 180 BPM or above, "
        "or negate the filter to only export beatmaps below 180 BPM."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_bpm,
)

AUTHOR = FilterTemplate(
    short_name="author",
    full_name="Beatmap author",
    normal_input="is",
    negated_input="is NOT",
    detail=(
        "Selects beatmaps by matching the beatmap creator.\n"
        "If multiple mappers are desired, separate author names with a comma (,).\n"
        "For example, 'RLC, Nathan' would export beatmaps by either beatmap creator.\n"
        "Negating this filter would exclude specific beatmap authors from export."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_author,
)

SET_ID = FilterTemplate(
    short_name="id",
    full_name="Beatmap set ID",
    normal_input="is",
    negated_input="is NOT",
    detail=(
        "Selects beatmaps with a specific beatmap set ID.\n"
        "If you want to match multiple IDs, separate IDs with a comma (,)."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_set_id,
)

ADDED_SINCE = FilterTemplate(
    short_name="since",
    full_name="Beatmap set added",
    normal_input="in the last",
    negated_input="older than",
    detail=(
        "Selects beatmap sets using the time since they were added to your library.\n"
        "For example, input '8:00' to only export beatmaps added within the last 8 hours.\n"
        "Input '4' to only export beatmaps added within the last 4 days, "
        "or negate this filter to export only beatmaps added more than 4 days ago."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_elapsed(lambda b: b.date_added),
)

RANKED_SINCE = FilterTemplate(
    short_name="ranked",
    full_name="Beatmap set ranked",
    normal_input="in the last",
    negated_input="NOT in the last",
    detail=(
        "Selects beatmap sets using the time since they were ranked.\n"
        "For example, input '30' to only export beatmaps ranked within the last 30 days.\n"
        "Beatmaps that were never ranked never match this filter."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_elapsed(lambda b: b.date_ranked),
)

PLAYED_SINCE = FilterTemplate(
    short_name="played",
    full_name="Beatmap last played",
    normal_input="in the last",
    negated_input="NOT in the last",
    detail=(
        "Selects beatmaps using the time since you last played them.\n"
        "For example, input '7' to only export beatmaps played within the last 7 days.\n"
        "Beatmaps that were never played never match this filter."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_elapsed(lambda b: b.last_played),
)

ARTIST = FilterTemplate(
    short_name="artist",
    full_name="Song artist",
    normal_input="is",
    negated_input="is NOT",
    detail=(
        "Selects beatmaps by matching the song artist.\n"
        "If multiple artists are desired, separate artist names with a comma (,).\n"
        "For example, 'Camellia, Nanahira' would export beatmaps by either artist.\n"
        "Negating this filter would exclude specific artists from export."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_artist,
)

TAG = FilterTemplate(
    short_name="tag",
    full_name="Beatmap tags",
    normal_input="contain",
    negated_input="do NOT contain",
    detail=(
        "Selects beatmaps which have specific tags (as assigned by the beatmap author).\n"
        "If multiple tags are desired, separate tags with a comma (,).\n"
        "For example, inputting 'touhou' would only export beatmaps with the tag 'touhou'.\n"
        "Negating this filter would exclude specific tags from export."
    ),
    input_type=FilterInput.RAW_TEXT,
    build=_build_tag,
)

GAMEMODE = FilterTemplate(
    short_name="mode",
    full_name="Beatmap gamemode",
    normal_input="is",
    negated_input="is NOT",
    detail=(
        "Selects beatmaps which are created for a specific gamemode (osu, taiko, ctb, mania).\n"
        "Negating this filter would exclude those gamemode beatmaps from export."
    ),
    input_type=FilterInput.GAMEMODE,
    build=_build_gamemode,
)

ONLINE_STATUS = FilterTemplate(
    short_name="status",
    full_name="Beatmap status (online status)",
    normal_input="is",
    negated_input="is NOT",
    detail=(
        "Selects beatmaps with a specific online status: "
        "graveyard, leaderboard, ranked, approved, qualified, or loved.\n"
        "Negating this filter would exclude maps with that status from export."
    ),
    input_type=FilterInput.STATUS,
    build=_build_status,
)

COLLECTION = FilterTemplate(
    short_name="collection",
    full_name="Collection",
    normal_input="",
    negated_input="NOT in",
    detail=(
        "Selects beatmaps contained within specific collections.\n"
        "Use the collection name, '#1' for the first collection in the collection list, "
        "or '-all' for beatmaps in any collection. Separate multiple collections with a comma (,)."
    ),
    input_type=FilterInput.COLLECTION,
    build=_build_collection,
)

ALL_TEMPLATES: List[FilterTemplate] = [
    STAR_RATING,
    LENGTH,
    AUTHOR,
    SET_ID,
    BPM,
    ADDED_SINCE,
    RANKED_SINCE,
    PLAYED_SINCE,
    ARTIST,
    TAG,
    GAMEMODE,
    ONLINE_STATUS,
    COLLECTION,
]

_TEMPLATES_BY_NAME: Dict[str, FilterTemplate] = {t.short_name: t for t in ALL_TEMPLATES}
# Alternate command words accepted for compatibility with older saved filters
_TEMPLATES_BY_NAME["gamemode"] = GAMEMODE


def get_template(short_name: str) -> Optional[FilterTemplate]:
    """Look up a template by its short name (case-insensitive)."""
    return _TEMPLATES_BY_NAME.get(short_name.strip().lower())


def list_templates() -> List[FilterTemplate]:
    """All templates in display order."""
    return list(ALL_TEMPLATES)
