"""Filters domain - the beatmap filter rule language.

This domain handles:
- The closed catalog of filter templates (stars, length, author, ...)
- Filter instances with uniform negation
- Parsing filter commands into filter instances
"""

from .models import (
    ANY_COLLECTION,
    BeatmapFilter,
    CollectionMatch,
    PredicateMatch,
    ResolvedCollectionMatch,
)
from .parser import build_filter, parse_filter_command
from .templates import (
    ALL_TEMPLATES,
    COLLECTION,
    FilterInput,
    FilterTemplate,
    get_template,
    list_templates,
    resolve_status_codes,
)

__all__ = [
    "ANY_COLLECTION",
    "BeatmapFilter",
    "CollectionMatch",
    "PredicateMatch",
    "ResolvedCollectionMatch",
    "build_filter",
    "parse_filter_command",
    "ALL_TEMPLATES",
    "COLLECTION",
    "FilterInput",
    "FilterTemplate",
    "get_template",
    "list_templates",
    "resolve_status_codes",
]
