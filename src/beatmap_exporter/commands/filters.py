"""
Beatmap filter command handlers.

Handles the filter editing prompt:
  <!><filter> <args>   Add a filter ('!' negates it)
  remove <n>           Remove filter n from the list
  reset                Remove all filters
  match all|any        Require beatmaps to match all or any filters
  (blank)              Save the filters and go back
  exit                 Go back without saving the filters
"""

from typing import Callable, List, Optional, Sequence, Tuple

from beatmap_exporter.context import AppContext
from beatmap_exporter.core import config as config_module
from beatmap_exporter.core.config import SerializedFilter
from beatmap_exporter.core.output import log
from beatmap_exporter.core.worker import DatabaseWorker
from beatmap_exporter.domain.filters import (
    COLLECTION,
    BeatmapFilter,
    CollectionMatch,
    ResolvedCollectionMatch,
    build_filter,
    parse_filter_command,
)
from beatmap_exporter.domain.selection import SelectionEngine
from beatmap_exporter.exceptions import FilterValidationError
from beatmap_exporter.utils.parsers import split_words

FILTER_HELP = """--- Beatmap Selection ---
Prefixing a filter with "!" negates it, for example to use a "less than" filter.
Examples:
- Only beatmaps 6.3 stars and above: stars 6.3
- Below 6.3 stars (using negation): !stars 6.3
- Longer than 1:30 (90 seconds): length 90
- 180BPM and above: bpm 180
- Beatmaps added in the last 7 days: since 7
- Beatmaps added in the last 5 hours: since 5:00
- Ranked in the last 30 days: ranked 30
- Played in the last 2 weeks: played 14
- Specific beatmap set ID (comma-separated): id 1
- Mapped by RLC or Nathan (comma-separated): author RLC, Nathan
- Specific artists (comma-separated): artist Camellia, nanahira
- Tags include "touhou": tag touhou
- Specific gamemodes: mode osu/mania/ctb/taiko
- Beatmap status: status graveyard/leaderboard/ranked/approved/qualified/loved
- Contained in a collection called "songs": collection songs
- Contained in the collection labeled #1 in the collection list: collection #1
- Contained in ANY collection: collection -all
- Remove a specific filter (using its number from the list): remove 1
- Remove all filters: reset
- Beatmaps must match ALL filters / ANY filter: match all / match any
Save filters and go back: (blank)   Go back without saving: exit"""


def serialize_filters(filters: Sequence[BeatmapFilter]) -> List[SerializedFilter]:
    """
    Persistable form of the active filters.

    A resolved collection filter is saved as one entry per collection name,
    since collection names may contain commas.
    """
    serialized = []
    for f in filters:
        if isinstance(f.match, ResolvedCollectionMatch):
            serialized.extend(SerializedFilter(f.template.short_name, name, f.negated) for name in f.match.names)
        else:
            serialized.append(SerializedFilter(f.template.short_name, f.input, f.negated))
    return serialized


def _saved_filter(engine: SelectionEngine, entry: SerializedFilter) -> BeatmapFilter:
    if entry.filter_type.lower() == COLLECTION.short_name:
        name = entry.input.strip()
        collections = engine.library.collections
        # A whole entry naming an existing collection is not split on commas
        if collections is not None and name in collections:
            return BeatmapFilter(name, entry.negated, COLLECTION, CollectionMatch((name,)))
    return build_filter(entry.filter_type, entry.input, entry.negated)


def restore_filters(
    engine: SelectionEngine,
    saved: Sequence[SerializedFilter],
    worker: Optional[DatabaseWorker] = None,
) -> int:
    """
    Re-apply saved filters to the engine. Filters that no longer parse are skipped.

    Selection updates run on the worker when one is given.

    Returns:
        Number of filters restored
    """
    restored = 0
    for entry in saved:
        try:
            beatmap_filter = _saved_filter(engine, entry)
            if worker is not None:
                worker.run(engine.add_filter, beatmap_filter)
            else:
                engine.add_filter(beatmap_filter)
            restored += 1
        except FilterValidationError as e:
            log(f"Skipping saved filter '{entry.filter_type} {entry.input}': {e}", level="warning")
    return restored


def format_filter_details(engine: SelectionEngine) -> str:
    """Numbered filter listing with the beatmap count each filter matches."""
    return "\n".join(
        f"{detail.id}. {detail.description} ({detail.beatmap_count} beatmaps)"
        for detail in engine.filter_details()
    )


def print_filter_status(ctx: AppContext) -> None:
    """Show the active filters and how much of the library they select."""
    engine = ctx.engine
    if not engine.filters:
        log("There are no active beatmap filters. ALL beatmaps currently selected for export.")
        return

    mode = "ALL" if engine.match_all else "ANY"
    log(f"Current beatmap filters (beatmaps must match {mode}):")
    log(format_filter_details(engine))
    log(
        f"Matched beatmap sets: {engine.selected_set_count}/{engine.total_set_count} "
        f"({engine.selected_beatmap_count}/{engine.total_beatmap_count} beatmaps)"
    )


def save_filters(ctx: AppContext) -> AppContext:
    """Persist the active filters and match mode to the config file."""
    ctx.config.filters.applied = serialize_filters(ctx.engine.filters)
    ctx.config.filters.match_all = ctx.engine.match_all
    if config_module.save_config(ctx.config, ctx.config_path):
        log(f"Saved {len(ctx.config.filters.applied)} beatmap filters.")
    return ctx


def handle_remove_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """
    Handle 'remove <n>' - remove the filter at a listing number.

    Returns:
        (updated_context, keep_editing)
    """
    arg = args[0] if args else ""
    try:
        ordinal = int(arg)
        ctx.worker.run(ctx.engine.remove_filter, ordinal)
    except (ValueError, IndexError):
        log(f"Not an existing filter ID: {arg}", level="warning")
        return ctx, True

    log("Filter removed.")
    return ctx, True


def handle_reset_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    """Handle 'reset' - remove every filter."""
    ctx.worker.run(ctx.engine.reset_filters)
    log("All filters removed.")
    return ctx, True


def handle_match_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """Handle 'match all' / 'match any' - switch how filters combine."""
    mode = args[0].lower() if args else ""
    if mode not in ("all", "any"):
        log("Usage: match all | match any", level="warning")
        return ctx, True

    ctx.engine.set_match_all(mode == "all")
    ctx.worker.run(ctx.engine.update_selected_beatmaps)
    log(f"Beatmaps must now match {mode.upper()} active filters.")
    return ctx, True


def handle_add_filter_command(ctx: AppContext, text: str) -> Tuple[AppContext, bool]:
    """Handle a filter command such as 'stars 6.3' or '!collection #1'."""
    beatmap_filter, reason = parse_filter_command(text)
    if beatmap_filter is None:
        log(reason, level="warning")
        return ctx, True

    try:
        ctx.worker.run(ctx.engine.add_filter, beatmap_filter)
    except FilterValidationError as e:
        log(str(e), level="warning")
        return ctx, True

    log("Filter added.")
    return ctx, True


def handle_filter_input(ctx: AppContext, text: str) -> Tuple[AppContext, bool]:
    """
    Route one line of filter prompt input.

    Args:
        ctx: Application context
        text: Raw input line

    Returns:
        (updated_context, keep_editing)
    """
    words = split_words(text)
    if not words:
        return save_filters(ctx), False

    command = words[0].lower()
    if command == "exit":
        return ctx, False
    if command == "remove":
        return handle_remove_command(ctx, words[1:])
    if command == "reset":
        return handle_reset_command(ctx)
    if command == "match":
        return handle_match_command(ctx, words[1:])
    return handle_add_filter_command(ctx, text)


def filter_selection_loop(ctx: AppContext, read_input: Callable[[str], str] = input) -> AppContext:
    """Interactive filter editing until the user saves or exits."""
    log(FILTER_HELP)
    keep_editing = True
    while keep_editing:
        print_filter_status(ctx)
        try:
            text = read_input("Select filter (Blank to save selection): ")
        except EOFError:
            break
        ctx, keep_editing = handle_filter_input(ctx, text)
    return ctx
