"""
Export and library display command handlers.

Handles: export, export <set id> [difficulties], list, collections, settings
"""

import threading
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from beatmap_exporter.context import AppContext
from beatmap_exporter.core import config as config_module
from beatmap_exporter.core.output import log
from beatmap_exporter.domain.export import BeatmapExporter, ExportResult


def _exporter(ctx: AppContext) -> BeatmapExporter:
    return BeatmapExporter(
        ctx.engine,
        ctx.library_root,
        ctx.export_config,
        merge_collections=ctx.config.collections.merge,
        collections_case_insensitive=ctx.config.collections.case_insensitive,
        worker=ctx.worker,
    )


def run_export(ctx: AppContext, cancel_event: Optional[threading.Event] = None) -> ExportResult:
    """Export the current selection with the context's export settings."""
    return _exporter(ctx).export(cancel_event)


def handle_export_command(ctx: AppContext, args: Optional[List[str]] = None) -> Tuple[AppContext, bool]:
    """
    Handle export command - export the selection; Ctrl+C stops after the current set.

    With arguments ('export 1234' or 'export 1234 2,3') only that beatmap set
    is exported, optionally limited to the numbered difficulties.

    Returns:
        (updated_context, should_continue)
    """
    if args:
        return handle_export_set_command(ctx, args)

    engine = ctx.engine
    export_config = ctx.export_config
    log(export_config.export_format.descriptor)
    log(
        f"Exporting {engine.selected_set_count} beatmap sets ({engine.selected_beatmap_count} beatmaps) "
        f"to {export_config.full_path}"
    )

    cancel_event = threading.Event()
    export_thread_result = {}

    def export_worker() -> None:
        export_thread_result["result"] = run_export(ctx, cancel_event)

    thread = threading.Thread(target=export_worker, daemon=True)
    thread.start()
    try:
        while thread.is_alive():
            thread.join(timeout=0.2)
    except KeyboardInterrupt:
        log("Cancelling export after the current beatmap set...", level="warning")
        cancel_event.set()
        thread.join()

    result = export_thread_result.get("result")
    if result is not None:
        log(result.summary(), level="success" if not result.failed else "warning")
    return ctx, True


def _numbered_difficulties(beatmap_set) -> List:
    return sorted(beatmap_set.beatmaps, key=lambda b: b.star_rating)


def handle_export_set_command(ctx: AppContext, args: List[str]) -> Tuple[AppContext, bool]:
    """
    Handle 'export <set id> [n, ...]' - export one beatmap set regardless of filters.

    Difficulties are numbered from 1 in star rating order.
    """
    try:
        online_id = int(args[0])
    except ValueError:
        log(f"Invalid beatmap set ID: {args[0]}", level="warning")
        return ctx, True
    beatmap_set = ctx.engine.library.find_set(online_id)
    if beatmap_set is None:
        log(f"Beatmap set {online_id} is not in the library.", level="warning")
        return ctx, True

    difficulties = _numbered_difficulties(beatmap_set)
    chosen = difficulties
    if len(args) > 1:
        chosen = []
        for number in " ".join(args[1:]).replace(",", " ").split():
            if not number.isdigit() or not 1 <= int(number) <= len(difficulties):
                log(f"Not a difficulty of beatmap set {online_id}: {number}", level="warning")
                for index, beatmap in enumerate(difficulties, start=1):
                    log(f"{index}. {beatmap.display()} ({beatmap.star_rating:.2f} stars)")
                return ctx, True
            beatmap = difficulties[int(number) - 1]
            if beatmap not in chosen:
                chosen.append(beatmap)

    try:
        result = _exporter(ctx).export_single(beatmap_set, chosen)
    except ValueError as e:
        log(f"Unable to export a single beatmap set: {e}", level="warning")
        return ctx, True
    log(result.summary(), level="success" if not result.failed else "warning")
    return ctx, True


def handle_list_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    """Handle list command - show selected beatmap sets with their selected difficulties."""
    engine = ctx.engine
    for beatmap_set in engine.selected_sets:
        log(beatmap_set.diff_summary(engine.selected_beatmaps(beatmap_set)))
    log(
        f"{engine.selected_set_count}/{engine.total_set_count} beatmap sets selected "
        f"({engine.selected_beatmap_count}/{engine.total_beatmap_count} beatmaps)."
    )
    return ctx, True


def handle_collections_command(ctx: AppContext) -> Tuple[AppContext, bool]:
    """Handle collections command - list collections with their ordinal and size."""
    collections = ctx.engine.library.collections
    if collections is None:
        log("Collections could not be loaded from the library.", level="warning")
        return ctx, True
    if not collections:
        log("There are no collections in the library.")
        return ctx, True

    for name, collection in collections.items():
        log(f"#{collection.collection_id}: {name} ({len(collection.beatmaps)} beatmaps)")
    log("Filter by collection with 'collection <name>' or 'collection #<number>'.")
    return ctx, True


def _settings_text(ctx: AppContext) -> str:
    export_config = ctx.export_config
    collections = ctx.config.collections
    changed = "" if export_config.is_default_path else "*"
    lines = [
        "--- Export settings ---",
        f"1. Format: {export_config.export_format.descriptor}",
        f"2. Export path: {export_config.full_path}{changed}",
        "3. .osz compression is "
        + ("enabled (slow export, smaller file sizes)" if export_config.compression_enabled else "disabled (fastest export)"),
        "4. collection.db export "
        + ("merges into an existing collection.db" if collections.merge else "replaces any existing collection.db"),
        "5. Collection names are "
        + ("case-insensitive" if collections.case_insensitive else "case-sensitive"),
    ]
    return "\n".join(lines)


def handle_settings_command(ctx: AppContext, read_input: Callable[[str], str] = input) -> Tuple[AppContext, bool]:
    """Handle settings command - edit export settings until blank input, then save them."""
    while True:
        log(_settings_text(ctx))
        try:
            choice = read_input("Edit setting # (Blank to save settings): ").strip()
        except EOFError:
            choice = ""
        if not choice:
            break

        export_config = ctx.export_config
        if choice == "1":
            ctx = ctx.with_export_config(replace(export_config, export_format=export_config.export_format.next()))
            log(f"- CHANGED: Export format set to {ctx.export_config.export_format.unit_name}")
        elif choice == "2":
            path = read_input(f"Current export path: {export_config.export_path}\nNew export path: ").strip()
            if path:
                ctx = ctx.with_export_config(replace(export_config, base_path=path))
                log(f"- CHANGED: Export location set to {ctx.export_config.full_path}")
        elif choice == "3":
            enabled = not export_config.compression_enabled
            ctx = ctx.with_export_config(replace(export_config, compression_enabled=enabled))
            log(f"- CHANGED: .osz output compression has been {'enabled' if enabled else 'disabled'}.")
        elif choice == "4":
            ctx.config.collections.merge = not ctx.config.collections.merge
            log(f"- CHANGED: collection.db merging {'enabled' if ctx.config.collections.merge else 'disabled'}.")
        elif choice == "5":
            ctx.config.collections.case_insensitive = not ctx.config.collections.case_insensitive
            log("- CHANGED: Collection name matching changes apply to the next collection.db export.")
        else:
            log("Invalid setting selected.", level="warning")

    export_config = ctx.export_config
    ctx.config.export.export_format = export_config.export_format.value
    ctx.config.export.export_path = export_config.base_path or export_config.default_export_path
    ctx.config.export.compression_enabled = export_config.compression_enabled
    config_module.save_config(ctx.config, ctx.config_path)
    return ctx, True
