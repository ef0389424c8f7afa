"""
Command routing for the Beatmap Exporter shell.

Routes main menu commands to handler functions.
"""

from typing import List, Tuple

from beatmap_exporter.commands import export, filters
from beatmap_exporter.context import AppContext
from beatmap_exporter.core.output import log


def print_menu(ctx: AppContext) -> None:
    """Display the main menu with the current selection counts."""
    engine = ctx.engine
    unit = ctx.export_config.export_format.unit_name
    collection_count = engine.library.collection_count
    log(
        f"""
1. export       Export selected {unit} ({engine.selected_set_count} beatmap sets, {engine.selected_beatmap_count} beatmaps)
                'export <set id> [difficulty numbers]' exports one beatmap set
2. list        Display selected beatmap sets ({engine.selected_set_count}/{engine.total_set_count} beatmap sets)
3. collections  Display {collection_count} beatmap collections
4. settings     Export settings (format, export location, compression, collection.db merging)
5. filters      Edit beatmap selection/filters

0. exit"""
    )


_ALIASES = {
    "1": "export",
    "2": "list",
    "3": "collections",
    "4": "settings",
    "5": "filters",
    "0": "exit",
    "quit": "exit",
}


def handle_command(ctx: AppContext, command: str, args: List[str]) -> Tuple[AppContext, bool]:
    """
    Handle a main menu command.

    Args:
        ctx: Application context
        command: The command name or menu number
        args: Command arguments

    Returns:
        (updated_context, should_continue)
    """
    command = _ALIASES.get(command.lower(), command.lower())

    if command == "exit":
        return ctx, False

    elif command == "export":
        return export.handle_export_command(ctx, args)

    elif command == "list":
        return export.handle_list_command(ctx)

    elif command == "collections":
        return export.handle_collections_command(ctx)

    elif command == "settings":
        return export.handle_settings_command(ctx)

    elif command == "filters":
        if args:
            # 'filters stars 6.3' adds one filter without entering the editor
            return filters.handle_add_filter_command(ctx, " ".join(args))[0], True
        return filters.filter_selection_loop(ctx), True

    elif command == "help":
        log(filters.FILTER_HELP)
        return ctx, True

    log("Invalid operation selected.", level="warning")
    return ctx, True
