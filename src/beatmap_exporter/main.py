"""
Beatmap Exporter - startup and interactive loop
"""

import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger

from beatmap_exporter import router
from beatmap_exporter.commands import export as export_commands
from beatmap_exporter.commands import filters as filter_commands
from beatmap_exporter.context import AppContext
from beatmap_exporter.core import config, database
from beatmap_exporter.core.console import get_console, safe_print
from beatmap_exporter.core.output import log, setup_loguru
from beatmap_exporter.core.worker import DatabaseWorker
from beatmap_exporter.domain.export import ExporterConfiguration, ExportFormat
from beatmap_exporter.domain.filters import parse_filter_command
from beatmap_exporter.domain.library import Library, build_library
from beatmap_exporter.domain.selection import SelectionEngine
from beatmap_exporter.exceptions import FilterValidationError, LibraryVersionError
from beatmap_exporter.utils.parsers import split_words


@dataclass
class RunOptions:
    """Command line overrides for one run."""

    database_dir: Optional[str] = None
    filters: List[str] = field(default_factory=list)
    match_any: bool = False
    export_format: Optional[str] = None
    export_path: Optional[str] = None
    list_selection: bool = False
    non_interactive: bool = False
    config_path: Optional[Path] = None


def setup_logging(cfg: config.Config) -> None:
    """Initialize loguru from the [logging] config section."""
    log_file = (
        Path(cfg.logging.log_file)
        if cfg.logging.log_file
        else config.get_data_dir() / "beatmap-exporter.log"
    )
    setup_loguru(log_file, level=cfg.logging.level, console_output=cfg.logging.console_output)


def report_collection_failure(name: str) -> None:
    safe_print(f"Collection filter: no collection named '{name}' was found.", style="yellow")


def load_library(db_path: Path, case_insensitive: bool, worker: DatabaseWorker) -> Library:
    """
    Read the library database on the worker thread and build the in-memory library.

    Raises:
        FileNotFoundError: If the database doesn't exist
        LibraryVersionError: If the database schema isn't supported
        sqlite3.DatabaseError: If the database can't be read
    """
    log("Library database found. Loading beatmaps...")
    beatmap_sets, collections = worker.run(database.load_library_data, db_path)
    if collections is None:
        log("Collections could not be loaded, collection filters and export are unavailable.", level="warning")
    return build_library(beatmap_sets, collections, case_insensitive=case_insensitive)


def create_context(cfg: config.Config, options: RunOptions, worker: DatabaseWorker) -> Optional[AppContext]:
    """
    Locate and load the library, then set up the selection engine and export settings.

    Returns:
        The application context, or None if the library couldn't be loaded
    """
    db_path = database.find_library_db(options.database_dir or cfg.library.database_path)
    if db_path is None:
        log("Library database not found. Please provide your osu! data folder with --database.", level="error")
        log(f"The folder should contain a \"{database.LIBRARY_DB_FILENAME}\" file.")
        return None

    try:
        library = load_library(db_path, cfg.collections.case_insensitive, worker)
    except LibraryVersionError as e:
        log(f"Error opening database: {e}", level="error")
        for line in e.details:
            log(line, level="error")
        return None
    except (OSError, sqlite3.DatabaseError) as e:
        log(f"Error opening database: {e}", level="error")
        return None
    log(
        f"Loaded {library.total_set_count} beatmap sets ({library.total_beatmap_count} beatmaps) "
        f"and {library.collection_count} collections from {db_path}",
        level="success",
    )

    match_all = cfg.filters.match_all and not options.match_any
    engine = SelectionEngine(library, match_all=match_all, on_collection_failure=report_collection_failure)

    if options.filters:
        for text in options.filters:
            beatmap_filter, reason = parse_filter_command(text)
            if beatmap_filter is None:
                log(f"Ignoring filter '{text}': {reason}", level="warning")
                continue
            try:
                worker.run(engine.add_filter, beatmap_filter)
            except FilterValidationError as e:
                log(f"Ignoring filter '{text}': {e}", level="warning")
    elif cfg.filters.applied:
        restored = filter_commands.restore_filters(engine, cfg.filters.applied, worker)
        log(f"Restored {restored} saved beatmap filters.")

    export_config = ExporterConfiguration.from_config(cfg.export)
    if options.export_format:
        export_config.export_format = ExportFormat.from_name(options.export_format)
    if options.export_path:
        export_config.base_path = options.export_path

    return AppContext(
        config=cfg,
        engine=engine,
        export_config=export_config,
        library_root=db_path.parent,
        worker=worker,
        console=get_console(),
        config_path=options.config_path,
    )


def interactive_mode(ctx: AppContext, read_input: Callable[[str], str] = input) -> AppContext:
    """Run the main menu loop until the user exits."""
    should_continue = True
    while should_continue:
        router.print_menu(ctx)
        try:
            text = read_input("Select operation: ")
        except (EOFError, KeyboardInterrupt):
            break
        words = split_words(text)
        if not words:
            continue
        ctx, should_continue = router.handle_command(ctx, words[0], words[1:])
    return ctx


def run(options: RunOptions) -> int:
    """
    Load configuration and the library, then run interactively or export once.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        cfg = config.load_config(options.config_path)
    except (ValueError, OSError) as e:
        safe_print(f"Invalid configuration: {e}", style="red")
        return 1
    config.ensure_directories()
    setup_logging(cfg)

    worker = DatabaseWorker()
    try:
        with worker:
            ctx = create_context(cfg, options, worker)
            if ctx is None:
                return 1

            if options.list_selection:
                export_commands.handle_list_command(ctx)
            if options.non_interactive:
                if not options.list_selection:
                    filter_commands.print_filter_status(ctx)
                    result = export_commands.run_export(ctx)
                    log(result.summary(), level="success" if not result.failed else "warning")
                    return 1 if result.failed else 0
                return 0

            interactive_mode(ctx)
    except ValueError as e:
        log(str(e), level="error")
        return 1
    except Exception:
        logger.exception("Unexpected error")
        raise
    return 0
