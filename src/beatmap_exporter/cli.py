"""
Beatmap Exporter CLI - argument parsing entry point.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from beatmap_exporter import __version__
from beatmap_exporter.domain.export import ExportFormat


def build_parser() -> argparse.ArgumentParser:
    """Create the beatmap-exporter argument parser."""
    parser = argparse.ArgumentParser(
        prog="beatmap-exporter",
        description="Beatmap Exporter - select beatmaps from your osu! library and export them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  beatmap-exporter --filter 'stars 6.3' --filter '!length 90'\n"
            "  beatmap-exporter --filter 'collection #1' --format audio --non-interactive\n"
            "  beatmap-exporter --filter 'author RLC, Nathan' --any --list --non-interactive"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--database",
        metavar="PATH",
        help="osu! data folder containing library.db (default: platform install location)",
    )
    parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        default=[],
        metavar="TEXT",
        help="Filter to apply, e.g. 'stars 6.3' or '!collection favorites' (repeatable; replaces saved filters)",
    )
    parser.add_argument(
        "--any",
        dest="match_any",
        action="store_true",
        help="Select beatmaps matching ANY filter instead of ALL filters",
    )
    parser.add_argument(
        "--format",
        dest="export_format",
        choices=[f.value for f in ExportFormat],
        help="Export format (default: from config)",
    )
    parser.add_argument("--export-path", metavar="PATH", help="Base directory for exported files")
    parser.add_argument("--list", dest="list_selection", action="store_true", help="Print the selected beatmap sets")
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Don't start the menu; export the selection (or only list it with --list) and exit",
    )
    parser.add_argument("--config", type=Path, metavar="PATH", help="Config file to use")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the beatmap-exporter command."""
    args = build_parser().parse_args(argv)

    from .main import RunOptions, run

    options = RunOptions(
        database_dir=args.database,
        filters=args.filters,
        match_any=args.match_any,
        export_format=args.export_format,
        export_path=args.export_path,
        list_selection=args.list_selection,
        non_interactive=args.non_interactive,
        config_path=args.config,
    )
    sys.exit(run(options))


if __name__ == "__main__":
    main()
