"""Application context for explicit state passing.

The AppContext bundles the loaded library, the selection engine and the
export settings so command handlers receive everything they need as one
argument and return an updated context.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from rich.console import Console

from beatmap_exporter.core.config import Config
from beatmap_exporter.core.worker import DatabaseWorker
from beatmap_exporter.domain.export.formats import ExporterConfiguration
from beatmap_exporter.domain.selection.engine import SelectionEngine


@dataclass
class AppContext:
    """Application state passed to command handlers.

    Attributes:
        config: Application configuration
        engine: Selection engine over the loaded library
        export_config: Export destination, format and compression
        library_root: Directory containing library.db and the files/ store
        worker: Thread that runs library database work
        console: Rich Console for formatted output
        config_path: Config file settings are saved to (None: default location)
    """

    config: Config
    engine: SelectionEngine
    export_config: ExporterConfiguration
    library_root: Path
    worker: DatabaseWorker
    console: Optional[Console] = None
    config_path: Optional[Path] = None

    def with_config(self, config: Config) -> "AppContext":
        """Return new context with updated configuration."""
        return replace(self, config=config)

    def with_export_config(self, export_config: ExporterConfiguration) -> "AppContext":
        """Return new context with updated export settings."""
        return replace(self, export_config=export_config)
