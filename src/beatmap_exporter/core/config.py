"""
Configuration management for Beatmap Exporter
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

VALID_EXPORT_FORMATS = ("beatmap", "audio", "background", "collection")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LibraryConfig:
    """Configuration for the beatmap library location."""

    # Directory holding library.db and the hashed files/ store
    database_path: Optional[str] = None


@dataclass
class ExportConfig:
    """Configuration for export destination and output format."""

    export_path: str = "lazerexport"
    export_format: str = "beatmap"  # beatmap, audio, background, collection
    compression_enabled: bool = False

    def validate(self) -> None:
        """Validate export configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.export_format not in VALID_EXPORT_FORMATS:
            raise ValueError(
                f"Invalid export format: {self.export_format}. "
                f"Valid formats are: {', '.join(VALID_EXPORT_FORMATS)}"
            )
        if not self.export_path:
            raise ValueError("Export path cannot be empty")


@dataclass
class SerializedFilter:
    """A beatmap filter as persisted between sessions."""

    filter_type: str
    input: str
    negated: bool = False


@dataclass
class FilterConfig:
    """Configuration for beatmap filter logic and last applied filters."""

    match_all: bool = True  # True: beatmaps must match ALL filters, False: ANY
    applied: List[SerializedFilter] = field(default_factory=list)


@dataclass
class CollectionConfig:
    """Configuration for collection.db export."""

    merge: bool = True  # Merge into an existing collection.db at the export path
    case_insensitive: bool = True  # "Favorites" and "favorites" are one collection


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    log_file: Optional[str] = None  # Default: ~/.local/share/beatmap-exporter/beatmap-exporter.log
    console_output: bool = False

    def validate(self) -> None:
        """Validate logging configuration values.

        Raises:
            ValueError: If the level is unknown
        """
        if self.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.level}. Use one of: {', '.join(VALID_LOG_LEVELS)}"
            )


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    collections: CollectionConfig = field(default_factory=CollectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate every section that has constraints."""
        self.export.validate()
        self.logging.validate()


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "beatmap-exporter"
    return Path.home() / ".config" / "beatmap-exporter"


def get_config_path() -> Path:
    """Get the main configuration file path.

    A config.toml in the current working directory wins over the
    XDG_CONFIG_HOME/beatmap-exporter one.
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "beatmap-exporter"
    return Path.home() / ".local" / "share" / "beatmap-exporter"


def _parse_applied_filters(raw_filters: List[Dict[str, Any]]) -> List[SerializedFilter]:
    """Convert [[filters.applied]] tables into SerializedFilter entries.

    Entries missing a type or input are skipped with a warning.
    """
    applied = []
    for raw in raw_filters:
        filter_type = raw.get("type")
        filter_input = raw.get("input")
        if not filter_type or filter_input is None:
            logger.warning(f"Skipping malformed saved filter: {raw}")
            continue
        applied.append(
            SerializedFilter(
                filter_type=str(filter_type),
                input=str(filter_input),
                negated=bool(raw.get("negated", False)),
            )
        )
    return applied


def config_from_toml(toml_data: Dict[str, Any]) -> Config:
    """Build a Config from parsed TOML data, falling back to defaults per key."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        database_path = library_data.get("database_path")
        if database_path:
            database_path = str(Path(database_path).expanduser())
        config.library = LibraryConfig(database_path=database_path)

    if "export" in toml_data:
        export_data = toml_data["export"]
        config.export = ExportConfig(
            export_path=export_data.get("export_path", config.export.export_path),
            export_format=export_data.get(
                "export_format", config.export.export_format
            ).lower(),
            compression_enabled=export_data.get(
                "compression_enabled", config.export.compression_enabled
            ),
        )

    if "filters" in toml_data:
        filters_data = toml_data["filters"]
        config.filters = FilterConfig(
            match_all=filters_data.get("match_all", config.filters.match_all),
            applied=_parse_applied_filters(filters_data.get("applied", [])),
        )

    if "collections" in toml_data:
        collections_data = toml_data["collections"]
        config.collections = CollectionConfig(
            merge=collections_data.get("merge", config.collections.merge),
            case_insensitive=collections_data.get(
                "case_insensitive", config.collections.case_insensitive
            ),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    config.validate()
    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file, creating a default one if missing.

    Raises:
        ValueError: If the file holds invalid values
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        config = Config()
        save_config(config, config_path)
        return config

    with open(config_path, "rb") as f:
        toml_data = tomllib.load(f)
    return config_from_toml(toml_data)


def _toml_string(value: str) -> str:
    """Quote a string as a TOML basic string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _toml_bool(value: bool) -> str:
    return "true" if value else "false"


def render_config(config: Config) -> str:
    """Render a Config as TOML text."""
    toml_content = "# Beatmap Exporter Configuration\n\n[library]"
    if config.library.database_path:
        toml_content += f"\ndatabase_path = {_toml_string(config.library.database_path)}"

    toml_content += f"""

[export]
export_path = {_toml_string(config.export.export_path)}
export_format = {_toml_string(config.export.export_format)}
compression_enabled = {_toml_bool(config.export.compression_enabled)}

[filters]
match_all = {_toml_bool(config.filters.match_all)}

[collections]
merge = {_toml_bool(config.collections.merge)}
case_insensitive = {_toml_bool(config.collections.case_insensitive)}

[logging]
level = {_toml_string(config.logging.level)}
console_output = {_toml_bool(config.logging.console_output)}"""

    if config.logging.log_file:
        toml_content += f"\nlog_file = {_toml_string(config.logging.log_file)}"

    # Array of tables must come after every plain key of [filters]
    for saved in config.filters.applied:
        toml_content += f"""

[[filters.applied]]
type = {_toml_string(saved.filter_type)}
input = {_toml_string(saved.input)}
negated = {_toml_bool(saved.negated)}"""

    return toml_content + "\n"


def save_config(config: Config, config_path: Optional[Path] = None) -> bool:
    """Save configuration to file.

    Failures are logged and reported through the return value so a broken
    settings file never interrupts an export.
    """
    config_path = config_path or get_config_path()
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(render_config(config), encoding="utf-8")
        return True
    except OSError as e:
        logger.error(f"Failed to save settings to {config_path}: {e}")
        return False


def ensure_directories() -> None:
    """Ensure the config and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
