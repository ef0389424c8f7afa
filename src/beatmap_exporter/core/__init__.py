"""Core infrastructure layer.

This module provides foundation-level services:
- Configuration management (TOML)
- Library database access (SQLite) and the hashed file store
- The database worker thread
- Console and log output (Rich, Loguru)

The core layer reads domain models but never depends on command handlers
or the export pipeline.
"""

# Configuration
from .config import (
    Config,
    load_config,
    save_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    ensure_directories,
)

# Database
from .database import (
    LIBRARY_DB_FILENAME,
    LIBRARY_SCHEMA_VERSION,
    find_library_db,
    get_db_connection,
    hashed_file_path,
    init_database,
    load_library_data,
    open_hashed_file,
    open_named_file,
    save_library_data,
)

# Worker
from .worker import DatabaseWorker

# Console
from .console import get_console, safe_print

__all__ = [
    # Configuration
    "Config",
    "load_config",
    "save_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "ensure_directories",
    # Database
    "LIBRARY_DB_FILENAME",
    "LIBRARY_SCHEMA_VERSION",
    "find_library_db",
    "get_db_connection",
    "hashed_file_path",
    "init_database",
    "load_library_data",
    "open_hashed_file",
    "open_named_file",
    "save_library_data",
    # Worker
    "DatabaseWorker",
    # Console
    "get_console",
    "safe_print",
]
