"""Collections domain - osu!stable collection.db codec and export."""

from .codec import COLLECTION_DB_VERSION, CollectionDb
from .export import COLLECTION_DB_FILENAME, build_collection_db, export_collection_db

__all__ = [
    "COLLECTION_DB_VERSION",
    "CollectionDb",
    "COLLECTION_DB_FILENAME",
    "build_collection_db",
    "export_collection_db",
]
