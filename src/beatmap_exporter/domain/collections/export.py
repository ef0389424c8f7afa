"""
collection.db export of the current selection.

Builds a collection database holding, for each of the user's collections,
the selected beatmaps it contains, optionally merged into an existing file.
"""

from pathlib import Path
from typing import Dict, List, Union

from loguru import logger

from .codec import CollectionDb

COLLECTION_DB_FILENAME = "collection.db"


def build_collection_db(
    membership: Dict[str, List[str]],
    path: Union[str, Path],
    merge: bool = True,
    case_insensitive: bool = True,
) -> CollectionDb:
    """
    Combine computed collection membership with an existing collection.db.

    Args:
        membership: Collection name -> beatmap md5 hashes to include
        path: collection.db location used as the merge base
        merge: Merge into the existing file if there is one; otherwise start fresh
        case_insensitive: Whether collection names coalesce ignoring case

    Returns:
        The merged database (not yet written)

    Raises:
        CollectionDbError: If merging was requested and the existing file is unreadable
    """
    if merge:
        db = CollectionDb.open_or_create(path, case_insensitive)
    else:
        db = CollectionDb(case_insensitive)

    for name, hashes in membership.items():
        db.merge_collection(name, hashes)
    return db


def export_collection_db(
    membership: Dict[str, List[str]],
    export_dir: Union[str, Path],
    merge: bool = True,
    case_insensitive: bool = True,
) -> Path:
    """
    Write the selected collection membership to export_dir/collection.db.

    Returns:
        Path of the written file

    Raises:
        CollectionDbError: If the existing file can't be merged or the new one written
    """
    path = Path(export_dir) / COLLECTION_DB_FILENAME
    db = build_collection_db(membership, path, merge=merge, case_insensitive=case_insensitive)
    db.export_file(path)
    logger.info(
        f"Exported {len(membership)} collections to {path} "
        f"(merge={merge}, case_insensitive={case_insensitive})"
    )
    return path
