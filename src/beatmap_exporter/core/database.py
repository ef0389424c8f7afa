"""
SQLite library record store for Beatmap Exporter

The library directory holds library.db (beatmap sets, difficulties,
collections) and a content-addressed files/ store where every file is named
by its hash: files/<h[0]>/<h[0:2]>/<hash>.
"""

import sqlite3
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from loguru import logger

from beatmap_exporter.domain.library.models import (
    Beatmap,
    BeatmapCollection,
    BeatmapMetadata,
    BeatmapSet,
    NamedFile,
)
from beatmap_exporter.exceptions import LibraryVersionError

# Library database schema version this exporter reads
LIBRARY_SCHEMA_VERSION = 42

LIBRARY_DB_FILENAME = "library.db"
FILES_DIRNAME = "files"

PathLike = Union[str, Path]


def default_library_dirs() -> List[Path]:
    """Platform default locations of the game's data directory, most likely first."""
    home = Path.home()
    if sys.platform == "win32":
        return [home / "AppData" / "Roaming" / "osu"]
    if sys.platform == "darwin":
        return [home / "Library" / "Application Support" / "osu"]
    return [
        home / ".local" / "share" / "osu",
        home / ".var" / "app" / "sh.ppy.osu" / "data" / "osu",
    ]


def find_library_db(user_dir: Optional[PathLike] = None) -> Optional[Path]:
    """
    Locate library.db, checking a user-provided directory before the defaults.

    Returns:
        Path to the database file, or None if no candidate directory has one
    """
    candidates = [Path(user_dir)] if user_dir else []
    candidates.extend(default_library_dirs())
    for directory in candidates:
        db_path = directory / LIBRARY_DB_FILENAME
        if db_path.is_file():
            return db_path
        logger.debug(f"No library database in {directory}")
    return None


@contextmanager
def get_db_connection(db_path: PathLike):
    """Get a database connection with proper cleanup."""
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def init_database(db_path: PathLike, version: int = LIBRARY_SCHEMA_VERSION) -> None:
    """Create an empty library database with the required tables."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS beatmap_sets (
                id TEXT PRIMARY KEY, -- UUID
                online_id INTEGER NOT NULL DEFAULT -1, -- -1 if never submitted
                date_added TIMESTAMP NOT NULL,
                date_ranked TIMESTAMP,
                status INTEGER NOT NULL DEFAULT -3
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS beatmaps (
                id TEXT PRIMARY KEY, -- UUID
                set_id TEXT NOT NULL,
                position INTEGER NOT NULL, -- order within the set
                hash TEXT NOT NULL, -- SHA-256, names the file in the store
                md5_hash TEXT NOT NULL, -- referenced by collections
                difficulty_name TEXT,
                star_rating REAL DEFAULT -1,
                length REAL DEFAULT 0, -- milliseconds
                bpm REAL DEFAULT 0,
                status INTEGER NOT NULL DEFAULT -3,
                ruleset_id INTEGER NOT NULL DEFAULT 0,
                last_played TIMESTAMP,
                title TEXT,
                title_unicode TEXT,
                artist TEXT,
                artist_unicode TEXT,
                author TEXT,
                source TEXT,
                tags TEXT,
                audio_file TEXT,
                background_file TEXT,
                FOREIGN KEY (set_id) REFERENCES beatmap_sets (id) ON DELETE CASCADE,
                UNIQUE (set_id, hash)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS set_files (
                set_id TEXT NOT NULL,
                filename TEXT NOT NULL,
                hash TEXT NOT NULL,
                FOREIGN KEY (set_id) REFERENCES beatmap_sets (id) ON DELETE CASCADE,
                UNIQUE (set_id, filename)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS collections (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                last_modified TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS collection_beatmaps (
                collection_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                md5_hash TEXT NOT NULL,
                FOREIGN KEY (collection_id) REFERENCES collections (id) ON DELETE CASCADE
            )
        """)

        conn.execute("CREATE INDEX IF NOT EXISTS idx_beatmaps_set_id ON beatmaps (set_id, position)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_collection_beatmaps_collection_id "
            "ON collection_beatmaps (collection_id, position)"
        )

        conn.execute("DELETE FROM schema_version")
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the schema version; 0 if the database has none."""
    try:
        row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
    except sqlite3.OperationalError:
        return 0
    return row["version"] if row and row["version"] else 0


def check_schema_version(conn: sqlite3.Connection) -> None:
    """
    Verify the database schema matches the version this exporter reads.

    Raises:
        LibraryVersionError: On any mismatch, with user-facing detail lines
    """
    version = get_schema_version(conn)
    if version == LIBRARY_SCHEMA_VERSION:
        return

    message = f"Library database schema version {version} does not equal supported version {LIBRARY_SCHEMA_VERSION}"
    if version > LIBRARY_SCHEMA_VERSION:
        details = [
            "The library database structure has updated since this version of Beatmap Exporter was released.",
            "Check for a newer release, or report it if one hasn't appeared in a few days.",
        ]
    else:
        details = [
            "The library database is older than this version of Beatmap Exporter supports.",
            "Start the game once to upgrade the database, then try again.",
        ]
    raise LibraryVersionError(message, details)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _row_to_metadata(row: sqlite3.Row) -> BeatmapMetadata:
    return BeatmapMetadata(
        title=row["title"] or "",
        title_unicode=row["title_unicode"] or "",
        artist=row["artist"] or "",
        artist_unicode=row["artist_unicode"] or "",
        author=row["author"] or "",
        source=row["source"] or "",
        tags=row["tags"],
        audio_file=row["audio_file"] or "",
        background_file=row["background_file"],
    )


def load_beatmap_sets(conn: sqlite3.Connection) -> List[BeatmapSet]:
    """Load every beatmap set with its difficulties and files, in storage order."""
    files_by_set: Dict[str, List[NamedFile]] = {}
    for row in conn.execute("SELECT set_id, filename, hash FROM set_files ORDER BY rowid"):
        files_by_set.setdefault(row["set_id"], []).append(NamedFile(row["filename"], row["hash"]))

    set_rows = conn.execute(
        "SELECT id, online_id, date_added, date_ranked, status FROM beatmap_sets ORDER BY rowid"
    ).fetchall()
    set_info = {row["id"]: row for row in set_rows}

    beatmaps_by_set: Dict[str, List[Beatmap]] = {}
    for row in conn.execute("SELECT * FROM beatmaps ORDER BY set_id, position"):
        set_row = set_info.get(row["set_id"])
        if set_row is None:
            logger.warning(f"Beatmap {row['id']} references missing beatmap set {row['set_id']}")
            continue
        beatmap = Beatmap(
            id=uuid.UUID(row["id"]),
            set_id=uuid.UUID(row["set_id"]),
            hash=row["hash"],
            md5_hash=row["md5_hash"],
            metadata=_row_to_metadata(row),
            difficulty_name=row["difficulty_name"] or "",
            star_rating=row["star_rating"],
            length=row["length"],
            bpm=row["bpm"],
            status=row["status"],
            ruleset_id=row["ruleset_id"],
            set_online_id=set_row["online_id"],
            date_added=_parse_timestamp(set_row["date_added"]),
            date_ranked=_parse_timestamp(set_row["date_ranked"]),
            last_played=_parse_timestamp(row["last_played"]),
        )
        beatmaps_by_set.setdefault(row["set_id"], []).append(beatmap)

    return [
        BeatmapSet(
            id=uuid.UUID(row["id"]),
            online_id=row["online_id"],
            date_added=_parse_timestamp(row["date_added"]),
            beatmaps=tuple(beatmaps_by_set.get(row["id"], [])),
            files=tuple(files_by_set.get(row["id"], [])),
            date_ranked=_parse_timestamp(row["date_ranked"]),
            status=row["status"],
        )
        for row in set_rows
    ]


def load_collections(conn: sqlite3.Connection) -> List[BeatmapCollection]:
    """Load user collections in storage order."""
    hashes_by_collection: Dict[int, List[str]] = {}
    for row in conn.execute(
        "SELECT collection_id, md5_hash FROM collection_beatmaps ORDER BY collection_id, position"
    ):
        hashes_by_collection.setdefault(row["collection_id"], []).append(row["md5_hash"])

    return [
        BeatmapCollection(row["name"], tuple(hashes_by_collection.get(row["id"], [])))
        for row in conn.execute("SELECT id, name FROM collections ORDER BY id")
    ]


def load_library_data(db_path: PathLike) -> Tuple[List[BeatmapSet], Optional[List[BeatmapCollection]]]:
    """
    Open the library database and load beatmap sets and collections.

    Args:
        db_path: Path to library.db

    Returns:
        Tuple of (beatmap sets, collections), both in storage order. Collections
        are None if they can't be read; beatmap export still works without them.

    Raises:
        FileNotFoundError: If the database file doesn't exist
        LibraryVersionError: If the schema version doesn't match
        sqlite3.DatabaseError: If the file isn't a readable library database
    """
    db_path = Path(db_path)
    if not db_path.is_file():
        raise FileNotFoundError(f"Library database not found: {db_path}")

    with get_db_connection(db_path) as conn:
        check_schema_version(conn)
        beatmap_sets = load_beatmap_sets(conn)
        try:
            collections = load_collections(conn)
        except sqlite3.DatabaseError as e:
            logger.warning(f"Could not read collections from {db_path}: {e}")
            collections = None

    collection_count = len(collections) if collections is not None else 0
    logger.info(f"Read {len(beatmap_sets)} beatmap sets and {collection_count} collections from {db_path}")
    return beatmap_sets, collections


def save_library_data(
    db_path: PathLike,
    beatmap_sets: Sequence[BeatmapSet],
    collections: Iterable[BeatmapCollection] = (),
) -> None:
    """Write beatmap sets and collections to a library database, creating it if needed."""
    init_database(db_path)
    with get_db_connection(db_path) as conn:
        for beatmap_set in beatmap_sets:
            conn.execute(
                "INSERT INTO beatmap_sets (id, online_id, date_added, date_ranked, status) VALUES (?, ?, ?, ?, ?)",
                (
                    str(beatmap_set.id),
                    beatmap_set.online_id,
                    _format_timestamp(beatmap_set.date_added),
                    _format_timestamp(beatmap_set.date_ranked),
                    beatmap_set.status,
                ),
            )
            conn.executemany(
                "INSERT INTO set_files (set_id, filename, hash) VALUES (?, ?, ?)",
                [(str(beatmap_set.id), f.filename, f.hash) for f in beatmap_set.files],
            )
            conn.executemany(
                """
                INSERT INTO beatmaps (
                    id, set_id, position, hash, md5_hash, difficulty_name, star_rating, length, bpm,
                    status, ruleset_id, last_played, title, title_unicode, artist, artist_unicode,
                    author, source, tags, audio_file, background_file
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                [
                    (
                        str(b.id),
                        str(beatmap_set.id),
                        position,
                        b.hash,
                        b.md5_hash,
                        b.difficulty_name,
                        b.star_rating,
                        b.length,
                        b.bpm,
                        b.status,
                        b.ruleset_id,
                        _format_timestamp(b.last_played),
                        b.metadata.title,
                        b.metadata.title_unicode,
                        b.metadata.artist,
                        b.metadata.artist_unicode,
                        b.metadata.author,
                        b.metadata.source,
                        b.metadata.tags,
                        b.metadata.audio_file,
                        b.metadata.background_file,
                    )
                    for position, b in enumerate(beatmap_set.beatmaps)
                ],
            )

        for collection in collections:
            cursor = conn.execute("INSERT INTO collections (name) VALUES (?)", (collection.name,))
            conn.executemany(
                "INSERT INTO collection_beatmaps (collection_id, position, md5_hash) VALUES (?, ?, ?)",
                [(cursor.lastrowid, i, md5) for i, md5 in enumerate(collection.beatmap_md5_hashes)],
            )

        conn.commit()


def hashed_file_path(library_root: PathLike, file_hash: str) -> Path:
    """Location of a hashed file in the store: files/<h[0]>/<h[0:2]>/<hash>."""
    return Path(library_root) / FILES_DIRNAME / file_hash[:1] / file_hash[:2] / file_hash


def open_hashed_file(library_root: PathLike, file_hash: str) -> BinaryIO:
    """
    Open a file from the hashed store for binary reading.

    Raises:
        OSError: If the file can't be opened
    """
    path = hashed_file_path(library_root, file_hash)
    try:
        return open(path, "rb")
    except OSError as e:
        raise OSError(f"Unable to open file: {file_hash}") from e


def open_named_file(library_root: PathLike, beatmap_set: BeatmapSet, filename: str) -> Optional[BinaryIO]:
    """
    Open a file of a beatmap set by its name within the set.

    Returns:
        Binary stream, or None if the set has no file by that name

    Raises:
        OSError: If the set lists the file but it can't be opened
    """
    file_hash = next((f.hash for f in beatmap_set.files if f.filename == filename), None)
    if file_hash is None:
        return None
    try:
        return open(hashed_file_path(library_root, file_hash), "rb")
    except OSError as e:
        raise OSError(f"Unable to open file: {filename} from beatmap {beatmap_set.online_id}") from e


def iter_set_files(library_root: PathLike, beatmap_set: BeatmapSet) -> Iterator[Tuple[NamedFile, Path]]:
    """Pair each file of a set with its location in the hashed store."""
    for named_file in beatmap_set.files:
        yield named_file, hashed_file_path(library_root, named_file.hash)
