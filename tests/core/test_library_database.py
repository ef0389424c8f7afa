"""
Tests for the SQLite library record store and the hashed file store.
"""

import sqlite3

import pytest

from beatmap_exporter.core import database
from beatmap_exporter.domain.library.models import BeatmapCollection, NamedFile
from beatmap_exporter.exceptions import LibraryVersionError


@pytest.fixture
def library_db(tmp_path, beatmap_sets, collections):
    """A library.db holding the shared fixture sets and collections."""
    db_path = tmp_path / database.LIBRARY_DB_FILENAME
    database.save_library_data(db_path, beatmap_sets, collections)
    return db_path


class TestLoadLibraryData:
    """Test loading beatmap sets and collections."""

    def test_round_trip(self, library_db, beatmap_sets):
        loaded_sets, loaded_collections = database.load_library_data(library_db)

        assert [s.id for s in loaded_sets] == [s.id for s in beatmap_sets]
        first = loaded_sets[0]
        assert [b.star_rating for b in first.beatmaps] == [5.0, 6.3, 7.1]
        assert first.files == beatmap_sets[0].files
        assert first.beatmaps[0].metadata == beatmap_sets[0].beatmaps[0].metadata
        assert first.beatmaps[0].set_online_id == 10
        assert first.beatmaps[0].date_added == beatmap_sets[0].date_added
        assert [c.name for c in loaded_collections] == ["Favorites", "Stream", "empty"]
        assert loaded_collections[0].beatmap_md5_hashes == ("a2", "c1")

    def test_missing_tags_stay_none(self, library_db):
        loaded_sets, _ = database.load_library_data(library_db)
        assert loaded_sets[1].beatmaps[0].metadata.tags is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            database.load_library_data(tmp_path / "library.db")

    def test_newer_schema(self, tmp_path):
        db_path = tmp_path / "library.db"
        database.init_database(db_path, version=database.LIBRARY_SCHEMA_VERSION + 1)
        with pytest.raises(LibraryVersionError) as excinfo:
            database.load_library_data(db_path)
        assert "newer release" in " ".join(excinfo.value.details)

    def test_older_schema(self, tmp_path):
        db_path = tmp_path / "library.db"
        database.init_database(db_path, version=database.LIBRARY_SCHEMA_VERSION - 1)
        with pytest.raises(LibraryVersionError) as excinfo:
            database.load_library_data(db_path)
        assert "older" in excinfo.value.details[0]

    def test_not_a_database(self, tmp_path):
        db_path = tmp_path / "library.db"
        db_path.write_bytes(b"not a database at all, definitely not sqlite" * 20)
        with pytest.raises(sqlite3.DatabaseError):
            database.load_library_data(db_path)

    def test_unreadable_collections(self, library_db):
        with database.get_db_connection(library_db) as conn:
            conn.execute("DROP TABLE collection_beatmaps")
            conn.commit()
        loaded_sets, loaded_collections = database.load_library_data(library_db)
        assert len(loaded_sets) == 3
        assert loaded_collections is None

    def test_empty_collection_list(self, tmp_path, beatmap_sets):
        db_path = tmp_path / "library.db"
        database.save_library_data(db_path, beatmap_sets, [BeatmapCollection("Only")])
        _, loaded_collections = database.load_library_data(db_path)
        assert loaded_collections == [BeatmapCollection("Only", ())]


class TestFindLibraryDb:
    """Test locating library.db."""

    def test_user_directory(self, library_db):
        assert database.find_library_db(library_db.parent) == library_db

    def test_not_found(self, tmp_path, monkeypatch):
        monkeypatch.setattr(database, "default_library_dirs", lambda: [tmp_path / "nowhere"])
        assert database.find_library_db(tmp_path / "empty") is None


class TestHashedFiles:
    """Test the content-addressed file store."""

    def test_path_layout(self, tmp_path):
        assert database.hashed_file_path(tmp_path, "abcdef") == tmp_path / "files" / "a" / "ab" / "abcdef"

    def test_open_hashed_file(self, tmp_path):
        path = database.hashed_file_path(tmp_path, "abcdef")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"data")
        with database.open_hashed_file(tmp_path, "abcdef") as f:
            assert f.read() == b"data"

    def test_open_hashed_file_missing(self, tmp_path):
        with pytest.raises(OSError, match="Unable to open file: abcdef"):
            database.open_hashed_file(tmp_path, "abcdef")

    def test_open_named_file(self, tmp_path, beatmap_sets):
        beatmap_set = beatmap_sets[0]
        named = beatmap_set.files[0]
        path = database.hashed_file_path(tmp_path, named.hash)
        path.parent.mkdir(parents=True)
        path.write_bytes(b"osu file format v14")
        with database.open_named_file(tmp_path, beatmap_set, named.filename) as f:
            assert f.read() == b"osu file format v14"

    def test_open_named_file_not_in_set(self, tmp_path, beatmap_sets):
        assert database.open_named_file(tmp_path, beatmap_sets[0], "missing.mp3") is None

    def test_iter_set_files(self, tmp_path, beatmap_sets):
        pairs = list(database.iter_set_files(tmp_path, beatmap_sets[2]))
        assert pairs == [
            (NamedFile("Diff 6.5.osu", "c100000000sha"), database.hashed_file_path(tmp_path, "c100000000sha"))
        ]
