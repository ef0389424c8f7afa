"""
Tests for collection.db reading, merging and writing.
"""

import struct

import pytest

from beatmap_exporter.domain.collections import (
    COLLECTION_DB_FILENAME,
    COLLECTION_DB_VERSION,
    CollectionDb,
    build_collection_db,
    export_collection_db,
)
from beatmap_exporter.exceptions import CollectionDbError


def _as_dict(db: CollectionDb):
    return {name: set(hashes) for name, hashes in db.collections.items()}


class TestRoundTrip:
    """Test serializing and re-parsing."""

    @pytest.mark.parametrize(
        "collections",
        [
            {},
            {"Empty": set()},
            {"Favorites": {"a" * 32, "b" * 32}, "Stream": {"c" * 32}, "ユニコード": set()},
        ],
    )
    def test_round_trip(self, collections):
        db = CollectionDb()
        for name, hashes in collections.items():
            db.merge_collection(name, hashes)
        parsed = CollectionDb.from_bytes(db.to_bytes())
        assert _as_dict(parsed) == collections

    def test_writes_exporter_version(self):
        db = CollectionDb(version=20140609)
        data = db.to_bytes()
        assert struct.unpack("<ii", data[:8]) == (COLLECTION_DB_VERSION, 0)

    def test_reads_version(self):
        data = struct.pack("<ii", 20211231, 0)
        assert CollectionDb.from_bytes(data).version == 20211231

    def test_output_is_sorted(self):
        db = CollectionDb()
        db.merge_collection("b", ["2", "1"])
        db.merge_collection("A", [])
        data = db.to_bytes()
        assert data.index(b"\x0b\x01A") < data.index(b"\x0b\x01b")
        assert data.index(b"\x0b\x011") < data.index(b"\x0b\x012")

    def test_long_string_length_prefix(self):
        name = "n" * 300
        db = CollectionDb()
        db.merge_collection(name, [])
        data = db.to_bytes()
        # 300 as ULEB128 is 0xAC 0x02
        assert data[8:11] == b"\x0b\xac\x02"
        assert list(CollectionDb.from_bytes(data).collections) == [name]

    def test_null_string_reads_as_empty(self):
        data = struct.pack("<ii", COLLECTION_DB_VERSION, 1) + b"\x00" + struct.pack("<i", 0)
        assert list(CollectionDb.from_bytes(data).collections) == [""]


class TestMerge:
    """Test collection name comparison on merge."""

    def test_case_insensitive_merge(self):
        db = CollectionDb(case_insensitive=True)
        db.merge_collection("Favorites", {"a", "b"})
        db.merge_collection("favorites", {"b", "c"})
        assert _as_dict(db) == {"Favorites": {"a", "b", "c"}}

    def test_case_sensitive_merge(self):
        db = CollectionDb(case_insensitive=False)
        db.merge_collection("Favorites", {"a", "b"})
        db.merge_collection("favorites", {"b", "c"})
        assert _as_dict(db) == {"Favorites": {"a", "b"}, "favorites": {"b", "c"}}

    def test_merge_is_idempotent(self):
        db = CollectionDb()
        db.merge_collection("x", ["a"])
        db.merge_collection("x", ["a"])
        assert _as_dict(db) == {"x": {"a"}}

    def test_reading_coalesces_names(self):
        source = CollectionDb(case_insensitive=False)
        source.merge_collection("Favorites", ["a"])
        source.merge_collection("FAVORITES", ["b"])
        parsed = CollectionDb.from_bytes(source.to_bytes(), case_insensitive=True)
        assert len(parsed.collections) == 1
        assert parsed.collections["favorites"] == {"a", "b"}


class TestErrors:
    """Test malformed and missing files."""

    def test_truncated(self):
        db = CollectionDb()
        db.merge_collection("Favorites", ["a" * 32])
        data = db.to_bytes()
        with pytest.raises(CollectionDbError):
            CollectionDb.from_bytes(data[:-5])

    def test_header_only_partially_present(self):
        with pytest.raises(CollectionDbError):
            CollectionDb.from_bytes(b"\x01\x02")

    def test_bad_string_marker(self):
        data = struct.pack("<ii", COLLECTION_DB_VERSION, 1) + b"\x07"
        with pytest.raises(CollectionDbError, match="invalid string marker"):
            CollectionDb.from_bytes(data)

    def test_negative_count(self):
        with pytest.raises(CollectionDbError):
            CollectionDb.from_bytes(struct.pack("<ii", COLLECTION_DB_VERSION, -1))

    def test_corrupt_file_is_error_not_empty(self, tmp_path):
        path = tmp_path / COLLECTION_DB_FILENAME
        path.write_bytes(b"\xff" * 3)
        with pytest.raises(CollectionDbError) as excinfo:
            CollectionDb.open_or_create(path)
        assert excinfo.value.path == str(path)
        assert isinstance(excinfo.value, OSError)

    def test_open_missing_file(self, tmp_path):
        with pytest.raises(CollectionDbError):
            CollectionDb.open(tmp_path / "missing.db")

    def test_open_or_create_missing_file(self, tmp_path):
        db = CollectionDb.open_or_create(tmp_path / "missing.db", case_insensitive=True)
        assert len(db.collections) == 0
        assert db.case_insensitive


class TestExport:
    """Test collection.db export of computed membership."""

    def test_fresh_export(self, tmp_path):
        path = export_collection_db({"Favorites": ["a", "b"]}, tmp_path)
        assert path == tmp_path / COLLECTION_DB_FILENAME
        assert _as_dict(CollectionDb.open(path)) == {"Favorites": {"a", "b"}}

    def test_merges_existing_file(self, tmp_path):
        existing = CollectionDb()
        existing.merge_collection("favorites", ["z"])
        existing.merge_collection("Other", ["y"])
        existing.export_file(tmp_path / COLLECTION_DB_FILENAME)

        path = export_collection_db({"Favorites": ["a"]}, tmp_path, merge=True, case_insensitive=True)
        assert _as_dict(CollectionDb.open(path)) == {"favorites": {"a", "z"}, "Other": {"y"}}

    def test_replace_ignores_existing_file(self, tmp_path):
        (tmp_path / COLLECTION_DB_FILENAME).write_bytes(b"garbage")
        path = export_collection_db({"Favorites": ["a"]}, tmp_path, merge=False)
        assert _as_dict(CollectionDb.open(path)) == {"Favorites": {"a"}}

    def test_merge_with_unreadable_file_raises(self, tmp_path):
        (tmp_path / COLLECTION_DB_FILENAME).write_bytes(b"garbage")
        with pytest.raises(CollectionDbError):
            build_collection_db({"Favorites": ["a"]}, tmp_path / COLLECTION_DB_FILENAME, merge=True)
