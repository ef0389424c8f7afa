"""
osu!stable collection.db reading and writing.

File layout (little-endian):

    int32   version
    int32   collection count
    per collection:
        string  name
        int32   beatmap count
        per beatmap:
            string  beatmap md5 hash

Strings are a single 0x00 byte (null) or 0x0b followed by a ULEB128 byte
length and UTF-8 data.
"""

import io
import struct
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Set, Union

from loguru import logger

from beatmap_exporter.exceptions import CollectionDbError
from beatmap_exporter.utils.names import NameKeyedDict

# collection.db version written by this exporter
COLLECTION_DB_VERSION = 20250122

STRING_NULL = 0x00
STRING_PRESENT = 0x0B

_INT32 = struct.Struct("<i")


class _Reader:
    """Sequential reader for osu! binary primitives."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def _read_exact(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) != size:
            raise EOFError(f"expected {size} bytes, got {len(data)}")
        return data

    def read_int32(self) -> int:
        return _INT32.unpack(self._read_exact(4))[0]

    def read_uleb128(self) -> int:
        result = 0
        shift = 0
        while True:
            byte = self._read_exact(1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7
            if shift > 35:
                raise ValueError("string length prefix is too long")

    def read_string(self) -> str:
        marker = self._read_exact(1)[0]
        if marker == STRING_NULL:
            return ""
        if marker != STRING_PRESENT:
            raise ValueError(f"invalid string marker 0x{marker:02x}")
        length = self.read_uleb128()
        return self._read_exact(length).decode("utf-8")


class _Writer:
    """Sequential writer for osu! binary primitives."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def write_int32(self, value: int) -> None:
        self._stream.write(_INT32.pack(value))

    def write_uleb128(self, value: int) -> None:
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._stream.write(bytes([byte | 0x80]))
            else:
                self._stream.write(bytes([byte]))
                return

    def write_string(self, text: Optional[str]) -> None:
        if text is None:
            self._stream.write(bytes([STRING_NULL]))
            return
        data = text.encode("utf-8")
        self._stream.write(bytes([STRING_PRESENT]))
        self.write_uleb128(len(data))
        self._stream.write(data)


class CollectionDb:
    """
    An osu!stable collection database: collection name -> beatmap md5 hashes.

    Collection names compare ordinally or case-insensitively; with
    case_insensitive=True, 'Favorites' and 'favorites' are one collection.
    """

    def __init__(self, case_insensitive: bool = False, version: int = COLLECTION_DB_VERSION):
        self.version = version
        self.collections: NameKeyedDict[Set[str]] = NameKeyedDict(case_insensitive)

    @property
    def case_insensitive(self) -> bool:
        return self.collections.case_insensitive

    def merge_collection(self, name: str, hashes: Iterable[str]) -> None:
        """Union beatmap hashes into a collection, creating it if needed."""
        existing = self.collections.get(name)
        if existing is None:
            existing = set()
            self.collections[name] = existing
        existing.update(hashes)

    # Reading

    @classmethod
    def read(cls, stream: BinaryIO, case_insensitive: bool = False) -> "CollectionDb":
        """
        Parse a collection database from a binary stream.

        Every collection read is merged, so names that collide under the
        chosen case rule coalesce.

        Raises:
            CollectionDbError: If the data is truncated or malformed
        """
        reader = _Reader(stream)
        try:
            version = reader.read_int32()
            count = reader.read_int32()
            if count < 0:
                raise ValueError(f"negative collection count {count}")
            db = cls(case_insensitive, version=version)
            for _ in range(count):
                name = reader.read_string()
                beatmap_count = reader.read_int32()
                if beatmap_count < 0:
                    raise ValueError(f"negative beatmap count {beatmap_count} in '{name}'")
                hashes = [reader.read_string() for _ in range(beatmap_count)]
                db.merge_collection(name, hashes)
        except (EOFError, ValueError, UnicodeDecodeError) as e:
            raise CollectionDbError(getattr(stream, "name", None), str(e)) from e
        return db

    @classmethod
    def from_bytes(cls, data: bytes, case_insensitive: bool = False) -> "CollectionDb":
        return cls.read(io.BytesIO(data), case_insensitive)

    @classmethod
    def open(cls, path: Union[str, Path], case_insensitive: bool = False) -> "CollectionDb":
        """
        Open and parse a collection.db file.

        Raises:
            CollectionDbError: If the file can't be opened or parsed
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                db = cls.read(f, case_insensitive)
        except CollectionDbError:
            raise
        except OSError as e:
            raise CollectionDbError(str(path), e.strerror or str(e)) from e
        logger.info(f"Opened {path} (version {db.version}, {len(db.collections)} collections)")
        return db

    @classmethod
    def open_or_create(cls, path: Union[str, Path], case_insensitive: bool = False) -> "CollectionDb":
        """
        Open an existing collection.db, or start a new one if there is no file.

        A file that exists but can't be parsed is an error, never an empty result.

        Raises:
            CollectionDbError: If the file exists but can't be opened or parsed
        """
        path = Path(path)
        if not path.exists():
            logger.info(f"No collection database at {path}, starting a new one")
            return cls(case_insensitive)
        return cls.open(path, case_insensitive)

    # Writing

    def _sorted_collections(self):
        return sorted(self.collections.items(), key=lambda item: (item[0].casefold(), item[0]))

    def write(self, stream: BinaryIO) -> None:
        """
        Serialize to a binary stream.

        The header always carries this exporter's version. Collections are
        written sorted by name and hashes sorted, so output is stable between runs.
        """
        writer = _Writer(stream)
        writer.write_int32(COLLECTION_DB_VERSION)
        writer.write_int32(len(self.collections))
        for name, hashes in self._sorted_collections():
            writer.write_string(name)
            writer.write_int32(len(hashes))
            for md5_hash in sorted(hashes):
                writer.write_string(md5_hash)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.write(buffer)
        return buffer.getvalue()

    def export_file(self, path: Union[str, Path]) -> None:
        """
        Write this database to a collection.db file, replacing any existing file.

        Raises:
            CollectionDbError: If the file can't be written
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                self.write(f)
        except OSError as e:
            raise CollectionDbError(str(path), e.strerror or str(e)) from e
        logger.info(f"Wrote {path} ({len(self.collections)} collections)")
