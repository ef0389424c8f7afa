"""
Beatmap library domain models.

Contains data structures for representing beatmaps, beatmap sets and
collections as loaded from the library database.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from beatmap_exporter.utils.strings import remove_filename_characters, trunc

# Online status codes as stored by the library database
STATUS_LOCALLY_MODIFIED = -4
STATUS_NONE = -3  # graveyard / unknown
STATUS_GRAVEYARD = -2
STATUS_WIP = -1
STATUS_PENDING = 0
STATUS_RANKED = 1
STATUS_APPROVED = 2
STATUS_QUALIFIED = 3
STATUS_LOVED = 4

# Ruleset online ids
RULESET_NAMES = {0: "osu", 1: "taiko", 2: "fruits", 3: "mania"}


@dataclass(frozen=True)
class BeatmapMetadata:
    """Song and file metadata shared by the difficulties of a set."""

    title: str = ""
    title_unicode: str = ""
    artist: str = ""
    artist_unicode: str = ""
    author: str = ""
    source: str = ""
    tags: Optional[str] = ""
    audio_file: str = ""
    background_file: Optional[str] = None

    def _output_name(self, online_id: int) -> str:
        return f"{trunc(self.artist, 30)} - {trunc(self.title, 60)} ({online_id})"

    def output_audio_filename(self, online_id: int) -> str:
        """Filename for an exported audio track, e.g. 'Camellia - Exit This Earth (1234).mp3'."""
        return remove_filename_characters(f"{self._output_name(online_id)}.mp3")

    def output_background_filename(self, online_id: int) -> str:
        """Filename for an exported background image, keeping the original name."""
        background = self.background_file or ""
        background_name = trunc(background, 120)
        if background_name != background:
            # Restore the extension lost to truncation
            dot = background.rfind(".")
            if dot != -1:
                background_name += background[dot:]
        return remove_filename_characters(f"{self._output_name(online_id)} {background_name}")


@dataclass(frozen=True, eq=False)
class Beatmap:
    """A single beatmap difficulty.

    Identity is the UUID; two Beatmap objects with the same id are the same
    difficulty regardless of other fields.
    """

    id: uuid.UUID
    set_id: uuid.UUID
    hash: str  # SHA-256 of the difficulty file, names it in the file store
    md5_hash: str  # Content hash referenced by collections
    metadata: BeatmapMetadata = field(default_factory=BeatmapMetadata)
    difficulty_name: str = ""
    star_rating: float = -1.0
    length: float = 0.0  # milliseconds
    bpm: float = 0.0
    status: int = STATUS_NONE
    ruleset_id: int = 0
    set_online_id: int = -1
    date_added: Optional[datetime] = None  # of the owning set
    date_ranked: Optional[datetime] = None  # of the owning set
    last_played: Optional[datetime] = None

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Beatmap):
            return NotImplemented
        return self.id == other.id

    def display(self) -> str:
        """Title line for listings: 'Artist - Title (Author) [Difficulty]'."""
        version = f"[{self.difficulty_name}]" if self.difficulty_name else ""
        base = f"{self.metadata.artist} - {self.metadata.title} ({self.metadata.author})"
        return f"{base} {version}".strip()

    def details(self) -> str:
        """Two-line description of the difficulty."""
        length_seconds = int(self.length) // 1000
        ruleset = RULESET_NAMES.get(self.ruleset_id, str(self.ruleset_id))
        return (
            f"{ruleset}: {self.star_rating:.2f} stars by {self.metadata.author} [{self.difficulty_name}]\n"
            f"{length_seconds} seconds - {self.bpm:.0f}BPM"
        )


@dataclass(frozen=True)
class NamedFile:
    """A file belonging to a beatmap set: its name in the set and its store hash."""

    filename: str
    hash: str


@dataclass(frozen=True, eq=False)
class BeatmapSet:
    """A beatmap set: the difficulties sharing one song.

    Compared by identity (UUID). The selected difficulties are tracked by the
    selection engine, not by the set itself.
    """

    id: uuid.UUID
    online_id: int
    date_added: datetime
    beatmaps: tuple[Beatmap, ...]
    files: tuple[NamedFile, ...] = ()
    date_ranked: Optional[datetime] = None
    status: int = STATUS_NONE

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BeatmapSet):
            return NotImplemented
        return self.id == other.id

    @property
    def metadata(self) -> Optional[BeatmapMetadata]:
        """Metadata of the first difficulty, if the set has any."""
        return self.beatmaps[0].metadata if self.beatmaps else None

    def diff_summary(self, selected: list[Beatmap]) -> str:
        """One-line summary including the star ratings of the given difficulties."""
        metadata = self.beatmaps[0].metadata
        ratings = ", ".join(f"{b.star_rating:.2f}" for b in sorted(selected, key=lambda b: b.star_rating))
        return f"{self.online_id}: {metadata.artist} - {metadata.title} ({metadata.author} - {ratings} stars)"

    def archive_filename(self, selected: list[Beatmap]) -> str:
        """Output filename for an .osz archive of this set."""
        metadata = selected[0].metadata if selected else self.beatmaps[0].metadata
        beatmap_id = f"{self.online_id} " if self.online_id != -1 else ""
        name = (
            f"{beatmap_id}{trunc(metadata.artist, 30)} - {trunc(metadata.title, 40)} "
            f"({trunc(metadata.author, 30)}).osz"
        )
        return remove_filename_characters(name)


@dataclass(frozen=True)
class BeatmapCollection:
    """A user collection as stored by the library database."""

    name: str
    beatmap_md5_hashes: tuple[str, ...] = ()


@dataclass
class MapCollection:
    """A collection resolved against the loaded library.

    collection_id is the 1-based ordinal in load order; beatmaps are the loaded
    difficulties whose md5 hash the collection references.
    """

    name: str
    collection_id: int
    beatmaps: list[Beatmap] = field(default_factory=list)
