"""
Export formats and export destination settings.
"""

import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

DEFAULT_EXPORT_PATH = "lazerexport"
AUDIO_SUBFOLDER = "mp3"
BACKGROUND_SUBFOLDER = "bg"


class ExportFormat(Enum):
    """What an export writes for each selected beatmap set."""

    BEATMAP = "beatmap"
    AUDIO = "audio"
    BACKGROUND = "background"
    COLLECTION = "collection"

    @property
    def unit_name(self) -> str:
        """Short description of the exported items, e.g. for 'Export selected ...'."""
        return _UNIT_NAMES[self]

    @property
    def descriptor(self) -> str:
        """Sentence describing what the export will do."""
        return _DESCRIPTORS[self]

    def next(self) -> "ExportFormat":
        """The following format, wrapping around (for cycling through formats)."""
        members = list(ExportFormat)
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def from_name(cls, name: str) -> "ExportFormat":
        """
        Look up a format by its config/CLI name.

        Raises:
            ValueError: If the name isn't a known format
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown export format '{name}'. Valid formats are: {valid}") from None


_UNIT_NAMES = {
    ExportFormat.BEATMAP: "osu! beatmaps (.osz)",
    ExportFormat.AUDIO: "audio (.mp3)",
    ExportFormat.BACKGROUND: "beatmap backgrounds",
    ExportFormat.COLLECTION: "beatmap collections (collection.db)",
}

_DESCRIPTORS = {
    ExportFormat.BEATMAP: "Beatmaps will be exported in osu! archive format (.osz).",
    ExportFormat.AUDIO: "Beatmap audio files will be renamed, tagged and exported (.mp3 format).",
    ExportFormat.BACKGROUND: "Only beatmap background images will be exported (original format).",
    ExportFormat.COLLECTION: "Collections of the selected beatmaps will be exported to an osu!stable collection.db.",
}


@dataclass
class ExporterConfiguration:
    """Where and how the current selection is exported.

    export_path is the user's base directory; audio and background exports
    go to a subfolder of it.
    """

    base_path: Optional[str] = None
    export_format: ExportFormat = ExportFormat.BEATMAP
    compression_enabled: bool = False
    default_export_path: str = DEFAULT_EXPORT_PATH

    @property
    def export_path(self) -> Path:
        base = Path(self.base_path or self.default_export_path)
        if self.export_format is ExportFormat.AUDIO:
            return base / AUDIO_SUBFOLDER
        if self.export_format is ExportFormat.BACKGROUND:
            return base / BACKGROUND_SUBFOLDER
        return base

    @property
    def full_path(self) -> Path:
        """Absolute export path, for user feedback."""
        return self.export_path.resolve()

    @property
    def is_default_path(self) -> bool:
        return not self.base_path or self.base_path == self.default_export_path

    @property
    def compression(self) -> int:
        """zipfile compression method for .osz archives."""
        return zipfile.ZIP_DEFLATED if self.compression_enabled else zipfile.ZIP_STORED

    def setup_export(self) -> Path:
        """Create the export directory and return it."""
        path = self.export_path
        path.mkdir(parents=True, exist_ok=True)
        return path

    @classmethod
    def from_config(cls, export_config) -> "ExporterConfiguration":
        """Build from the [export] config section."""
        return cls(
            base_path=export_config.export_path,
            export_format=ExportFormat.from_name(export_config.export_format),
            compression_enabled=export_config.compression_enabled,
        )
