"""Export domain - .osz archives, audio, backgrounds and collection.db export."""

from .archive import export_beatmap_set
from .audio import AudioExportTask, Transcoder, export_audio, extract_audio, tag_mp3
from .background import BackgroundExportTask, export_background, extract_backgrounds
from .formats import (
    AUDIO_SUBFOLDER,
    BACKGROUND_SUBFOLDER,
    DEFAULT_EXPORT_PATH,
    ExporterConfiguration,
    ExportFormat,
)
from .runner import BeatmapExporter, ExportReporter, ExportResult

__all__ = [
    "export_beatmap_set",
    "AudioExportTask",
    "Transcoder",
    "export_audio",
    "extract_audio",
    "tag_mp3",
    "BackgroundExportTask",
    "export_background",
    "extract_backgrounds",
    "AUDIO_SUBFOLDER",
    "BACKGROUND_SUBFOLDER",
    "DEFAULT_EXPORT_PATH",
    "ExporterConfiguration",
    "ExportFormat",
    "BeatmapExporter",
    "ExportReporter",
    "ExportResult",
]
