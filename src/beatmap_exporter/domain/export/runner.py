"""
Export runner.

Walks the selected beatmap sets and exports them in the configured format,
reporting each success or failure. Record-store access goes through the
database worker when one is given. Cancellation is checked between sets.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from loguru import logger

from beatmap_exporter.core.output import log
from beatmap_exporter.core.worker import DatabaseWorker
from beatmap_exporter.domain.collections.export import export_collection_db
from beatmap_exporter.domain.library.models import Beatmap, BeatmapSet
from beatmap_exporter.domain.selection.engine import SelectionEngine
from beatmap_exporter.exceptions import CollectionDbError, TranscodeError

from .archive import export_beatmap_set
from .audio import Transcoder, export_audio, extract_audio
from .background import export_background, extract_backgrounds
from .formats import ExporterConfiguration, ExportFormat

# (success, message)
ExportReporter = Callable[[bool, str], None]


def _log_report(success: bool, message: str) -> None:
    log(message, "info" if success else "warning")


@dataclass
class ExportResult:
    """Outcome of one export run."""

    export_format: ExportFormat
    export_path: Path
    exported: int = 0
    discovered: int = 0
    failed: int = 0
    cancelled: bool = False
    set_count: int = 0  # beatmap sets queued for export

    def summary(self) -> str:
        unit = self.export_format.unit_name
        status = " (cancelled)" if self.cancelled else ""
        return f"Exported {self.exported}/{self.discovered} {unit} to {self.export_path}{status}."


class BeatmapExporter:
    """Exports the engine's current selection according to an ExporterConfiguration."""

    def __init__(
        self,
        engine: SelectionEngine,
        library_root: Union[str, Path],
        configuration: ExporterConfiguration,
        merge_collections: bool = True,
        collections_case_insensitive: bool = True,
        transcoder: Optional[Transcoder] = None,
        worker: Optional[DatabaseWorker] = None,
        report: Optional[ExportReporter] = None,
    ):
        self.engine = engine
        self.library_root = Path(library_root)
        self.configuration = configuration
        self.merge_collections = merge_collections
        self.collections_case_insensitive = collections_case_insensitive
        self._transcoder = transcoder
        self.worker = worker
        self.report = report or _log_report

    @property
    def transcoder(self) -> Transcoder:
        if self._transcoder is None:
            self._transcoder = Transcoder()
        return self._transcoder

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        if self.worker is not None:
            return self.worker.run(fn, *args)
        return fn(*args)

    def export(self, cancel_event: Optional[threading.Event] = None) -> ExportResult:
        """
        Export the current selection in the configured format.

        Args:
            cancel_event: When set, the export stops before the next beatmap set

        Returns:
            Counts of exported and discovered items
        """
        export_format = self.configuration.export_format
        export_dir = self.configuration.setup_export()
        result = ExportResult(export_format, self.configuration.full_path)
        logger.info(
            f"Starting {export_format.value} export of {self.engine.selected_set_count} beatmap sets to {export_dir}"
        )

        if export_format is ExportFormat.COLLECTION:
            self._export_collections(export_dir, result)
        else:
            self._export_sets(self.engine.selected_sets, export_dir, result, cancel_event)

        logger.info(result.summary())
        return result

    def export_single(
        self, beatmap_set: BeatmapSet, beatmaps: Optional[Sequence[Beatmap]] = None
    ) -> ExportResult:
        """
        Export one beatmap set regardless of the active filters.

        Args:
            beatmap_set: The set to export
            beatmaps: Difficulties of the set to include; all of them when omitted

        Raises:
            ValueError: If the configured format is collection.db, which always
                covers the whole selection
            InvariantViolation: If a beatmap doesn't belong to the set
        """
        export_format = self.configuration.export_format
        if export_format is ExportFormat.COLLECTION:
            raise ValueError("collection.db export always covers the whole selection")
        chosen = list(beatmap_set.beatmaps) if beatmaps is None else list(beatmaps)
        export_dir = self.configuration.setup_export()
        result = ExportResult(export_format, self.configuration.full_path)
        logger.info(
            f"Starting {export_format.value} export of beatmap set {beatmap_set.online_id} "
            f"({len(chosen)} difficulties) to {export_dir}"
        )
        with self.engine.selection_override(beatmap_set, chosen):
            self._export_sets([beatmap_set], export_dir, result)
        logger.info(result.summary())
        return result

    def _export_sets(
        self,
        beatmap_sets: Sequence[BeatmapSet],
        export_dir: Path,
        result: ExportResult,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        export_set = {
            ExportFormat.BEATMAP: self._export_beatmap_set,
            ExportFormat.AUDIO: self._export_set_audio,
            ExportFormat.BACKGROUND: self._export_set_backgrounds,
        }[result.export_format]
        result.set_count = len(beatmap_sets)
        for beatmap_set in beatmap_sets:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info("Export cancelled")
                break
            export_set(beatmap_set, export_dir, result)

    def _export_beatmap_set(self, beatmap_set, export_dir: Path, result: ExportResult) -> None:
        result.discovered += 1
        selected = self.engine.selected_beatmaps(beatmap_set)
        filename = beatmap_set.archive_filename(selected)
        try:
            self._call(
                export_beatmap_set,
                self.library_root,
                beatmap_set,
                selected,
                export_dir,
                self.configuration.compression,
            )
        except OSError as e:
            result.failed += 1
            self.report(False, f"Unable to export {filename} :: {e}")
            return
        result.exported += 1
        self.report(
            True,
            f"Exported beatmap set ({result.discovered}/{result.set_count}): {filename}",
        )

    def _export_set_audio(self, beatmap_set, export_dir: Path, result: ExportResult) -> None:
        selected = self.engine.selected_beatmaps(beatmap_set)
        for task in extract_audio(beatmap_set, selected):
            result.discovered += 1
            audio_file = task.metadata.audio_file
            if task.transcode_from is not None and not self.transcoder.available:
                self.report(
                    False,
                    f"Non-mp3 audio {task.output_filename} found and ffmpeg is not available, this audio will be skipped.",
                )
                continue

            # Tag failures surface after the worker call so they reach the console
            metadata_failures: List[Exception] = []

            notice = f" (transcode required from {task.transcode_from})" if task.transcode_from else ""
            try:
                output = self._call(
                    export_audio, self.library_root, task, export_dir, self.transcoder, metadata_failures.append
                )
            except TranscodeError as e:
                result.failed += 1
                self.report(False, f"Unable to transcode audio: {audio_file}. An error occurred :: {e}")
                continue
            except OSError as e:
                result.failed += 1
                self.report(False, f"Unable to export audio: {audio_file} :: {e}")
                continue
            for e in metadata_failures:
                self.report(False, f"Unable to set metadata for {task.output_filename} :: {e}. Exporting will continue.")
            if output is not None:
                result.exported += 1
                self.report(True, f"({result.discovered}/?) Exported {task.output_filename}{notice}")

    def _export_set_backgrounds(self, beatmap_set, export_dir: Path, result: ExportResult) -> None:
        selected = self.engine.selected_beatmaps(beatmap_set)
        for task in extract_backgrounds(beatmap_set, selected):
            result.discovered += 1
            try:
                output = self._call(export_background, self.library_root, task, export_dir)
            except OSError as e:
                result.failed += 1
                self.report(False, f"Unable to export background image {task.metadata.background_file} :: {e}")
                continue
            if output is not None:
                result.exported += 1
                self.report(True, f"({result.discovered}/?) Exported background image {task.output_filename}.")

    def _export_collections(self, export_dir: Path, result: ExportResult) -> None:
        membership = self.engine.collection_membership()
        result.discovered = len(membership)
        if self.engine.library.collections is None:
            self.report(False, "Collections could not be loaded from the library, nothing to export.")
            return
        try:
            path = self._call(
                export_collection_db,
                membership,
                export_dir,
                self.merge_collections,
                self.collections_case_insensitive,
            )
        except CollectionDbError as e:
            result.failed = len(membership)
            self.report(False, str(e))
            return
        result.exported = len(membership)
        self.report(True, f"Exported {len(membership)} collections to {path}")
