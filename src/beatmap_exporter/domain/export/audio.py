"""
Audio export: one tagged .mp3 per unique audio file of the selected beatmaps.

Audio that isn't already .mp3 is transcoded with ffmpeg. Tags are written
with mutagen: title, artist, a comment with the online id and beatmap tags,
and the beatmap background as front cover.
"""

import mimetypes
import shutil
import subprocess
from pathlib import Path
from typing import BinaryIO, Callable, List, NamedTuple, Optional, Sequence, Union

from loguru import logger
from mutagen.id3 import APIC, COMM, ID3, TIT2, TPE1, ID3NoHeaderError, PictureType

from beatmap_exporter.core.database import open_named_file
from beatmap_exporter.domain.library.models import Beatmap, BeatmapMetadata, BeatmapSet
from beatmap_exporter.exceptions import TranscodeError

MetadataFailureCallback = Callable[[Exception], None]


class AudioExportTask(NamedTuple):
    """One audio file to export from a beatmap set."""

    beatmap_set: BeatmapSet
    metadata: BeatmapMetadata
    transcode_from: Optional[str]  # source extension when not already .mp3
    output_filename: str


class Transcoder:
    """Converts audio to mp3 with an ffmpeg executable found on PATH."""

    def __init__(self, ffmpeg_path: Optional[str] = None, timeout: float = 300):
        self.ffmpeg_path = ffmpeg_path or shutil.which("ffmpeg")
        self.timeout = timeout
        if self.ffmpeg_path:
            logger.info(f"ffmpeg found at {self.ffmpeg_path}, non-mp3 audio will be transcoded")
        else:
            logger.info("ffmpeg not found, non-mp3 audio will be skipped on audio export")

    @property
    def available(self) -> bool:
        return self.ffmpeg_path is not None

    def transcode_mp3(self, source: BinaryIO, destination: Path) -> None:
        """
        Transcode an audio stream to an mp3 file. Never overwrites.

        Raises:
            TranscodeError: If ffmpeg is unavailable or the conversion fails
        """
        if not self.available:
            raise TranscodeError("Audio transcoder is not available, ffmpeg was not found")

        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-n",  # Don't overwrite existing output
            "-i",
            "pipe:0",
            "-codec:a",
            "libmp3lame",
            "-q:a",
            "0",  # Highest quality VBR
            str(destination),
        ]
        try:
            subprocess.run(
                cmd, input=source.read(), capture_output=True, check=True, timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace").strip() if e.stderr else ""
            raise TranscodeError(f"ffmpeg error: {stderr or e}") from e
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(f"Conversion timed out (>{self.timeout:.0f}s)") from e
        except OSError as e:
            raise TranscodeError(str(e)) from e


def extract_audio(beatmap_set: BeatmapSet, selected: Sequence[Beatmap]) -> List[AudioExportTask]:
    """Audio export tasks for each unique audio file among the selected beatmaps."""
    tasks = []
    seen = set()
    for beatmap in selected:
        metadata = beatmap.metadata
        if metadata.audio_file in seen:
            continue
        seen.add(metadata.audio_file)

        extension = Path(metadata.audio_file).suffix
        transcode_from = None if extension.lower() == ".mp3" else extension
        tasks.append(
            AudioExportTask(
                beatmap_set,
                metadata,
                transcode_from,
                metadata.output_audio_filename(beatmap_set.online_id),
            )
        )
    return tasks


def tag_mp3(path: Path, metadata: BeatmapMetadata, online_id: int, cover: Optional[bytes] = None) -> None:
    """
    Write ID3 tags to an exported mp3, keeping title, artist and cover already present.

    Raises:
        mutagen.MutagenError: If the tags can't be written
    """
    try:
        tags = ID3(path)
    except ID3NoHeaderError:
        tags = ID3()

    if not tags.getall("TIT2"):
        tags["TIT2"] = TIT2(encoding=3, text=metadata.title_unicode or metadata.title)
    if not tags.getall("TPE1"):
        tags["TPE1"] = TPE1(encoding=3, text=metadata.artist_unicode or metadata.artist)
    tags.setall("COMM", [COMM(encoding=3, lang="eng", desc="", text=f"{online_id} {metadata.tags or ''}".strip())])

    if cover and not tags.getall("APIC"):
        mime, _ = mimetypes.guess_type(metadata.background_file or "")
        tags.add(
            APIC(
                encoding=3,
                mime=mime or "image/jpeg",
                type=PictureType.COVER_FRONT,
                desc="Background",
                data=cover,
            )
        )

    tags.save(path)


def export_audio(
    library_root: Union[str, Path],
    task: AudioExportTask,
    export_dir: Union[str, Path],
    transcoder: Transcoder,
    on_metadata_failure: Optional[MetadataFailureCallback] = None,
) -> Optional[Path]:
    """
    Export a single audio file, transcoding and tagging it.

    Tag failures are reported through on_metadata_failure and don't fail the export.

    Returns:
        Path of the exported file, or None if the set has no such audio file

    Raises:
        TranscodeError: If the audio needs transcoding and it fails
        FileExistsError: If the output file already exists
        OSError: If the audio can't be read or written
    """
    beatmap_set, metadata, transcode_from, output_filename = task
    output = Path(export_dir) / output_filename

    audio = open_named_file(library_root, beatmap_set, metadata.audio_file)
    if audio is None:
        logger.warning(f"Audio file {metadata.audio_file} is not part of beatmap set {beatmap_set.online_id}")
        return None

    with audio:
        if transcode_from is not None:
            transcoder.transcode_mp3(audio, output)
        else:
            with open(output, "xb") as destination:
                shutil.copyfileobj(audio, destination)

    try:
        cover = None
        if metadata.background_file:
            background = open_named_file(library_root, beatmap_set, metadata.background_file)
            if background is not None:
                with background:
                    cover = background.read()
        tag_mp3(output, metadata, beatmap_set.online_id, cover)
    except Exception as e:
        logger.warning(f"Unable to set metadata for {output_filename}: {e}")
        if on_metadata_failure is not None:
            on_metadata_failure(e)

    return output
