"""
Tests for audio export: task extraction, ffmpeg transcoding and ID3 tagging.
"""

import io
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from mutagen.id3 import ID3, TIT2

from beatmap_exporter.domain.export import Transcoder, export_audio, extract_audio, tag_mp3
from beatmap_exporter.domain.library.models import BeatmapMetadata
from beatmap_exporter.exceptions import TranscodeError


@pytest.fixture
def no_ffmpeg() -> Transcoder:
    """Transcoder that finds no ffmpeg on PATH."""
    with patch("beatmap_exporter.domain.export.audio.shutil.which", return_value=None):
        return Transcoder()


@pytest.fixture
def mp3_file(tmp_path):
    path = tmp_path / "song.mp3"
    path.write_bytes(b"\xff\xfb\x90\x00" + b"\x00" * 413)
    return path


class TestExtractAudio:
    """Test audio task extraction."""

    def test_one_task_per_unique_audio(self, stocked_sets):
        beatmap_set = stocked_sets[0]
        tasks = extract_audio(beatmap_set, beatmap_set.beatmaps)
        assert len(tasks) == 1
        assert tasks[0].transcode_from is None
        assert tasks[0].output_filename == "Camellia - Exit This Earth's Atomosphere (10).mp3"

    def test_non_mp3_needs_transcode(self, stocked_sets):
        beatmap_set = stocked_sets[1]
        (task,) = extract_audio(beatmap_set, beatmap_set.beatmaps)
        assert task.transcode_from == ".ogg"

    def test_no_selection(self, stocked_sets):
        assert extract_audio(stocked_sets[0], []) == []


class TestTranscoder:
    """Test ffmpeg invocation."""

    def test_unavailable(self, no_ffmpeg, tmp_path):
        assert not no_ffmpeg.available
        with pytest.raises(TranscodeError, match="not available"):
            no_ffmpeg.transcode_mp3(io.BytesIO(b"audio"), tmp_path / "out.mp3")

    def test_command(self, tmp_path):
        transcoder = Transcoder(ffmpeg_path="/usr/bin/ffmpeg")
        with patch("beatmap_exporter.domain.export.audio.subprocess.run") as run:
            transcoder.transcode_mp3(io.BytesIO(b"audio"), tmp_path / "out.mp3")

        cmd = run.call_args.args[0]
        assert cmd[0] == "/usr/bin/ffmpeg"
        assert "-n" in cmd
        assert cmd[cmd.index("-codec:a") + 1] == "libmp3lame"
        assert cmd[-1] == str(tmp_path / "out.mp3")
        assert run.call_args.kwargs["input"] == b"audio"
        assert run.call_args.kwargs["check"] is True

    def test_ffmpeg_failure(self, tmp_path):
        transcoder = Transcoder(ffmpeg_path="/usr/bin/ffmpeg")
        error = subprocess.CalledProcessError(1, ["ffmpeg"], stderr=b"Invalid data found when processing input")
        with patch("beatmap_exporter.domain.export.audio.subprocess.run", side_effect=error):
            with pytest.raises(TranscodeError, match="Invalid data found"):
                transcoder.transcode_mp3(io.BytesIO(b"audio"), tmp_path / "out.mp3")

    def test_missing_executable(self, tmp_path):
        transcoder = Transcoder(ffmpeg_path=str(tmp_path / "no-ffmpeg"))
        with pytest.raises(TranscodeError):
            transcoder.transcode_mp3(io.BytesIO(b"audio"), tmp_path / "out.mp3")


class TestTagMp3:
    """Test ID3 tagging with mutagen."""

    def test_writes_tags(self, mp3_file):
        metadata = BeatmapMetadata(
            title="Ghost", title_unicode="ゴースト", artist="Camellia", tags="drum", background_file="bg.png"
        )
        tag_mp3(mp3_file, metadata, 30, cover=b"\x89PNG")

        tags = ID3(mp3_file)
        assert tags["TIT2"].text == ["ゴースト"]
        assert tags["TPE1"].text == ["Camellia"]
        assert tags.getall("COMM")[0].text == ["30 drum"]
        (cover,) = tags.getall("APIC")
        assert cover.mime == "image/png"
        assert cover.data == b"\x89PNG"

    def test_keeps_existing_title(self, mp3_file):
        existing = ID3()
        existing["TIT2"] = TIT2(encoding=3, text="Original Title")
        existing.save(mp3_file)

        tag_mp3(mp3_file, BeatmapMetadata(title="Beatmap Title", artist="A"), 1)
        assert ID3(mp3_file)["TIT2"].text == ["Original Title"]

    def test_comment_without_tags(self, mp3_file):
        tag_mp3(mp3_file, BeatmapMetadata(title="T", artist="A", tags=None), 7)
        assert ID3(mp3_file).getall("COMM")[0].text == ["7"]


class TestExportAudio:
    """Test exporting a single audio file."""

    def test_copies_and_tags_mp3(self, library_root, stocked_sets, tmp_path, no_ffmpeg):
        beatmap_set = stocked_sets[0]
        (task,) = extract_audio(beatmap_set, beatmap_set.beatmaps)
        output = export_audio(library_root, task, tmp_path, no_ffmpeg)

        assert output == tmp_path / task.output_filename
        tags = ID3(output)
        assert tags["TIT2"].text == ["Exit This Earth's Atomosphere"]
        assert tags.getall("APIC")[0].mime == "image/jpeg"

    def test_never_overwrites(self, library_root, stocked_sets, tmp_path, no_ffmpeg):
        beatmap_set = stocked_sets[2]
        (task,) = extract_audio(beatmap_set, beatmap_set.beatmaps)
        export_audio(library_root, task, tmp_path, no_ffmpeg)
        with pytest.raises(FileExistsError):
            export_audio(library_root, task, tmp_path, no_ffmpeg)

    def test_transcodes_non_mp3(self, library_root, stocked_sets, tmp_path):
        beatmap_set = stocked_sets[1]
        (task,) = extract_audio(beatmap_set, beatmap_set.beatmaps)
        transcoder = MagicMock()
        transcoder.transcode_mp3.side_effect = lambda source, destination: destination.write_bytes(source.read())

        output = export_audio(library_root, task, tmp_path, transcoder)
        transcoder.transcode_mp3.assert_called_once()
        assert output.name == "nanahira - Bassdrop Freaks (20).mp3"

    def test_tag_failure_is_reported_not_raised(self, library_root, stocked_sets, tmp_path, no_ffmpeg):
        beatmap_set = stocked_sets[0]
        (task,) = extract_audio(beatmap_set, beatmap_set.beatmaps)
        failures = []
        with patch("beatmap_exporter.domain.export.audio.tag_mp3", side_effect=ValueError("bad tags")):
            output = export_audio(library_root, task, tmp_path, no_ffmpeg, failures.append)
        assert output.exists()
        assert [str(e) for e in failures] == ["bad tags"]

    def test_audio_not_in_set(self, library_root, stocked_sets, tmp_path, no_ffmpeg):
        beatmap_set = stocked_sets[0]
        (task,) = extract_audio(beatmap_set, beatmap_set.beatmaps)
        task = task._replace(metadata=BeatmapMetadata(audio_file="missing.mp3"))
        assert export_audio(library_root, task, tmp_path, no_ffmpeg) is None
