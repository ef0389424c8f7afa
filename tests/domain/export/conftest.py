"""Fixtures for export tests: a library whose files exist in a hashed store."""

from dataclasses import replace

import pytest

from beatmap_exporter.core.database import hashed_file_path
from beatmap_exporter.domain.library import build_library
from beatmap_exporter.domain.library.models import NamedFile

# MPEG-1 Layer III frame header followed by padding
MP3_BYTES = b"\xff\xfb\x90\x00" + b"\x00" * 413
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16 + b"\xff\xd9"


def _media_files(beatmap_set):
    metadata = beatmap_set.metadata
    files = [NamedFile(metadata.audio_file, f"audio{beatmap_set.online_id}")]
    if metadata.background_file:
        files.append(NamedFile(metadata.background_file, f"image{beatmap_set.online_id}"))
    return files


@pytest.fixture
def library_root(tmp_path):
    return tmp_path / "osu"


@pytest.fixture
def stocked_sets(library_root, beatmap_sets):
    """Fixture sets with audio and background files, all present in the file store."""
    stocked = []
    for beatmap_set in beatmap_sets:
        stocked_set = replace(beatmap_set, files=beatmap_set.files + tuple(_media_files(beatmap_set)))
        for named_file in stocked_set.files:
            path = hashed_file_path(library_root, named_file.hash)
            path.parent.mkdir(parents=True, exist_ok=True)
            if named_file.filename.endswith((".mp3", ".ogg")):
                path.write_bytes(MP3_BYTES)
            elif named_file.filename.endswith((".jpg", ".png")):
                path.write_bytes(JPEG_BYTES)
            else:
                path.write_bytes(f"osu file format v14\n{named_file.filename}".encode())
        stocked.append(stocked_set)
    return stocked


@pytest.fixture
def stocked_library(stocked_sets, collections):
    return build_library(stocked_sets, collections, case_insensitive=True)
