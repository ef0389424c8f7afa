"""Shared fixtures: a small in-memory beatmap library."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from beatmap_exporter.domain.library import build_library
from beatmap_exporter.domain.library.models import (
    Beatmap,
    BeatmapCollection,
    BeatmapMetadata,
    BeatmapSet,
    NamedFile,
)


def _make_set(online_id, difficulties, metadata, status=1, ruleset_id=0, date_added=None, files=None):
    set_id = uuid.uuid4()
    date_added = date_added or datetime.now(timezone.utc) - timedelta(days=30)
    beatmaps = tuple(
        Beatmap(
            id=uuid.uuid4(),
            set_id=set_id,
            hash=f"{md5}{'0' * 8}sha",
            md5_hash=md5,
            metadata=metadata,
            difficulty_name=f"Diff {stars}",
            star_rating=stars,
            length=metadata_length,
            bpm=bpm,
            status=status,
            ruleset_id=ruleset_id,
            set_online_id=online_id,
            date_added=date_added,
        )
        for md5, stars, metadata_length, bpm in difficulties
    )
    if files is None:
        files = tuple(NamedFile(f"{b.difficulty_name}.osu", b.hash) for b in beatmaps)
    return BeatmapSet(
        id=set_id,
        online_id=online_id,
        date_added=date_added,
        beatmaps=beatmaps,
        files=tuple(files),
        status=status,
    )


@pytest.fixture
def make_set():
    """Factory for beatmap sets: make_set(online_id, [(md5, stars, length_ms, bpm), ...], metadata)."""
    return _make_set


@pytest.fixture
def beatmap_sets():
    """Three sets: 10 (ranked osu), 20 (graveyard mania), 30 (loved taiko)."""
    camellia = BeatmapMetadata(
        title="Exit This Earth's Atomosphere",
        artist="Camellia",
        author="RLC",
        tags="touhou electronic",
        audio_file="audio.mp3",
        background_file="bg.jpg",
    )
    nanahira = BeatmapMetadata(
        title="Bassdrop Freaks",
        artist="nanahira",
        author="Nathan",
        tags=None,
        audio_file="song.ogg",
        background_file=None,
    )
    taiko = BeatmapMetadata(
        title="Ghost",
        artist="Camellia",
        author="Sotarks",
        tags="drum",
        audio_file="ghost.mp3",
        background_file="ghost.png",
    )
    return [
        _make_set(10, [("a1", 5.0, 120000, 180), ("a2", 6.3, 120000, 180), ("a3", 7.1, 120000, 180)], camellia),
        _make_set(20, [("b1", 2.0, 60000, 120), ("b2", 4.0, 60000, 120)], nanahira, status=-3, ruleset_id=3),
        _make_set(30, [("c1", 6.5, 200000, 200)], taiko, status=4, ruleset_id=1),
    ]


@pytest.fixture
def collections():
    return [
        BeatmapCollection("Favorites", ("a2", "c1")),
        BeatmapCollection("Stream", ("b1",)),
        BeatmapCollection("empty", ()),
    ]


@pytest.fixture
def library(beatmap_sets, collections):
    return build_library(beatmap_sets, collections, case_insensitive=True)
