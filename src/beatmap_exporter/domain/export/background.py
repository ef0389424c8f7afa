"""Background image export: unique backgrounds of the selected beatmaps, original format."""

import shutil
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Union

from beatmap_exporter.core.database import open_named_file
from beatmap_exporter.domain.library.models import Beatmap, BeatmapMetadata, BeatmapSet


class BackgroundExportTask(NamedTuple):
    beatmap_set: BeatmapSet
    metadata: BeatmapMetadata
    output_filename: str


def extract_backgrounds(beatmap_set: BeatmapSet, selected: Sequence[Beatmap]) -> List[BackgroundExportTask]:
    """Background export tasks for each unique background among the selected beatmaps."""
    tasks = []
    seen = set()
    for beatmap in selected:
        metadata = beatmap.metadata
        if metadata.background_file is None or metadata.background_file in seen:
            continue
        seen.add(metadata.background_file)
        tasks.append(
            BackgroundExportTask(
                beatmap_set, metadata, metadata.output_background_filename(beatmap_set.online_id)
            )
        )
    return tasks


def export_background(
    library_root: Union[str, Path], task: BackgroundExportTask, export_dir: Union[str, Path]
) -> Optional[Path]:
    """
    Copy one background image to the export directory.

    Returns:
        Path of the exported file, or None if the set has no such file

    Raises:
        FileExistsError: If the output file already exists
        OSError: If the image can't be read or written
    """
    beatmap_set, metadata, output_filename = task
    background = open_named_file(library_root, beatmap_set, metadata.background_file)
    if background is None:
        return None

    output = Path(export_dir) / output_filename
    with background, open(output, "xb") as destination:
        shutil.copyfileobj(background, destination)
    return output
