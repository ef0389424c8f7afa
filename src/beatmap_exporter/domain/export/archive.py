"""
.osz archive export.

An .osz is a zip of every file of a beatmap set. Difficulty files of
beatmaps that aren't selected are left out.
"""

import shutil
import zipfile
from pathlib import Path
from typing import Sequence, Union

from loguru import logger

from beatmap_exporter.core.database import open_hashed_file
from beatmap_exporter.domain.library.models import Beatmap, BeatmapSet


def export_beatmap_set(
    library_root: Union[str, Path],
    beatmap_set: BeatmapSet,
    selected: Sequence[Beatmap],
    export_dir: Union[str, Path],
    compression: int = zipfile.ZIP_STORED,
) -> Path:
    """
    Write one beatmap set, with only its selected difficulties, as an .osz archive.

    Args:
        library_root: Library directory containing the hashed files/ store
        beatmap_set: Set to export
        selected: Selected difficulties of the set
        export_dir: Directory to write the archive to
        compression: zipfile.ZIP_STORED or zipfile.ZIP_DEFLATED

    Returns:
        Path of the written archive

    Raises:
        FileExistsError: If an archive with the same name already exists
        OSError: If a file can't be read from the store or the archive can't be written
    """
    selected_ids = {b.id for b in selected}
    excluded_hashes = {b.hash for b in beatmap_set.beatmaps if b.id not in selected_ids}

    output = Path(export_dir) / beatmap_set.archive_filename(list(selected))
    compresslevel = 9 if compression == zipfile.ZIP_DEFLATED else None

    # "x" refuses to overwrite an earlier export
    with open(output, "xb") as export:
        try:
            with zipfile.ZipFile(export, "w", compression=compression, compresslevel=compresslevel) as osz:
                for named_file in beatmap_set.files:
                    if named_file.hash in excluded_hashes:
                        continue
                    with open_hashed_file(library_root, named_file.hash) as source:
                        with osz.open(named_file.filename, "w") as entry:
                            shutil.copyfileobj(source, entry)
        except BaseException:
            export.close()
            output.unlink(missing_ok=True)
            raise

    logger.debug(
        f"Wrote {output.name}: {len(selected)}/{len(beatmap_set.beatmaps)} difficulties, "
        f"{len(excluded_hashes)} excluded"
    )
    return output
