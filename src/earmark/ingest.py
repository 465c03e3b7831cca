"""Turn a directory of audio files into an ordered list of chapters."""

from __future__ import annotations

import functools
import logging
import math
from pathlib import Path
from typing import Callable, Iterable, Sequence
from typing_extensions import TypeAlias

from earmark.chapter import Chapter
from earmark.errors import (
    EmptyLibraryError,
    LibraryScanError,
    MissingExtensionError,
    MissingFilesError,
)
from earmark.metadata import (
    ChapterMarker,
    ProbeResult,
    dedupe_markers,
    discover,
    read_chapter_markers,
)

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".flac",
    ".m4a",
    ".m4b",
    ".mp3",
    ".mp4",
    ".ogg",
    ".opus",
    ".wav",
}
CONTAINER_EXTENSIONS = {".m4a", ".m4b"}

ProbeFn: TypeAlias = Callable[[Path], ProbeResult]
MarkerFn: TypeAlias = Callable[[Path], Sequence[ChapterMarker]]


def scan_directory(directory: Path) -> list[Path]:
    """Return the supported audio files directly inside ``directory``.

    Files without any extension are rejected rather than skipped.
    """
    try:
        entries = sorted(path for path in directory.iterdir() if path.is_file())
    except OSError as exc:
        raise LibraryScanError(directory, str(exc)) from exc
    found: list[Path] = []
    for path in entries:
        if not path.suffix:
            raise MissingExtensionError(path)
        if is_supported(path):
            found.append(path)
    return found


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def is_container(path: Path) -> bool:
    return path.suffix.lower() in CONTAINER_EXTENSIONS


def split_container(
    path: Path, duration: int, markers: Iterable[ChapterMarker]
) -> list[Chapter]:
    """Carve one chapter per embedded marker out of a container file.

    Each chapter runs until the next marker starts; the last one runs to the
    end of the file. Without markers the whole file is a single chapter.
    """
    unique = dedupe_markers(markers)
    if not unique:
        return [Chapter.whole_file(path, duration)]
    chapters = [
        Chapter(
            filename=path.name,
            length=0,
            start_position=math.ceil(marker.start),
            m4_title=marker.title,
            m4_tracknumber=ordinal,
        )
        for ordinal, marker in enumerate(unique)
    ]
    for current, following in zip(chapters, chapters[1:]):
        current.length = max(
            0, following.get_start_position() - current.get_start_position()
        )
    last = chapters[-1]
    last.length = max(0, duration - last.get_start_position())
    return chapters


def chapters_from_files(
    paths: Iterable[Path],
    *,
    probe: ProbeFn = discover,
    read_markers: MarkerFn = read_chapter_markers,
) -> list[Chapter]:
    chapters: list[Chapter] = []
    for path in paths:
        result = probe(path)
        if is_container(path):
            chapters.extend(
                split_container(path, result.duration_seconds, read_markers(path))
            )
        else:
            chapters.append(Chapter.whole_file(path, result.duration_seconds))
    return chapters


def probe_tags(directory: Path, chapters: Iterable[Chapter], probe: ProbeFn) -> None:
    """Refresh the probed tags of every chapter from the files on disk."""
    for chapter in chapters:
        chapter.apply_tags(probe(directory / chapter.filename).tags)


def _cmp(left: object, right: object) -> int:
    return (left > right) - (left < right)  # type: ignore[operator]


def compare_chapters(left: Chapter, right: Chapter) -> int:
    """Order by track number, falling back to title or filename.

    Container tracks sharing a track number are ordered by their position
    inside the container.
    """
    left_track = left.tags.track_number
    right_track = right.tags.track_number
    if left_track is not None and right_track is not None:
        if left_track != right_track:
            return _cmp(left_track, right_track)
        if left.m4_tracknumber is not None and right.m4_tracknumber is not None:
            return _cmp(left.m4_tracknumber, right.m4_tracknumber)
        return 0
    left_name = left.tags.title if left.tags.title is not None else left.filename
    right_name = right.tags.title if right.tags.title is not None else right.filename
    return _cmp(left_name, right_name)


def sort_chapters(chapters: list[Chapter]) -> None:
    chapters.sort(key=functools.cmp_to_key(compare_chapters))


def _memoized(probe: ProbeFn) -> ProbeFn:
    return functools.lru_cache(maxsize=None)(probe)


def ingest_directory(
    directory: Path,
    *,
    probe: ProbeFn = discover,
    read_markers: MarkerFn = read_chapter_markers,
) -> list[Chapter]:
    """Build the sorted chapter list of a directory seen for the first time."""
    files = scan_directory(directory)
    if not files:
        raise EmptyLibraryError(directory)
    probe = _memoized(probe)
    chapters = chapters_from_files(files, probe=probe, read_markers=read_markers)
    probe_tags(directory, chapters, probe)
    sort_chapters(chapters)
    logger.info("Ingested %d chapters from %d files", len(chapters), len(files))
    return chapters


def merge_chapters(
    directory: Path,
    saved: list[Chapter],
    snapshot_path: Path,
    *,
    probe: ProbeFn = discover,
    read_markers: MarkerFn = read_chapter_markers,
) -> list[Chapter]:
    """Combine saved chapters with whatever is on disk now.

    Refuses to merge when a saved chapter's file has vanished, so that its
    bookmarks are never dropped silently. New files are appended, every
    chapter is re-probed and the whole list is re-sorted in place.
    """
    files = scan_directory(directory)
    on_disk = {path.name for path in files}
    missing = {
        directory / chapter.filename
        for chapter in saved
        if chapter.filename not in on_disk
    }
    if missing:
        raise MissingFilesError(snapshot_path, missing)
    known = {chapter.filename for chapter in saved}
    new_files = [path for path in files if path.name not in known]
    probe = _memoized(probe)
    saved.extend(chapters_from_files(new_files, probe=probe, read_markers=read_markers))
    probe_tags(directory, saved, probe)
    sort_chapters(saved)
    if new_files:
        logger.info("Added %d new files to the library", len(new_files))
    return saved
