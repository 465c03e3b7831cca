"""Library aggregate and its on-disk snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, NamedTuple, Optional

from earmark.bookmarks import Bookmark
from earmark.chapter import Chapter
from earmark.errors import EmptyLibraryError, SnapshotError
from earmark.ingest import MarkerFn, ProbeFn, ingest_directory, merge_chapters
from earmark.metadata import discover, read_chapter_markers

logger = logging.getLogger(__name__)

SNAPSHOT_NAME = "earmark_data.json"
DEFAULT_SPEED = 1.0
DEFAULT_VOLUME = 0.5
MIN_SPEED = 0.01
MAX_SPEED = 8.0


class BookmarkRef(NamedTuple):
    """A bookmark together with where it lives in the library."""

    chapter_index: int
    bookmark_index: int
    chapter: Chapter
    bookmark: Bookmark


@dataclass
class Library:
    """One directory's chapters plus play settings and the last played chapter."""

    path: Path
    chapters: list[Chapter] = field(default_factory=list)
    speed: float = DEFAULT_SPEED
    volume: float = DEFAULT_VOLUME
    last_chapter: int = 0
    antispoiler: bool = False

    def __post_init__(self) -> None:
        self.speed = _clamp_speed(self.speed)
        self.volume = _clamp_volume(self.volume)
        self.clamp_last_chapter()

    @property
    def chaptercount(self) -> int:
        return len(self.chapters)

    @property
    def snapshot_path(self) -> Path:
        return self.path / SNAPSHOT_NAME

    def is_empty(self) -> bool:
        return not self.chapters

    def clamp_last_chapter(self) -> None:
        if not self.chapters:
            self.last_chapter = 0
            return
        self.last_chapter = max(0, min(self.last_chapter, len(self.chapters) - 1))

    def current(self) -> Chapter:
        return self.chapters[self.last_chapter]

    def set_last_chapter(self, index: int) -> Chapter:
        self.last_chapter = index
        self.clamp_last_chapter()
        return self.current()

    def has_next(self) -> bool:
        return self.last_chapter + 1 < len(self.chapters)

    def has_prev(self) -> bool:
        return self.last_chapter > 0

    def set_speed(self, speed: float) -> float:
        self.speed = _clamp_speed(speed)
        return self.speed

    def set_volume(self, volume: float) -> float:
        self.volume = _clamp_volume(volume)
        return self.volume

    def chapter_path(self, chapter: Chapter) -> Path:
        return self.path / chapter.filename

    def iter_bookmarks(self) -> Iterator[BookmarkRef]:
        """Yield every bookmark of every chapter, in playlist order."""
        for chapter_index, chapter in enumerate(self.chapters):
            for bookmark_index, bookmark in enumerate(chapter.bookmarks):
                yield BookmarkRef(chapter_index, bookmark_index, chapter, bookmark)

    def bookmark_count(self) -> int:
        return sum(len(chapter.bookmarks) for chapter in self.chapters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "speed": self.speed,
            "volume": self.volume,
            "last_chapter": self.last_chapter,
            "antispoiler": self.antispoiler,
            "chapters": [chapter.to_dict() for chapter in self.chapters],
        }

    @classmethod
    def from_dict(cls, path: Path, raw: dict[str, Any]) -> "Library":
        raw_chapters = raw.get("chapters")
        if not isinstance(raw_chapters, list):
            raw_chapters = []
        chapters = [
            Chapter.from_dict(item) for item in raw_chapters if isinstance(item, dict)
        ]
        last_chapter = raw.get("last_chapter", 0)
        if isinstance(last_chapter, bool) or not isinstance(last_chapter, int):
            last_chapter = 0
        antispoiler = raw.get("antispoiler", False)
        return cls(
            path=path,
            chapters=chapters,
            speed=_get_float(raw, "speed", DEFAULT_SPEED),
            volume=_get_float(raw, "volume", DEFAULT_VOLUME),
            last_chapter=last_chapter,
            antispoiler=antispoiler if isinstance(antispoiler, bool) else False,
        )

    def save(self) -> Path:
        """Write the snapshot atomically, replacing any previous one."""
        path = self.snapshot_path
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        os.replace(temp_path, path)
        logger.info("Saved library snapshot to %s", path)
        return path

    @classmethod
    def load(cls, path: Path) -> "Library":
        """Read the snapshot of the library at ``path`` without touching the audio."""
        snapshot = path / SNAPSHOT_NAME
        try:
            raw = json.loads(snapshot.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SnapshotError(snapshot, str(exc)) from exc
        if not isinstance(raw, dict):
            raise SnapshotError(snapshot, "expected a JSON object")
        try:
            return cls.from_dict(path, raw)
        except ValueError as exc:
            raise SnapshotError(snapshot, str(exc)) from exc


def open_library(
    path: Path,
    *,
    probe: ProbeFn = discover,
    read_markers: MarkerFn = read_chapter_markers,
) -> Library:
    """Open the library in ``path``, merging with its snapshot when there is one."""
    if not (path / SNAPSHOT_NAME).is_file():
        chapters = ingest_directory(path, probe=probe, read_markers=read_markers)
        logger.info("Created a new library for %s", path)
        return Library(path=path, chapters=chapters)
    library = Library.load(path)
    current: Optional[Chapter] = library.current() if library.chapters else None
    merge_chapters(
        path,
        library.chapters,
        library.snapshot_path,
        probe=probe,
        read_markers=read_markers,
    )
    if library.is_empty():
        raise EmptyLibraryError(path)
    if current is not None:
        library.last_chapter = _index_of(library.chapters, current)
    library.clamp_last_chapter()
    logger.info("Opened library %s with %d chapters", path, library.chaptercount)
    return library


def _index_of(chapters: list[Chapter], chapter: Chapter) -> int:
    for index, candidate in enumerate(chapters):
        if candidate is chapter:
            return index
    return 0


def _get_float(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def _clamp_speed(speed: float) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, speed))


def _clamp_volume(volume: float) -> float:
    return max(0.0, min(1.0, volume))
