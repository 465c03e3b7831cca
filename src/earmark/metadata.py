"""Audio probing helpers: duration, descriptive tags and embedded chapter markers."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterable, Optional

from earmark.errors import ProbeError

logger = logging.getLogger(__name__)

_TITLE_KEYS = ("title", "TITLE", "TIT2", "\xa9nam")
_ALBUM_KEYS = ("album", "ALBUM", "TALB", "\xa9alb")
_ARTIST_KEYS = ("artist", "ARTIST", "TPE1", "TPE2", "\xa9ART", "aART")
_DESCRIPTION_KEYS = ("description", "DESCRIPTION", "comment", "COMMENT", "desc", "\xa9cmt")
_TRACK_NUMBER_KEYS = ("tracknumber", "TRACKNUMBER", "TRCK", "trkn")
_TRACK_COUNT_KEYS = ("tracktotal", "TRACKTOTAL", "totaltracks", "TOTALTRACKS")


@dataclass(frozen=True)
class TrackTags:
    title: Optional[str] = None
    album: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None
    track_number: Optional[int] = None
    track_count: Optional[int] = None


@dataclass(frozen=True)
class ProbeResult:
    duration_seconds: int
    tags: TrackTags


@dataclass(frozen=True)
class ChapterMarker:
    """A named track marker embedded in a container file."""

    title: str
    start: float


def _extract_text(value: object | None) -> str | None:
    if value is None:
        return None
    if hasattr(value, "text"):
        value = getattr(value, "text")
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    if isinstance(value, bytes):
        text = value.decode("utf-8", errors="replace")
    else:
        text = str(value)
    text = text.strip()
    return text or None


def _read_raw(tags: object | None, keys: tuple[str, ...]) -> object | None:
    if tags is None:
        return None
    getter = getattr(tags, "get", None)
    if getter is None:
        return None
    for key in keys:
        try:
            value = getter(key)
        except (KeyError, ValueError):
            continue
        if value:
            return value
    return None


def _read_tag(tags: object | None, keys: tuple[str, ...]) -> str | None:
    return _extract_text(_read_raw(tags, keys))


def _parse_int(text: str | None) -> Optional[int]:
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _read_track_pair(value: object | None) -> tuple[Optional[int], Optional[int]]:
    """Split ``"3/12"``, ``["3"]`` or MP4's ``[(3, 12)]`` into number and count."""
    if value is None:
        return None, None
    if isinstance(value, list) and value and isinstance(value[0], tuple):
        pair = value[0]
        number = pair[0] if len(pair) > 0 and pair[0] else None
        count = pair[1] if len(pair) > 1 and pair[1] else None
        return number, count
    text = _extract_text(value)
    if text is None:
        return None, None
    number_text, _, count_text = text.partition("/")
    return _parse_int(number_text.strip()), _parse_int(count_text.strip())


def read_tags(tags: object | None) -> TrackTags:
    """Map a mutagen tag container onto :class:`TrackTags`."""
    track_number, track_count = _read_track_pair(_read_raw(tags, _TRACK_NUMBER_KEYS))
    if track_count is None:
        track_count = _parse_int(_read_tag(tags, _TRACK_COUNT_KEYS))
    return TrackTags(
        title=_read_tag(tags, _TITLE_KEYS),
        album=_read_tag(tags, _ALBUM_KEYS),
        artist=_read_tag(tags, _ARTIST_KEYS),
        description=_read_tag(tags, _DESCRIPTION_KEYS),
        track_number=track_number,
        track_count=track_count,
    )


def discover(path: Path) -> ProbeResult:
    """Probe ``path`` for its duration and descriptive tags."""
    from mutagen import File as MutagenFile
    from mutagen import MutagenError

    try:
        audio = MutagenFile(path)
    except (MutagenError, OSError) as exc:
        raise ProbeError(path, str(exc)) from exc
    if not audio:
        raise ProbeError(path, "unrecognised audio format")
    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    if length is None:
        raise ProbeError(path, "duration unavailable")
    return ProbeResult(
        duration_seconds=max(0, int(length)),
        tags=read_tags(getattr(audio, "tags", None)),
    )


def dedupe_markers(markers: Iterable[ChapterMarker]) -> list[ChapterMarker]:
    """Drop repeated ``(title, start)`` pairs, keeping the first occurrence.

    Some MP4 chapter tables list every chapter twice.
    """
    seen: set[tuple[str, float]] = set()
    unique: list[ChapterMarker] = []
    for marker in markers:
        key = (marker.title, marker.start)
        if key in seen:
            continue
        seen.add(key)
        unique.append(marker)
    return unique


def read_chapter_markers(path: Path) -> list[ChapterMarker]:
    """Return the de-duplicated chapter markers of an MP4 container."""
    from mutagen import MutagenError
    from mutagen.mp4 import MP4

    try:
        audio = MP4(path)
    except (MutagenError, OSError) as exc:
        raise ProbeError(path, str(exc)) from exc
    chapters = getattr(audio, "chapters", None) or []
    markers = [
        ChapterMarker(title=str(chapter.title or ""), start=float(chapter.start))
        for chapter in chapters
    ]
    unique = dedupe_markers(markers)
    if len(unique) != len(markers):
        logger.info(
            "Dropped %d duplicate chapter markers in %s",
            len(markers) - len(unique),
            path.name,
        )
    return unique
