"""Chapter modeling: one playable unit of a library."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from pathlib import Path
from typing import Any, Optional

from earmark.bookmarks import Bookmark
from earmark.metadata import TrackTags
from earmark.timefmt import format_time


@dataclass
class Chapter:
    """A whole audio file, or one track carved out of a container file.

    ``start_position`` is only set for container tracks and is the offset of
    the track inside the physical file. ``last_position`` and bookmark
    positions are absolute positions in the file.
    """

    filename: str
    length: int
    start_position: Optional[int] = None
    bookmarks: list[Bookmark] = field(default_factory=list)
    last_position: int = 0
    m4_title: Optional[str] = None
    m4_tracknumber: Optional[int] = None
    description: Optional[str] = None
    # Re-probed on every run, never persisted.
    tags: TrackTags = field(default_factory=TrackTags, compare=False)
    saved_position: Optional[int] = field(default=None, compare=False)
    before_jump_position: Optional[int] = field(default=None, compare=False)

    @classmethod
    def whole_file(cls, path: Path, length: int) -> "Chapter":
        return cls(filename=path.name, length=length)

    @property
    def length_display(self) -> str:
        return format_time(self.length)

    @property
    def title(self) -> str:
        """Container title, then the probed title, then the filename."""
        if self.m4_title is not None:
            return self.m4_title
        if self.tags.title is not None:
            return self.tags.title
        return self.filename

    @property
    def track_number(self) -> Optional[int]:
        if self.m4_tracknumber is not None:
            return self.m4_tracknumber
        return self.tags.track_number

    def get_start_position(self) -> int:
        return self.start_position if self.start_position is not None else 0

    def get_end_position(self) -> int:
        return self.get_start_position() + self.length

    def resume_position(self) -> int:
        if self.last_position:
            return self.last_position
        return self.get_start_position()

    def relative_position(self, absolute: int) -> int:
        return max(0, absolute - self.get_start_position())

    def percentage_listened(self) -> int:
        if self.length <= 0:
            return 0
        listened = self.last_position - self.get_start_position()
        percent = math.ceil(listened / self.length * 100)
        return max(0, min(100, percent))

    def apply_tags(self, tags: TrackTags) -> None:
        self.tags = tags

    def update_last_position(self, position: int) -> None:
        self.last_position = position

    def add_bookmark(self, name: str, position: int) -> Bookmark:
        bookmark = Bookmark(
            position=max(position, self.get_start_position()),
            name=name,
            start_position=self.start_position,
        )
        self.bookmarks.append(bookmark)
        return bookmark

    def rename_bookmark(self, index: int, name: str) -> Bookmark:
        bookmark = self.bookmarks[index]
        bookmark.rename(name)
        return bookmark

    def delete_bookmark(self, index: int) -> Bookmark:
        """Remove a bookmark by moving the last one into its slot."""
        removed = self.bookmarks[index]
        last = self.bookmarks.pop()
        if index < len(self.bookmarks):
            self.bookmarks[index] = last
        return removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "start_position": self.start_position,
            "length": self.length,
            "length_display": self.length_display,
            "bookmarks": [bookmark.to_dict() for bookmark in self.bookmarks],
            "last_position": self.last_position,
            "m4_title": self.m4_title,
            "m4_tracknumber": self.m4_tracknumber,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Chapter":
        filename = raw.get("filename")
        if not isinstance(filename, str) or not filename:
            raise ValueError("chapter entry without a filename")
        start_position = _optional_int(raw.get("start_position"))
        length = _optional_int(raw.get("length")) or 0
        last_position = _optional_int(raw.get("last_position")) or 0
        m4_title = raw.get("m4_title")
        description = raw.get("description")
        raw_bookmarks = raw.get("bookmarks")
        bookmarks = [
            Bookmark.from_dict(item, start_position)
            for item in (raw_bookmarks if isinstance(raw_bookmarks, list) else [])
            if isinstance(item, dict)
        ]
        return cls(
            filename=filename,
            length=length,
            start_position=start_position,
            bookmarks=bookmarks,
            last_position=last_position,
            m4_title=m4_title if isinstance(m4_title, str) else None,
            m4_tracknumber=_optional_int(raw.get("m4_tracknumber")),
            description=description if isinstance(description, str) else None,
        )


def _optional_int(value: object) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value
