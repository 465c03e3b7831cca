"""Memoized render artifacts, cleared by named invalidation groups."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from earmark.timefmt import format_time

T = TypeVar("T")


class Slot(Enum):
    PLAYLIST_PERCENTAGES = "playlist_percentages"
    PLAYLIST_MARKERS = "playlist_markers"
    PLAYLIST_TITLES = "playlist_titles"
    PLAYLIST_LENGTHS = "playlist_lengths"
    PLAYLIST_BOOKMARK_COUNTS = "playlist_bookmark_counts"
    BOOKMARKS_LEFT = "bookmarks_left"
    BOOKMARKS_RIGHT = "bookmarks_right"
    KEYBINDINGS_LEFT = "keybindings_left"
    KEYBINDINGS_RIGHT = "keybindings_right"
    CHAPTER_LENGTH = "chapter_length"


class Group(Enum):
    PLAYLIST = "playlist"
    BOOKMARKS = "bookmarks"
    KEYBINDINGS = "keybindings"


GROUP_SLOTS: dict[Group, frozenset[Slot]] = {
    Group.PLAYLIST: frozenset(
        {
            Slot.PLAYLIST_PERCENTAGES,
            Slot.PLAYLIST_MARKERS,
            Slot.PLAYLIST_TITLES,
            Slot.PLAYLIST_LENGTHS,
            Slot.PLAYLIST_BOOKMARK_COUNTS,
        }
    ),
    # Bookmark counts are shown in the playlist, so they go stale with the panels.
    Group.BOOKMARKS: frozenset(
        {
            Slot.BOOKMARKS_LEFT,
            Slot.BOOKMARKS_RIGHT,
            Slot.PLAYLIST_BOOKMARK_COUNTS,
        }
    ),
    Group.KEYBINDINGS: frozenset({Slot.KEYBINDINGS_LEFT, Slot.KEYBINDINGS_RIGHT}),
}


@dataclass(frozen=True)
class NowPlaying:
    """Position strings for the current tick."""

    position: int
    absolute_position: int
    formatted_position: str
    formatted_absolute: str


class ViewCache:
    """Lazily filled slots that are only recomputed after being cleared.

    Invalidation is pushed by whoever mutates the underlying data; the cache
    does not track dependencies itself.
    """

    def __init__(self) -> None:
        self._slots: dict[Slot, Any] = {}
        self.now: Optional[NowPlaying] = None

    def get_or_compute(self, slot: Slot, compute: Callable[[], T]) -> T:
        if slot in self._slots:
            return self._slots[slot]
        value = compute()
        self._slots[slot] = value
        return value

    def peek(self, slot: Slot) -> Optional[Any]:
        return self._slots.get(slot)

    def is_populated(self, slot: Slot) -> bool:
        return slot in self._slots

    def invalidate(self, group: Group) -> None:
        for slot in GROUP_SLOTS[group]:
            self._slots.pop(slot, None)

    def invalidate_slot(self, slot: Slot) -> None:
        self._slots.pop(slot, None)

    def invalidate_all(self) -> None:
        self._slots.clear()
        self.now = None

    def chapter_length(self, length: int) -> str:
        return self.get_or_compute(Slot.CHAPTER_LENGTH, lambda: format_time(length))

    def on_tick(self, position: int, start_position: Optional[int]) -> NowPlaying:
        """Recompute the position strings; these are never served stale."""
        start = start_position if start_position is not None else 0
        position = max(position, start)
        relative = position - start
        self.now = NowPlaying(
            position=relative,
            absolute_position=position,
            formatted_position=format_time(relative),
            formatted_absolute=format_time(position),
        )
        return self.now
