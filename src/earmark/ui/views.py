"""Derived views rendered into rich ``Text`` for the main screen."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from rich.text import Text

from earmark.cache import NowPlaying
from earmark.chapter import Chapter
from earmark.config import AppConfig
from earmark.library import Library

HIDDEN_TITLE = "???"
MARKER = ">>> "
NO_MARKER = "    "
TRAILING_ROWS = 2

KEYBINDING_LINES: tuple[tuple[str, str], ...] = (
    ("?", "List all shortcuts"),
    ("=", "Increase volume by {volume}"),
    ("-", "Decrease volume by {volume}"),
    ("v", "Set arbitrary volume"),
    (";", "Jump to arbitrary position"),
    ("a", "Add new bookmark"),
    ("b", "Bookmark menu (only this chapter)"),
    ("B", "Bookmark menu (all chapters)"),
    ("h", "Move {seek} seconds backwards"),
    ("j", "Move 1 chapter forwards"),
    ("k", "Move 1 chapter backwards"),
    ("l", "Move {seek} seconds forwards"),
    ("p", "Toggle pause and play"),
    ("q", "Quit"),
    ("r", "Reset progress of the chapter"),
    ("s", "Increase speed by {speed}"),
    ("S", "Decrease speed by {speed}"),
    ("C-s", "Set arbitrary speed"),
    ("C-a", "Toggle antispoiler"),
    ("m", "Mark position for a bookmark"),
    ("M", "Create bookmark at the marked position"),
    ("d", "Set description for the current chapter"),
    ("D", "Delete description for the current chapter"),
    ("z", "Save position"),
    ("Z", "Restore saved position"),
    ("F", "Set 100% completion and move to next chapter"),
    (":", "Go to the position before the jump"),
    (",", "Go to the chapter and position before the jump"),
)


def step_values(config: AppConfig) -> dict[str, str]:
    """Step sizes as shown in key labels."""
    return {
        "seek": str(config.seek_step_seconds),
        "volume": f"{int(round(config.volume_step * 100))}%",
        "speed": f"{config.speed_step:g}",
    }


def describe(template: str, config: AppConfig) -> str:
    return template.format(**step_values(config))


def keybinding_lines(config: AppConfig) -> list[str]:
    return [f"{key} : {describe(label, config)}" for key, label in KEYBINDING_LINES]


def playlist_window(current: int, count: int, height: int) -> tuple[int, int]:
    """Return ``(skip, take)`` for the visible playlist rows.

    The current chapter stays visible with up to two chapters below it.
    """
    if height <= 0 or count <= 0:
        return 0, 0
    if count <= height:
        return 0, count
    if current + 1 >= height:
        remaining = count - (current + 1)
        skip = current + 1 - height + min(TRAILING_ROWS, remaining, height - 1)
    else:
        skip = 1 if height - (current + 1) == 1 else 0
    # Never scroll the current row out of view.
    skip = max(0, min(skip, current, count - height))
    return skip, height


def _visible(
    chapters: Sequence[Chapter], skip: int, take: int
) -> list[tuple[int, Chapter]]:
    return list(enumerate(chapters))[skip : skip + take]


def _lines(items: Iterable[Text]) -> Text:
    return Text("\n").join(items)


def percentage_style(percent: int) -> str:
    if percent >= 75:
        return "green"
    if percent >= 50:
        return "bright_green"
    if percent >= 25:
        return "grey70"
    return "grey37"


def render_percentages(chapters: Sequence[Chapter], skip: int, take: int) -> Text:
    rows = []
    for _, chapter in _visible(chapters, skip, take):
        percent = chapter.percentage_listened()
        rows.append(Text(f"{percent}%", style=percentage_style(percent)))
    return _lines(rows)


def render_markers(
    chapters: Sequence[Chapter], skip: int, take: int, current: int
) -> Text:
    return _lines(
        Text(MARKER, style="red") if index == current else Text(NO_MARKER)
        for index, _ in _visible(chapters, skip, take)
    )


def chapter_title(chapter: Chapter) -> str:
    if chapter.description:
        return f"{chapter.title} [{chapter.description}]"
    return chapter.title


def render_titles(
    chapters: Sequence[Chapter],
    skip: int,
    take: int,
    current: int,
    *,
    antispoiler: bool = False,
) -> Text:
    rows = []
    for index, chapter in _visible(chapters, skip, take):
        if antispoiler and index > current:
            rows.append(Text(HIDDEN_TITLE, style="dim"))
        else:
            rows.append(Text(chapter_title(chapter)))
    return _lines(rows)


def render_lengths(chapters: Sequence[Chapter], skip: int, take: int) -> Text:
    return _lines(
        Text(chapter.length_display) for _, chapter in _visible(chapters, skip, take)
    )


def render_bookmark_counts(chapters: Sequence[Chapter], skip: int, take: int) -> Text:
    return _lines(
        Text(str(len(chapter.bookmarks)))
        for _, chapter in _visible(chapters, skip, take)
    )


def split_columns(lines: Sequence[str], height: int) -> tuple[Text, Text]:
    """Fill a left column of ``height`` rows, then a right one."""
    if height <= 0:
        return Text(), Text()
    left = _lines(Text(line) for line in lines[:height])
    right = _lines(Text(line) for line in lines[height : height * 2])
    return left, right


def render_bookmark_columns(chapter: Chapter, height: int) -> tuple[Text, Text]:
    return split_columns([bookmark.label for bookmark in chapter.bookmarks], height)


def render_keybinding_columns(lines: Sequence[str], height: int) -> tuple[Text, Text]:
    return split_columns(lines, height)


def _value(value: Optional[object]) -> str:
    return "None" if value is None else str(value)


def render_info(
    library: Library,
    now: Optional[NowPlaying],
    *,
    marked_position: Optional[int] = None,
) -> Text:
    chapter = library.current()
    rows: list[tuple[str, str]] = [
        ("Chapter", chapter.title),
        ("Book", _value(chapter.tags.album)),
        ("Author", _value(chapter.tags.artist)),
        ("File name", chapter.filename),
        ("Dir", str(library.path)),
        ("Speed", f"{library.speed:g}"),
        ("StartPos", str(chapter.get_start_position())),
        ("AbsPosForm", now.formatted_absolute if now else "None"),
        ("AbsPos", str(now.absolute_position) if now else "None"),
    ]
    if not library.antispoiler:
        rows.insert(
            1, ("Number", f"{library.last_chapter + 1}/{library.chaptercount}")
        )
    if chapter.tags.description:
        rows.append(("Notes", chapter.tags.description))
    if marked_position is not None:
        rows.append(("Marked Position", str(marked_position)))
    content = Text()
    for index, (label, value) in enumerate(rows):
        if index:
            content.append("\n")
        content.append(f"{label}: ", style="bold #5fc9d6")
        content.append(value)
    return content


def render_bar(width: int, ratio: float) -> str:
    if width <= 2:
        return "=" * max(0, width)
    inner = width - 2
    filled = int(max(0.0, min(1.0, ratio)) * inner)
    return "[" + "=" * filled + "-" * (inner - filled) + "]"


def render_progress(
    now: Optional[NowPlaying], length: int, length_display: str, width: int
) -> Text:
    position = now.position if now else 0
    ratio = position / length if length > 0 else 0.0
    label = f" {now.formatted_position if now else ''} / {length_display}"
    bar_width = max(0, width - len(label))
    return Text(render_bar(bar_width, ratio) + label)


def render_volume(volume: float, width: int) -> Text:
    label = f" {int(round(volume * 100))}%"
    return Text(render_bar(max(0, width - len(label)), volume) + label)


def bookmark_choices(chapter: Chapter) -> list[str]:
    return [bookmark.label for bookmark in chapter.bookmarks]


def global_bookmark_choices(library: Library) -> list[tuple[tuple[int, int], str]]:
    """Return ``((chapter_index, bookmark_index), label)`` for every bookmark."""
    return [
        (
            (ref.chapter_index, ref.bookmark_index),
            f"{ref.bookmark.formatted_position} | chapter name: {ref.chapter.title}"
            f" | chapter number: {_value(ref.chapter.track_number)}",
        )
        for ref in library.iter_bookmarks()
    ]
