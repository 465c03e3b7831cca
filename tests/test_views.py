"""Tests for derived view rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from earmark.cache import ViewCache
from earmark.chapter import Chapter
from earmark.config import AppConfig
from earmark.library import Library
from earmark.metadata import TrackTags
from earmark.ui import views


def _library(tmp_path: Path, count: int = 4) -> Library:
    chapters = [
        Chapter(filename=f"{index:02d}.mp3", length=61 * (index + 1))
        for index in range(count)
    ]
    return Library(path=tmp_path, chapters=chapters)


@pytest.mark.parametrize(
    ("current", "count", "height", "expected"),
    [
        (0, 3, 10, (0, 3)),
        (0, 20, 5, (0, 5)),
        (3, 20, 5, (1, 5)),
        (4, 20, 5, (2, 5)),
        (10, 20, 5, (8, 5)),
        (18, 20, 5, (15, 5)),
        (19, 20, 5, (15, 5)),
        (0, 0, 5, (0, 0)),
        (2, 5, 0, (0, 0)),
    ],
)
def test_playlist_window(current: int, count: int, height: int, expected) -> None:
    assert views.playlist_window(current, count, height) == expected


def test_playlist_window_keeps_current_visible() -> None:
    for count in (1, 6, 30):
        for height in (1, 3, 7):
            for current in range(count):
                skip, take = views.playlist_window(current, count, height)
                assert skip <= current < skip + take
                assert take <= height


def test_render_percentages(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.chapters[1].update_last_position(61)
    text = views.render_percentages(library.chapters, 0, 2)
    assert text.plain == "0%\n50%"


def test_render_markers(tmp_path: Path) -> None:
    library = _library(tmp_path)
    text = views.render_markers(library.chapters, 1, 3, 2)
    assert text.plain.split("\n") == ["    ", ">>> ", "    "]


def test_render_titles_with_description_and_antispoiler(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.chapters[0].description = "fav"
    library.chapters[1].apply_tags(TrackTags(title="Second"))
    plain = views.render_titles(library.chapters, 0, 4, 1).plain
    assert plain.split("\n") == ["00.mp3 [fav]", "Second", "02.mp3", "03.mp3"]
    hidden = views.render_titles(library.chapters, 0, 4, 1, antispoiler=True).plain
    assert hidden.split("\n") == ["00.mp3 [fav]", "Second", "???", "???"]


def test_render_lengths_and_counts(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.chapters[0].add_bookmark("a", 1)
    library.chapters[0].add_bookmark("b", 2)
    assert views.render_lengths(library.chapters, 0, 2).plain == "1m1s\n2m2s"
    assert views.render_bookmark_counts(library.chapters, 0, 2).plain == "2\n0"


def test_split_columns() -> None:
    left, right = views.split_columns(["a", "b", "c", "d", "e"], 2)
    assert left.plain == "a\nb"
    assert right.plain == "c\nd"
    empty_left, empty_right = views.split_columns(["a"], 0)
    assert empty_left.plain == "" and empty_right.plain == ""


def test_keybinding_columns_use_both_sides() -> None:
    lines = views.keybinding_lines(AppConfig())
    left, right = views.render_keybinding_columns(lines, 5)
    assert left.plain.startswith("? : List all shortcuts")
    assert len(right.plain.split("\n")) == 5


def test_keybinding_lines_use_configured_steps() -> None:
    config = AppConfig(seek_step_seconds=10, volume_step=0.1, speed_step=0.5)
    lines = views.keybinding_lines(config)
    assert "h : Move 10 seconds backwards" in lines
    assert "= : Increase volume by 10%" in lines
    assert "S : Decrease speed by 0.5" in lines
    assert ", : Go to the chapter and position before the jump" in lines


def test_render_info(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.chapters[0].apply_tags(TrackTags(album="Book", artist="Author"))
    now = ViewCache().on_tick(30, None)
    plain = views.render_info(library, now, marked_position=12).plain
    assert "Chapter: 00.mp3" in plain
    assert "Number: 1/4" in plain
    assert "Book: Book" in plain
    assert "AbsPosForm: 30s" in plain
    assert "Marked Position: 12" in plain


def test_render_info_hides_count_with_antispoiler(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.antispoiler = True
    plain = views.render_info(library, None).plain
    assert "Number:" not in plain
    assert "AbsPos: None" in plain


def test_render_progress_and_volume() -> None:
    now = ViewCache().on_tick(50, None)
    progress = views.render_progress(now, 100, "1m40s", 30).plain
    assert progress.endswith(" 50s / 1m40s")
    assert len(progress) == 30
    assert views.render_bar(12, 0.5) == "[=====-----]"
    assert views.render_volume(0.5, 20).plain.endswith(" 50%")


def test_bookmark_choices(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.chapters[0].add_bookmark("intro", 5)
    library.chapters[2].add_bookmark("twist", 65)
    library.chapters[2].apply_tags(TrackTags(track_number=3))
    assert views.bookmark_choices(library.chapters[0]) == ['"intro" at 5s']
    choices = views.global_bookmark_choices(library)
    assert [key for key, _ in choices] == [(0, 0), (2, 0)]
    assert choices[1][1] == "1m5s | chapter name: 02.mp3 | chapter number: 3"
    assert choices[0][1].endswith("chapter number: None")
