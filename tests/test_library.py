"""Tests for the library aggregate and its snapshot."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from earmark import library as library_module
from earmark.chapter import Chapter
from earmark.errors import EmptyLibraryError, MissingFilesError, SnapshotError
from earmark.library import SNAPSHOT_NAME, Library, open_library
from earmark.metadata import ChapterMarker, ProbeResult, TrackTags


def _probe(path: Path) -> ProbeResult:
    return ProbeResult(duration_seconds=100, tags=TrackTags())


def _markers(path: Path) -> list[ChapterMarker]:
    return []


def _touch(directory: Path, *names: str) -> None:
    for name in names:
        (directory / name).write_bytes(b"")


def _library(tmp_path: Path, count: int = 3) -> Library:
    chapters = [Chapter(filename=f"{index:02d}.mp3", length=100) for index in range(count)]
    return Library(path=tmp_path, chapters=chapters)


def test_defaults_and_clamping(tmp_path: Path) -> None:
    library = Library(path=tmp_path, speed=50.0, volume=-1.0, last_chapter=9)
    assert library.speed == library_module.MAX_SPEED
    assert library.volume == 0.0
    assert library.last_chapter == 0
    assert library.is_empty()


def test_navigation_helpers(tmp_path: Path) -> None:
    library = _library(tmp_path)
    assert library.has_next() and not library.has_prev()
    chapter = library.set_last_chapter(5)
    assert library.last_chapter == 2
    assert chapter is library.chapters[2]
    assert not library.has_next() and library.has_prev()
    assert library.chapter_path(chapter) == tmp_path / "02.mp3"


def test_setters_clamp(tmp_path: Path) -> None:
    library = _library(tmp_path)
    assert library.set_volume(1.5) == 1.0
    assert library.set_speed(0.0) == library_module.MIN_SPEED
    assert library.set_speed(1.25) == 1.25


def test_iter_bookmarks_in_playlist_order(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.chapters[2].add_bookmark("late", 10)
    library.chapters[0].add_bookmark("early", 5)
    library.chapters[0].add_bookmark("early2", 6)
    refs = list(library.iter_bookmarks())
    assert [(ref.chapter_index, ref.bookmark_index) for ref in refs] == [
        (0, 0),
        (0, 1),
        (2, 0),
    ]
    assert refs[2].bookmark.name == "late"
    assert library.bookmark_count() == 3


def test_save_then_load_restores_state(tmp_path: Path) -> None:
    library = _library(tmp_path)
    library.speed = 1.5
    library.volume = 0.3
    library.last_chapter = 1
    library.antispoiler = True
    library.chapters[1].add_bookmark("mark", 42)
    library.chapters[1].description = "note"
    saved_path = library.save()
    assert saved_path == tmp_path / SNAPSHOT_NAME
    assert not (tmp_path / "earmark_data.tmp").exists()
    loaded = Library.load(tmp_path)
    assert loaded == library


def test_save_writes_expected_document(tmp_path: Path) -> None:
    library = _library(tmp_path, count=1)
    library.save()
    raw = json.loads((tmp_path / SNAPSHOT_NAME).read_text(encoding="utf-8"))
    assert raw["speed"] == 1.0
    assert raw["volume"] == 0.5
    assert raw["last_chapter"] == 0
    assert raw["chapters"][0]["filename"] == "00.mp3"
    assert raw["chapters"][0]["length_display"] == "1m40s"


def test_save_uses_atomic_replace(tmp_path: Path, monkeypatch) -> None:
    replaced: list[tuple[Path, Path]] = []

    def fake_replace(src: Path, dest: Path) -> None:
        replaced.append((Path(src), Path(dest)))

    monkeypatch.setattr(library_module.os, "replace", fake_replace)
    _library(tmp_path).save()
    assert replaced == [(tmp_path / "earmark_data.tmp", tmp_path / SNAPSHOT_NAME)]


def test_load_rejects_invalid_json(tmp_path: Path) -> None:
    (tmp_path / SNAPSHOT_NAME).write_text("{not json", encoding="utf-8")
    with pytest.raises(SnapshotError):
        Library.load(tmp_path)


def test_load_rejects_non_object(tmp_path: Path) -> None:
    (tmp_path / SNAPSHOT_NAME).write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(SnapshotError):
        Library.load(tmp_path)


def test_load_rejects_chapter_without_filename(tmp_path: Path) -> None:
    document = {"chapters": [{"length": 3}]}
    (tmp_path / SNAPSHOT_NAME).write_text(json.dumps(document), encoding="utf-8")
    with pytest.raises(SnapshotError):
        Library.load(tmp_path)


def test_open_library_fresh(tmp_path: Path) -> None:
    _touch(tmp_path, "01.mp3", "02.mp3")
    library = open_library(tmp_path, probe=_probe, read_markers=_markers)
    assert library.chaptercount == 2
    assert library.speed == 1.0
    assert library.volume == 0.5
    assert library.last_chapter == 0
    assert not library.antispoiler
    assert not (tmp_path / SNAPSHOT_NAME).exists()


def test_open_library_empty_directory(tmp_path: Path) -> None:
    with pytest.raises(EmptyLibraryError):
        open_library(tmp_path, probe=_probe, read_markers=_markers)


def test_open_library_merges_and_keeps_current_chapter(tmp_path: Path) -> None:
    _touch(tmp_path, "b.mp3", "c.mp3")
    library = open_library(tmp_path, probe=_probe, read_markers=_markers)
    library.set_last_chapter(1)
    library.chapters[1].update_last_position(30)
    library.save()

    _touch(tmp_path, "a.mp3")
    reopened = open_library(tmp_path, probe=_probe, read_markers=_markers)
    assert [chapter.filename for chapter in reopened.chapters] == [
        "a.mp3",
        "b.mp3",
        "c.mp3",
    ]
    assert reopened.current().filename == "c.mp3"
    assert reopened.current().last_position == 30


def test_open_library_missing_files(tmp_path: Path) -> None:
    _touch(tmp_path, "a.mp3", "b.mp3")
    open_library(tmp_path, probe=_probe, read_markers=_markers).save()
    (tmp_path / "a.mp3").unlink()
    with pytest.raises(MissingFilesError) as excinfo:
        open_library(tmp_path, probe=_probe, read_markers=_markers)
    assert excinfo.value.missing == [tmp_path / "a.mp3"]
