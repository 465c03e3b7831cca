"""Tests for CLI parsing and dispatch."""

from __future__ import annotations

import builtins
from pathlib import Path
from types import SimpleNamespace
import sys
import threading

import pytest

from earmark import cli
from earmark.chapter import Chapter
from earmark.config import AppConfig
from earmark.errors import EmptyLibraryError
from earmark.library import SNAPSHOT_NAME, Library


class DummyPlayer:
    def stop(self) -> None:
        pass


@pytest.fixture
def env(monkeypatch, tmp_path: Path) -> dict[str, object]:
    state: dict[str, object] = {
        "config": AppConfig(),
        "saved": [],
        "opened": [],
        "tui": [],
    }

    def fake_open(path: Path) -> Library:
        state["opened"].append(path)
        return Library(path=tmp_path, chapters=[Chapter(filename="01.mp3", length=60)])

    def fake_run_tui(library, player, config) -> int:
        state["tui"].append((library, player, config))
        return 0

    monkeypatch.setattr(cli, "init_logging", lambda: tmp_path / "app.log")
    monkeypatch.setattr(cli, "enable_faulthandler", lambda _: tmp_path / "hang.log")
    monkeypatch.setattr(cli, "_install_excepthooks", lambda: None)
    monkeypatch.setattr(cli, "load_config", lambda: state["config"])
    monkeypatch.setattr(cli, "save_config", state["saved"].append)
    monkeypatch.setattr(cli, "open_library", fake_open)
    monkeypatch.setattr(cli, "VlcPlayer", DummyPlayer)
    monkeypatch.setattr(cli, "_run_tui", fake_run_tui)
    return state


def test_parse_path_argument() -> None:
    args = cli.build_parser().parse_args(["books/dune"])
    assert args.path == "books/dune"
    assert args.antispoiler is False


def test_parse_antispoiler_flag() -> None:
    args = cli.build_parser().parse_args(["-a"])
    assert args.path == ""
    assert args.antispoiler is True


def test_main_opens_library_and_saves_on_exit(env, tmp_path: Path) -> None:
    assert cli.main([str(tmp_path)]) == 0
    assert env["opened"] == [tmp_path]
    library, player, _config = env["tui"][0]
    assert isinstance(player, DummyPlayer)
    assert library.antispoiler is False
    assert (tmp_path / SNAPSHOT_NAME).is_file()
    assert env["saved"][0].last_open_path == str(tmp_path.resolve())


def test_main_applies_antispoiler_flag(env, tmp_path: Path) -> None:
    cli.main([str(tmp_path), "--antispoiler"])
    library, _player, _config = env["tui"][0]
    assert library.antispoiler is True


def test_main_uses_last_open_path(env, tmp_path: Path) -> None:
    env["config"] = AppConfig(last_open_path=str(tmp_path), antispoiler=True)
    assert cli.main([]) == 0
    assert env["opened"] == [tmp_path]
    library, _player, _config = env["tui"][0]
    assert library.antispoiler is True


def test_main_without_any_path(env, capsys) -> None:
    assert cli.main([]) == 1
    err = capsys.readouterr().err
    assert "Suggestion:" in err
    assert env["tui"] == []


def test_main_reports_library_error(env, monkeypatch, tmp_path: Path, capsys) -> None:
    def boom(path: Path) -> Library:
        raise EmptyLibraryError(path)

    monkeypatch.setattr(cli, "open_library", boom)
    assert cli.main([str(tmp_path)]) == 1
    err = capsys.readouterr().err
    assert "is empty" in err
    assert "Suggestion: Provide a directory" in err
    assert env["tui"] == []


def test_main_handles_vlc_error(env, monkeypatch, tmp_path: Path, capsys) -> None:
    def boom() -> DummyPlayer:
        raise RuntimeError("python-vlc is not installed")

    monkeypatch.setattr(cli, "VlcPlayer", boom)
    assert cli.main([str(tmp_path)]) == 1
    assert "python-vlc" in capsys.readouterr().err
    assert env["tui"] == []


def test_main_config_save_failure_is_logged(env, monkeypatch, tmp_path: Path) -> None:
    def boom(_config: AppConfig) -> None:
        raise OSError("read-only")

    monkeypatch.setattr(cli, "save_config", boom)
    assert cli.main([str(tmp_path)]) == 0


def test_main_reports_snapshot_save_failure(
    env, monkeypatch, tmp_path: Path, capsys
) -> None:
    def boom(self: Library) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(Library, "save", boom)
    assert cli.main([str(tmp_path)]) == 1
    assert "disk full" in capsys.readouterr().err


def test_run_tui_handles_import_error(monkeypatch, capsys) -> None:
    original_import = builtins.__import__

    def fake_import(name, *args, **kwargs):
        if name == "earmark.tui":
            raise ImportError("boom")
        return original_import(name, *args, **kwargs)

    monkeypatch.setattr(builtins, "__import__", fake_import)
    assert cli._run_tui(None, DummyPlayer(), AppConfig()) == 1
    assert "boom" in capsys.readouterr().err


def test_thread_exceptions_dump_threads(monkeypatch) -> None:
    original_excepthook = threading.excepthook
    calls: list[str] = []
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(cli, "dump_threads", calls.append)
    try:
        cli._install_excepthooks()
        fake_args = SimpleNamespace(
            exc_type=RuntimeError,
            exc_value=RuntimeError("boom"),
            exc_traceback=None,
            thread=SimpleNamespace(name="worker"),
        )
        threading.excepthook(fake_args)
    finally:
        threading.excepthook = original_excepthook
    assert calls == ["thread exception in worker"]
