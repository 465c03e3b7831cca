"""Tests for hangwatch helpers."""

from __future__ import annotations

import io

import pytest

from earmark import hangwatch


@pytest.fixture(autouse=True)
def reset_hang_file():
    yield
    handle = hangwatch._HANG_FILE
    if handle is not None and not isinstance(handle, io.StringIO):
        handle.close()
    hangwatch._HANG_FILE = None
    hangwatch._HANG_PATH = None


class _Stop:
    def __init__(self) -> None:
        self._set = False

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, _seconds: float) -> bool:
        self._set = True
        return True


def test_enable_faulthandler_creates_hangdump(tmp_path, monkeypatch) -> None:
    calls: list[object] = []

    def fake_enable(*, file, all_threads: bool) -> None:
        calls.append((file, all_threads))

    monkeypatch.setattr(hangwatch.faulthandler, "enable", fake_enable)
    hang_path = hangwatch.enable_faulthandler(tmp_path / "logs" / "app.log")
    assert hang_path == tmp_path / "logs" / "hangdump.log"
    assert hang_path.exists()
    assert calls and calls[0][1] is True
    assert hangwatch._HANG_PATH == hang_path


def test_dump_threads_without_file_is_noop(monkeypatch) -> None:
    called: list[bool] = []
    monkeypatch.setattr(
        hangwatch.faulthandler,
        "dump_traceback",
        lambda **_kwargs: called.append(True),
    )
    hangwatch.dump_threads("ignored")
    assert called == []


def test_dump_threads_writes_header(monkeypatch) -> None:
    buffer = io.StringIO()

    def fake_dump_traceback(*, file, all_threads: bool) -> None:
        file.write("traceback")

    monkeypatch.setattr(hangwatch.faulthandler, "dump_traceback", fake_dump_traceback)
    hangwatch._HANG_FILE = buffer
    hangwatch.dump_threads("manual dump")
    output = buffer.getvalue()
    assert "manual dump" in output
    assert output.endswith("traceback")


def test_watchdog_triggers_dump(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(hangwatch, "dump_threads", calls.append)
    monkeypatch.setattr(hangwatch.time, "monotonic", lambda: 100.0)
    watchdog = hangwatch.HangWatchdog(lambda: 0.0, threshold_seconds=1.0)
    watchdog._stop_event = _Stop()
    watchdog._run()
    assert calls == ["hang detected"]


def test_watchdog_quiet_while_ticking(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(hangwatch, "dump_threads", calls.append)
    monkeypatch.setattr(hangwatch.time, "monotonic", lambda: 100.0)
    watchdog = hangwatch.HangWatchdog(lambda: 99.5, threshold_seconds=1.0)
    watchdog._stop_event = _Stop()
    watchdog._run()
    assert calls == []


def test_watchdog_survives_failing_tick_reader(monkeypatch) -> None:
    calls: list[str] = []

    def broken_tick() -> float:
        raise RuntimeError("app gone")

    monkeypatch.setattr(hangwatch, "dump_threads", calls.append)
    monkeypatch.setattr(hangwatch.time, "monotonic", lambda: 100.0)
    watchdog = hangwatch.HangWatchdog(broken_tick, threshold_seconds=1.0)
    watchdog._stop_event = _Stop()
    watchdog._run()
    assert calls == []
