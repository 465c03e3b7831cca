"""VLC-backed audio player."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, cast
import threading

vlc: Any | None = None
_VLC_IMPORT_ERROR: Optional[Exception] = None


def _load_vlc() -> None:
    global vlc
    global _VLC_IMPORT_ERROR
    if vlc is not None or _VLC_IMPORT_ERROR is not None:
        return
    try:
        import vlc as vlc_module  # type: ignore
    except Exception as exc:  # pragma: no cover - platform-dependent import
        vlc = None
        _VLC_IMPORT_ERROR = exc
    else:
        vlc = cast(Any, vlc_module)
        _VLC_IMPORT_ERROR = None


class PlayerEvent(Enum):
    END_OF_STREAM = "end_of_stream"
    ERROR = "error"


class VlcPlayer:
    """Thin wrapper around python-vlc's MediaPlayer working in whole seconds.

    Seeks requested before VLC has started the media are kept and applied
    once playback is running.
    """

    def __init__(self) -> None:
        _load_vlc()
        if vlc is None:
            raise RuntimeError(
                "VLC backend is unavailable. Install VLC and the python-vlc package."
            ) from _VLC_IMPORT_ERROR
        self._instance = cast(Any, vlc).Instance()
        if self._instance is None:
            raise RuntimeError(
                "libvlc could not be initialized. Check the VLC installation."
            )
        self._player = self._instance.media_player_new()
        self._current_media: Optional[str] = None
        self._playing = False
        self._paused = False
        self._volume = 1.0
        self._pending_seek_ms: Optional[int] = None
        self._end_reached = threading.Event()
        self._error = threading.Event()
        self._attach_events()

    def _attach_events(self) -> None:
        if vlc is None:
            return
        vlc_module = cast(Any, vlc)
        try:
            event_manager = self._player.event_manager()
            event_manager.event_attach(
                vlc_module.EventType.MediaPlayerEndReached, self._handle_end_reached
            )
            event_manager.event_attach(
                vlc_module.EventType.MediaPlayerEncounteredError, self._handle_error
            )
        except Exception:
            return

    def _handle_end_reached(self, event: object) -> None:
        del event
        self._end_reached.set()

    def _handle_error(self, event: object) -> None:
        del event
        self._error.set()

    @property
    def current_media(self) -> Optional[str]:
        """Return the current media path if loaded."""
        return self._current_media

    def consume_event(self) -> Optional[PlayerEvent]:
        """Return the next pending event, errors first."""
        if self._error.is_set():
            self._error.clear()
            return PlayerEvent.ERROR
        if self._end_reached.is_set():
            self._end_reached.clear()
            return PlayerEvent.END_OF_STREAM
        return None

    def signal_end_reached(self) -> None:
        """Manually flag end reached (for tests)."""
        self._end_reached.set()

    def load(self, uri: str | Path) -> None:
        """Load media into the player, stopping whatever was playing."""
        path = str(uri)
        self._player.stop()
        media = self._instance.media_new(path)
        self._player.set_media(media)
        self._current_media = path
        self._playing = False
        self._paused = False
        self._pending_seek_ms = None
        self._end_reached.clear()
        self._error.clear()

    def play(self) -> None:
        """Start or resume playback."""
        if self._paused:
            self._player.set_pause(0)
        else:
            self._player.play()
        self._playing = True
        self._paused = False

    def pause(self) -> None:
        """Pause playback."""
        self._player.set_pause(1)
        self._playing = False
        self._paused = True

    def stop(self) -> None:
        """Stop playback."""
        self._player.stop()
        self._playing = False
        self._paused = False

    def is_playing(self) -> bool:
        return self._playing

    def is_paused(self) -> bool:
        return self._paused

    def set_volume(self, volume: float) -> None:
        """Set volume from 0.0 to 1.0."""
        self._volume = max(0.0, min(1.0, float(volume)))
        self._player.audio_set_volume(int(round(self._volume * 100)))

    def get_volume(self) -> float:
        return self._volume

    def set_speed(self, speed: float) -> bool:
        """Change the playback rate, returning success."""
        try:
            result = self._player.set_rate(float(speed))
        except Exception:
            return False
        return result != -1

    def _started(self) -> bool:
        try:
            current = self._player.get_time()
        except Exception:
            return False
        return current is not None and current >= 0 and self._playing

    def _apply_pending_seek(self) -> None:
        if self._pending_seek_ms is None or not self._started():
            return
        target = self._pending_seek_ms
        self._pending_seek_ms = None
        try:
            self._player.set_time(target)
        except Exception:
            return

    def seek(self, position_seconds: int, speed: float = 1.0) -> bool:
        """Seek to an absolute position in seconds, returning success."""
        target = max(0, int(position_seconds)) * 1000
        if not self._started():
            if self._current_media is None:
                return False
            self._pending_seek_ms = target
            return self.set_speed(speed)
        try:
            self._player.set_time(target)
        except Exception:
            return False
        return self.set_speed(speed)

    def get_position_seconds(self) -> Optional[int]:
        """Return the current playback position in whole seconds, if available."""
        if self._pending_seek_ms is not None:
            self._apply_pending_seek()
            if self._pending_seek_ms is not None:
                return self._pending_seek_ms // 1000
        try:
            position = self._player.get_time()
        except Exception:
            return None
        if position is None or position < 0:
            return None
        return int(position) // 1000
