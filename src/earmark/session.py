"""Listening session: every user operation and the per-tick pass.

A :class:`Session` is handed the library, the view cache, the player and the
message queue explicitly. Operations never raise for runtime failures; they
push a message and leave state untouched instead.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

from earmark.cache import Group, Slot, ViewCache
from earmark.chapter import Chapter
from earmark.config import AppConfig
from earmark.library import MAX_SPEED, MIN_SPEED, Library
from earmark.player_vlc import PlayerEvent
from earmark.timefmt import format_time, parse_time
from earmark.ui.messages import MessageQueue

logger = logging.getLogger(__name__)


class Player(Protocol):
    def load(self, uri: str) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def set_speed(self, speed: float) -> bool: ...

    def seek(self, position_seconds: int, speed: float = 1.0) -> bool: ...

    def get_position_seconds(self) -> Optional[int]: ...

    def set_volume(self, volume: float) -> None: ...

    def get_volume(self) -> float: ...

    def is_playing(self) -> bool: ...

    def is_paused(self) -> bool: ...

    def consume_event(self) -> Optional[PlayerEvent]: ...


class Session:
    """Read and mutate surface over one open library."""

    def __init__(
        self,
        library: Library,
        cache: ViewCache,
        player: Player,
        messages: MessageQueue,
        *,
        config: Optional[AppConfig] = None,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        self.library = library
        self.cache = cache
        self.player = player
        self.messages = messages
        self.config = config or AppConfig()
        self._now = now
        self.marked_position: Optional[int] = None
        # (position, chapter index) recorded before a jump across the library.
        self.before_jump: Optional[tuple[int, int]] = None
        started = now()
        self._last_save = started
        self._last_refresh = started

    # --- Accessors ---
    @property
    def chapter(self) -> Chapter:
        return self.library.current()

    @property
    def chapter_index(self) -> int:
        return self.library.last_chapter

    def position(self) -> Optional[int]:
        return self.player.get_position_seconds()

    def _read_position(self) -> Optional[int]:
        position = self.player.get_position_seconds()
        if position is None:
            self.messages.warn("Couldn't get the position")
        return position

    def _record_position(self) -> bool:
        position = self._read_position()
        if position is None:
            return False
        self.chapter.update_last_position(position)
        return True

    def _seek(self, position: int, *, failure: str = "Couldn't seek") -> bool:
        if self.player.seek(position, self.library.speed):
            return True
        self.messages.warn(failure)
        logger.warning("Seek to %s failed", position)
        return False

    def pause_if_playing(self) -> bool:
        """Pause for a modal flow; returns whether playback should resume."""
        was_playing = self.player.is_playing()
        if was_playing:
            self.player.pause()
        return was_playing

    def resume(self, was_playing: bool) -> None:
        if was_playing:
            self.player.play()

    # --- Chapter navigation ---
    def load_chapter(self, index: int, *, play: bool = False) -> Chapter:
        chapter = self.library.set_last_chapter(index)
        self.cache.invalidate_all()
        self.player.load(str(self.library.chapter_path(chapter)))
        self.player.set_volume(self.library.volume)
        if play:
            self.player.play()
        self._seek(chapter.resume_position(), failure="Couldn't restore the position")
        logger.info("Loaded chapter %d: %s", self.library.last_chapter, chapter.title)
        return chapter

    def start(self, *, play: bool = False) -> Chapter:
        return self.load_chapter(self.library.last_chapter, play=play)

    def toggle_play(self) -> None:
        if self.player.is_playing():
            self.player.pause()
            self.messages.info("Stopping Playback")
        else:
            self.player.play()
            self.messages.info("Starting Playback")

    def _switch_chapter(self, index: int) -> None:
        was_playing = self.pause_if_playing()
        self.load_chapter(index)
        self.resume(was_playing)
        self.marked_position = None

    def next_chapter(self, *, update_position: bool = True) -> bool:
        if not self.library.has_next():
            self.messages.info(
                "You are the end of the playlist. Can't move any further."
            )
            return False
        if update_position and not self._record_position():
            return False
        self._switch_chapter(self.library.last_chapter + 1)
        self.messages.info("Moved to the next chapter")
        return True

    def prev_chapter(self) -> bool:
        if not self.library.has_prev():
            self.messages.info(
                "You are the start of the playlist. Can't move any backwards."
            )
            return False
        if not self._record_position():
            return False
        self._switch_chapter(self.library.last_chapter - 1)
        self.messages.info("Moved to the previous chapter")
        return True

    def finish_chapter(self) -> bool:
        """Mark the chapter as fully listened and move on."""
        self.player.pause()
        chapter = self.chapter
        chapter.update_last_position(chapter.get_end_position())
        self.cache.invalidate_slot(Slot.PLAYLIST_PERCENTAGES)
        return self.next_chapter(update_position=False)

    def reset_chapter(self) -> bool:
        if self._seek(self.chapter.get_start_position()):
            self.messages.info("Reset the chapter")
            return True
        return False

    # --- Seeking ---
    def seek_forward(self) -> bool:
        position = self._read_position()
        if position is None:
            return False
        chapter = self.chapter
        step = self.config.seek_step_seconds
        end = chapter.get_end_position()
        if position + step <= end:
            if self._seek(position + step):
                self.messages.info(f"Move forwards by {step} seconds")
                return True
            return False
        if self._seek(end):
            self.messages.info("Moved to the end")
            return True
        return False

    def seek_backward(self) -> bool:
        position = self._read_position()
        if position is None:
            return False
        start = self.chapter.get_start_position()
        step = self.config.seek_step_seconds
        if position - step > start:
            if self._seek(position - step):
                self.messages.info(f"Move backwards by {step} seconds")
                return True
            return False
        if self._seek(start):
            self.messages.info("Moved to the start")
            return True
        return False

    def jump_to(self, text: Optional[str]) -> bool:
        if text is None:
            self.messages.info("Cancelled moving to a position")
            return False
        seconds = parse_time(text.strip())
        if seconds is None:
            self.messages.warn(
                "Detected an illegal character. 'h'/'m'/'s' and numbers are the only legal"
            )
            return False
        chapter = self.chapter
        if seconds > chapter.length:
            self.messages.warn("Given position is bigger than the length of the chapter")
            return False
        current = self.player.get_position_seconds()
        if current is not None:
            chapter.before_jump_position = current
        if not self._seek(chapter.get_start_position() + seconds):
            return False
        self.messages.info(f"Moved to {text.strip()}")
        return True

    def restore_before_jump(self) -> bool:
        position = self.chapter.before_jump_position
        if position is None:
            self.messages.info("There isn't a jump saved for this chapter.")
            return False
        if self._seek(position, failure="Couldn't restore the position"):
            self.messages.info("Restored the position before a jump")
            return True
        return False

    def restore_chapter_before_jump(self) -> bool:
        if self.before_jump is None:
            self.messages.info("There is no saved position before the jump")
            return False
        position, chapter_index = self.before_jump
        if chapter_index != self.library.last_chapter:
            was_playing = self.pause_if_playing()
            self.load_chapter(chapter_index)
            self.resume(was_playing)
        if self._seek(position, failure="Couldn't restore the position"):
            self.messages.info("Restored the chapter and position before a jump")
            return True
        return False

    def save_position(self) -> bool:
        position = self._read_position()
        if position is None:
            return False
        self.chapter.saved_position = position
        self.messages.info(f"Saved position at {format_time(position)}")
        return True

    def restore_saved_position(self) -> bool:
        position = self.chapter.saved_position
        if position is None:
            self.messages.info("You do not have a saved position for this chapter")
            return False
        return self._seek(
            position, failure=f"Couldn't move the saved position at {position}"
        )

    # --- Volume and speed ---
    def _apply_volume(self, volume: float) -> float:
        volume = self.library.set_volume(round(volume, 2))
        self.player.set_volume(volume)
        return volume

    def volume_up(self) -> float:
        target = self.library.volume + self.config.volume_step
        if target > 1.0:
            self.messages.info("Can't increase volume beyond 100%")
        else:
            self.messages.info(f"Increased volume by {_percent(self.config.volume_step)}%")
        return self._apply_volume(target)

    def volume_down(self) -> float:
        target = self.library.volume - self.config.volume_step
        if target < 0.0:
            self.messages.info("Can't decrease volume below 0%")
        else:
            self.messages.info(f"Decreased volume by {_percent(self.config.volume_step)}%")
        return self._apply_volume(target)

    def set_volume_percent(self, text: Optional[str]) -> bool:
        if text is None:
            self.messages.info("Cancelled setting the volume")
            return False
        try:
            percent = int(text.strip())
        except ValueError:
            self.messages.warn("Invalid input")
            return False
        if not 0 <= percent <= 100:
            self.messages.warn("Volume must be between 0 and 100")
            return False
        self._apply_volume(percent / 100)
        self.messages.info(f"Volume set to {percent}%")
        return True

    def _apply_speed(self, speed: float, failure: str) -> bool:
        speed = min(max(speed, MIN_SPEED), MAX_SPEED)
        if not self.player.set_speed(speed):
            self.messages.warn(failure)
            return False
        self.library.set_speed(speed)
        return True

    def speed_up(self) -> bool:
        speed = round(self.library.speed + self.config.speed_step, 2)
        if self._apply_speed(speed, "Couldn't increase the speed"):
            self.messages.info(f"Speed {self.library.speed:.2f}x")
            return True
        return False

    def speed_down(self) -> bool:
        speed = round(self.library.speed - self.config.speed_step, 2)
        if speed <= 0:
            self.messages.info("Can't decrease the speed any further")
            return False
        if self._apply_speed(speed, "Couldn't decrease the speed"):
            self.messages.info(f"Speed {self.library.speed:.2f}x")
            return True
        return False

    def set_speed(self, text: Optional[str]) -> bool:
        if text is None:
            self.messages.info("Cancelled setting speed.")
            return False
        try:
            speed = float(text.strip())
        except ValueError:
            self.messages.warn("Invalid input")
            return False
        if not speed > 0:
            self.messages.warn("Speed must be bigger than 0.0")
            return False
        if self._apply_speed(speed, "Couldn't set the speed"):
            self.messages.info(f"Speed {self.library.speed:.2f}x")
            return True
        return False

    # --- Bookmarks ---
    def mark_position(self) -> bool:
        position = self._read_position()
        if position is None:
            return False
        self.marked_position = position
        self.messages.info(f"Marked position at {format_time(position)}")
        return True

    def add_bookmark(self, name: Optional[str], position: Optional[int]) -> bool:
        if name is None:
            self.messages.info("Cancelled adding a bookmark")
            return False
        if position is None:
            self.messages.warn("Couldn't get the position")
            return False
        bookmark = self.chapter.add_bookmark(name, position)
        self.cache.invalidate(Group.BOOKMARKS)
        self.messages.info(f"Added a bookmark: {bookmark.label}")
        logger.info("Added bookmark %s", bookmark.label)
        return True

    def add_bookmark_at_mark(self, name: Optional[str]) -> bool:
        if self.marked_position is None:
            self.messages.info("There is no marked position")
            return False
        if not self.add_bookmark(name, self.marked_position):
            return False
        self.marked_position = None
        return True

    def rename_bookmark(self, index: int, name: Optional[str]) -> bool:
        if name is None:
            self.messages.info("Cancelled renaming the bookmark")
            return False
        bookmark = self.chapter.rename_bookmark(index, name)
        self.cache.invalidate(Group.BOOKMARKS)
        self.messages.info(f"Renamed bookmark: {bookmark.label}")
        return True

    def delete_bookmark(self, index: int) -> bool:
        removed = self.chapter.delete_bookmark(index)
        self.cache.invalidate(Group.BOOKMARKS)
        self.messages.info(f"Deleted bookmark: {removed.formatted_position}")
        return True

    def select_bookmark(self, index: int) -> bool:
        chapter = self.chapter
        bookmark = chapter.bookmarks[index]
        current = self.player.get_position_seconds()
        if current is not None:
            chapter.before_jump_position = current
        if not self._seek(bookmark.position):
            return False
        self.messages.info(f"Selected bookmark: {bookmark.formatted_position}")
        return True

    def select_global_bookmark(self, chapter_index: int, bookmark_index: int) -> bool:
        current = self._read_position()
        if current is None:
            return False
        self.before_jump = (current, self.library.last_chapter)
        if chapter_index == self.library.last_chapter:
            self.chapter.before_jump_position = current
        else:
            self.chapter.update_last_position(current)
            was_playing = self.pause_if_playing()
            self.load_chapter(chapter_index)
            self.resume(was_playing)
        chapter = self.chapter
        bookmark = chapter.bookmarks[bookmark_index]
        if not self._seek(bookmark.position):
            return False
        track = chapter.track_number
        self.messages.info(
            f"Selected bookmark: {bookmark.formatted_position} from Chapter "
            f"{chapter.title}, track number: {track}"
        )
        return True

    # --- Descriptions and display ---
    def set_description(self, text: Optional[str]) -> bool:
        if text is None:
            self.messages.info("Cancelled adding a description")
            return False
        self.chapter.description = text or None
        self.cache.invalidate_slot(Slot.PLAYLIST_TITLES)
        return True

    def delete_description(self) -> None:
        self.chapter.description = None
        self.cache.invalidate_slot(Slot.PLAYLIST_TITLES)
        self.messages.info("Deleted the description")

    def toggle_antispoiler(self) -> bool:
        self.library.antispoiler = not self.library.antispoiler
        self.cache.invalidate(Group.PLAYLIST)
        state = "on" if self.library.antispoiler else "off"
        self.messages.info(f"Antispoiler {state}")
        return self.library.antispoiler

    def handle_resize(self) -> None:
        self.cache.invalidate(Group.BOOKMARKS)
        self.cache.invalidate(Group.KEYBINDINGS)
        self.cache.invalidate(Group.PLAYLIST)

    # --- Lifecycle ---
    def quit(self) -> bool:
        """Record where the listener stopped; False keeps the session running."""
        if not self._record_position():
            return False
        self.library.clamp_last_chapter()
        logger.info(
            "Quitting at chapter %d position %d",
            self.library.last_chapter,
            self.chapter.last_position,
        )
        return True

    def save(self) -> bool:
        try:
            self.library.save()
        except OSError as exc:
            logger.exception("Failed to save library to %s", self.library.snapshot_path)
            self.messages.error(f"Failed to save the file with err {exc}")
            return False
        self.messages.info("Saved the file")
        return True

    def _advance_after_end(self, position: int, reason: str) -> None:
        self.chapter.update_last_position(position)
        if self.library.has_next():
            self.messages.info(f"{reason}. Starting next chapter")
            self.load_chapter(self.library.last_chapter + 1, play=True)
        else:
            self.messages.info("End of the book")
            self.player.pause()

    def tick(self, now: Optional[float] = None) -> None:
        """Run one frame of core work."""
        if now is None:
            now = self._now()
        chapter = self.chapter
        absolute = self.player.get_position_seconds()
        if absolute is None:
            absolute = chapter.get_start_position()
        relative = chapter.relative_position(absolute)
        self.cache.chapter_length(chapter.length)
        self.cache.on_tick(absolute, chapter.start_position)
        self.messages.advance()

        event = self.player.consume_event()
        if event is PlayerEvent.END_OF_STREAM:
            self._advance_after_end(absolute, "End of stream")
        elif event is PlayerEvent.ERROR:
            self.messages.error(f"Playback error in {chapter.filename}")
            logger.warning("Player reported an error for %s", chapter.filename)
        elif (
            self.player.is_playing()
            and chapter.start_position is not None
            and relative >= chapter.length
        ):
            self._advance_after_end(absolute, "End of the chapter")

        if now - self._last_save >= self.config.save_interval_seconds:
            self._last_save = now
            if self._record_position():
                self.save()

        if now - self._last_refresh >= self.config.percentage_refresh_seconds:
            self._last_refresh = now
            if self._record_position():
                self.cache.invalidate_slot(Slot.PLAYLIST_PERCENTAGES)


def _percent(step: float) -> int:
    return int(round(step * 100))
