"""Textual-based TUI for earmark."""

from __future__ import annotations

import asyncio
from dataclasses import replace
import logging
import time
from typing import Any, Callable, Optional, TypeVar

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Static

from earmark.cache import NowPlaying, Slot, ViewCache
from earmark.config import AppConfig, load_config
from earmark.hangwatch import HangWatchdog, dump_threads
from earmark.library import Library
from earmark.logging_setup import set_console_level
from earmark.session import Player, Session
from earmark.ui.help_modal import HelpModal
from earmark.ui.messages import MessageQueue
from earmark.ui.prompts import (
    BookmarkAction,
    BookmarkPicker,
    ConfirmPrompt,
    GlobalBookmarkPicker,
    InputPrompt,
)
from earmark.ui.views import (
    bookmark_choices,
    global_bookmark_choices,
    playlist_window,
    render_bookmark_columns,
    render_bookmark_counts,
    render_info,
    describe,
    keybinding_lines,
    render_keybinding_columns,
    render_lengths,
    render_markers,
    render_percentages,
    render_progress,
    render_titles,
    render_volume,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PLAYLIST_COLUMNS: tuple[tuple[str, Slot], ...] = (
    ("pl_percent", Slot.PLAYLIST_PERCENTAGES),
    ("pl_marker", Slot.PLAYLIST_MARKERS),
    ("pl_title", Slot.PLAYLIST_TITLES),
    ("pl_length", Slot.PLAYLIST_LENGTHS),
    ("pl_bookmarks", Slot.PLAYLIST_BOOKMARK_COUNTS),
)


def _text_key(text: Text) -> tuple[Any, ...]:
    return (text.plain, str(text.style), tuple(text.spans))


# Main application
class EarmarkApp(App):
    """Earmark Textual application."""

    # --- App constants & metadata ---
    CSS_PATH = "app.tcss"
    TITLE = "Earmark"

    # --- Keybindings ---
    BINDINGS = [
        Binding("?", "show_help", "List all shortcuts"),
        Binding("p", "toggle_playback", "Toggle pause and play"),
        Binding("space", "toggle_playback", "Toggle pause and play"),
        Binding("h", "seek_back", "Move {seek} seconds backwards"),
        Binding("left", "seek_back", "Move {seek} seconds backwards"),
        Binding("l", "seek_forward", "Move {seek} seconds forwards"),
        Binding("right", "seek_forward", "Move {seek} seconds forwards"),
        Binding("j", "next_chapter", "Move 1 chapter forwards"),
        Binding("down", "next_chapter", "Move 1 chapter forwards"),
        Binding("k", "previous_chapter", "Move 1 chapter backwards"),
        Binding("up", "previous_chapter", "Move 1 chapter backwards"),
        Binding("F", "finish_chapter", "Set 100% completion and move on"),
        Binding(";", "jump_to", "Jump to arbitrary position"),
        Binding(":", "restore_jump", "Go to the position before the jump"),
        Binding("comma", "restore_chapter_jump", "Go to the chapter before the jump"),
        Binding("r", "reset_chapter", "Reset progress of the chapter"),
        Binding("z", "save_position", "Save position"),
        Binding("Z", "restore_position", "Restore saved position"),
        Binding("=", "volume_up", "Increase volume by {volume}"),
        Binding("+", "volume_up", "Increase volume by {volume}"),
        Binding("-", "volume_down", "Decrease volume by {volume}"),
        Binding("v", "set_volume", "Set arbitrary volume"),
        Binding("s", "speed_up", "Increase speed by {speed}"),
        Binding("S", "speed_down", "Decrease speed by {speed}"),
        Binding("ctrl+s", "set_speed", "Set arbitrary speed"),
        Binding("a", "add_bookmark", "Add new bookmark"),
        Binding("m", "mark_position", "Mark position for a bookmark"),
        Binding("M", "bookmark_at_mark", "Create bookmark at the marked position"),
        Binding("b", "chapter_bookmarks", "Bookmark menu (only this chapter)"),
        Binding("B", "all_bookmarks", "Bookmark menu (all chapters)"),
        Binding("d", "set_description", "Set description for the chapter"),
        Binding("D", "delete_description", "Delete description for the chapter"),
        Binding("ctrl+a", "toggle_antispoiler", "Toggle antispoiler"),
        Binding("ctrl+shift+d", "dump_threads", "Dump Threads"),
        Binding("q", "quit_app", "Quit"),
    ]

    # --- Lifecycle ---
    def __init__(
        self,
        *,
        session: Session,
        config: Optional[AppConfig] = None,
        now: Callable[[], float] = time.monotonic,
        autoplay: bool = False,
    ) -> None:
        super().__init__()
        self.session = session
        self._config = config or load_config()
        self._now = now
        self._autoplay = autoplay
        self._last_ui_tick = now()
        self._hang_watchdog: Optional[HangWatchdog] = None
        self._shown: dict[str, object] = {}
        self._mounted = False
        self.quit_recorded = False

    # --- Widget composition & layout ---
    def compose(self) -> ComposeResult:
        with Container(id="root"):
            yield Static(id="info")
            with Horizontal(id="playlist"):
                for widget_id, _ in _PLAYLIST_COLUMNS:
                    yield Static(id=widget_id, classes="playlist_column")
            with Horizontal(id="panels"):
                with Vertical(id="bookmarks_panel", classes="panel"):
                    yield Static("Bookmarks", classes="panel_title")
                    with Horizontal(classes="panel_columns"):
                        yield Static(id="bookmarks_left", classes="panel_column")
                        yield Static(id="bookmarks_right", classes="panel_column")
                with Vertical(id="keys_panel", classes="panel"):
                    yield Static("Keybindings", classes="panel_title")
                    with Horizontal(classes="panel_columns"):
                        yield Static(id="keys_left", classes="panel_column")
                        yield Static(id="keys_right", classes="panel_column")
            yield Static(id="progress")
            yield Static(id="volume")
            yield Static(id="message")

    # --- Internal helpers ---
    def _install_asyncio_exception_handler(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        def handler(_loop: asyncio.AbstractEventLoop, context: dict) -> None:
            exc = context.get("exception")
            if exc:
                logger.exception("Asyncio exception", exc_info=exc)
            else:
                logger.error("Asyncio error: %s", context.get("message"))

        loop.set_exception_handler(handler)

    def _start_hang_watchdog(self) -> None:
        if self._hang_watchdog:
            return
        self._hang_watchdog = HangWatchdog(
            lambda: self._last_ui_tick,
            threshold_seconds=15.0,
            repeat_seconds=30.0,
        )
        self._hang_watchdog.start()

    def _stop_hang_watchdog(self) -> None:
        if self._hang_watchdog:
            self._hang_watchdog.stop()
            self._hang_watchdog = None

    def _widget_height(self, widget_id: str) -> int:
        return self.query_one(f"#{widget_id}", Static).size.height

    def _widget_width(self, widget_id: str) -> int:
        return max(1, self.query_one(f"#{widget_id}", Static).size.width)

    def _show(self, widget_id: str, text: Text) -> None:
        """Update a widget only when the rendered text changed."""
        key = _text_key(text)
        if self._shown.get(widget_id) == key:
            return
        self._shown[widget_id] = key
        self.query_one(f"#{widget_id}", Static).update(text)

    def _render_playlist(self) -> None:
        height = self._widget_height("pl_title")
        if height <= 0:
            return
        session = self.session
        library = session.library
        cache = session.cache
        chapters = library.chapters
        current = library.last_chapter
        skip, take = playlist_window(current, library.chaptercount, height)
        renderers: dict[Slot, Callable[[], Text]] = {
            Slot.PLAYLIST_PERCENTAGES: lambda: render_percentages(chapters, skip, take),
            Slot.PLAYLIST_MARKERS: lambda: render_markers(
                chapters, skip, take, current
            ),
            Slot.PLAYLIST_TITLES: lambda: render_titles(
                chapters, skip, take, current, antispoiler=library.antispoiler
            ),
            Slot.PLAYLIST_LENGTHS: lambda: render_lengths(chapters, skip, take),
            Slot.PLAYLIST_BOOKMARK_COUNTS: lambda: render_bookmark_counts(
                chapters, skip, take
            ),
        }
        for widget_id, slot in _PLAYLIST_COLUMNS:
            self._show(widget_id, cache.get_or_compute(slot, renderers[slot]))

    def _render_panels(self) -> None:
        cache = self.session.cache
        height = self._widget_height("bookmarks_left")
        if height > 0:
            chapter = self.session.chapter
            left = cache.get_or_compute(
                Slot.BOOKMARKS_LEFT,
                lambda: render_bookmark_columns(chapter, height)[0],
            )
            right = cache.get_or_compute(
                Slot.BOOKMARKS_RIGHT,
                lambda: render_bookmark_columns(chapter, height)[1],
            )
            self._show("bookmarks_left", left)
            self._show("bookmarks_right", right)
        height = self._widget_height("keys_left")
        if height > 0:
            lines = keybinding_lines(self._config)
            keys_left = cache.get_or_compute(
                Slot.KEYBINDINGS_LEFT,
                lambda: render_keybinding_columns(lines, height)[0],
            )
            keys_right = cache.get_or_compute(
                Slot.KEYBINDINGS_RIGHT,
                lambda: render_keybinding_columns(lines, height)[1],
            )
            self._show("keys_left", keys_left)
            self._show("keys_right", keys_right)

    def _render_status(self, now: Optional[NowPlaying]) -> None:
        session = self.session
        chapter = session.chapter
        self._show(
            "info",
            render_info(session.library, now, marked_position=session.marked_position),
        )
        length_display = session.cache.chapter_length(chapter.length)
        self._show(
            "progress",
            render_progress(
                now, chapter.length, length_display, self._widget_width("progress")
            ),
        )
        self._show(
            "volume",
            render_volume(session.library.volume, self._widget_width("volume")),
        )
        self._show(
            "message",
            session.messages.render_line(self._widget_width("message")),
        )

    def _render_frame(self) -> None:
        if not self._mounted:
            return
        self._render_playlist()
        self._render_panels()
        self._render_status(self.session.cache.now)

    def _on_tick(self) -> None:
        self._last_ui_tick = self._now()
        self.session.tick()
        self._render_frame()

    def _help_bindings(self) -> list[Binding]:
        return [
            replace(binding, description=describe(binding.description, self._config))
            for binding in self.BINDINGS
            if isinstance(binding, Binding)
        ]

    async def _wait_for(self, screen: ModalScreen[T]) -> T:
        """Show a modal with playback paused, resuming afterwards."""
        was_playing = self.session.pause_if_playing()
        try:
            return await self.push_screen_wait(screen)
        finally:
            self.session.resume(was_playing)

    async def _prompt_text(self, title: str, default: str = "") -> Optional[str]:
        return await self._wait_for(InputPrompt(title, default))

    # --- Prompt flows ---
    async def _jump_flow(self) -> None:
        text = await self._prompt_text("Input position. Format: 1h2m3s")
        self.session.jump_to(text)

    async def _set_volume_flow(self) -> None:
        text = await self._prompt_text("Input volume. Between 0 and 100")
        self.session.set_volume_percent(text)

    async def _set_speed_flow(self) -> None:
        text = await self._prompt_text("Input speed. Bigger than 0.0")
        self.session.set_speed(text)

    async def _add_bookmark_flow(self) -> None:
        position = self.session.position()
        name = await self._prompt_text("Input bookmark name")
        self.session.add_bookmark(name, position)

    async def _bookmark_at_mark_flow(self) -> None:
        if self.session.marked_position is None:
            self.session.messages.info("There is no marked position")
            return
        name = await self._prompt_text("Input bookmark name")
        self.session.add_bookmark_at_mark(name)

    async def _description_flow(self) -> None:
        current = self.session.chapter.description or ""
        text = await self._prompt_text("Input description", current)
        self.session.set_description(text)

    async def _reset_flow(self) -> None:
        confirmed = await self._wait_for(
            ConfirmPrompt("Are you sure you want to reset the current chapter? y/n")
        )
        if confirmed:
            self.session.reset_chapter()
        else:
            self.session.messages.info("Cancelled resetting the chapter")

    async def _chapter_bookmarks_flow(self) -> None:
        labels = bookmark_choices(self.session.chapter)
        if not labels:
            self.session.messages.info("There are no bookmarks in this chapter")
            return
        choice: Optional[BookmarkAction] = await self._wait_for(
            BookmarkPicker(labels)
        )
        if choice is None:
            self.session.messages.info("Cancelled the bookmark menu")
            return
        if choice.action == "select":
            self.session.select_bookmark(choice.index)
        elif choice.action == "rename":
            current = self.session.chapter.bookmarks[choice.index].name
            name = await self._prompt_text("Input new bookmark name", current)
            self.session.rename_bookmark(choice.index, name)
        elif choice.action == "delete":
            confirmed = await self._wait_for(
                ConfirmPrompt("Are you sure you want to delete the bookmark? y/n")
            )
            if confirmed:
                self.session.delete_bookmark(choice.index)
            else:
                self.session.messages.info("Cancelled deleting the bookmark")

    async def _all_bookmarks_flow(self) -> None:
        choices = global_bookmark_choices(self.session.library)
        if not choices:
            self.session.messages.info("There are no bookmarks")
            return
        choice = await self._wait_for(GlobalBookmarkPicker(choices))
        if choice is None:
            self.session.messages.info("Cancelled the bookmark menu")
            return
        chapter_index, bookmark_index = choice
        self.session.select_global_bookmark(chapter_index, bookmark_index)

    # --- Actions ---
    def action_toggle_playback(self) -> None:
        self.session.toggle_play()

    def action_seek_back(self) -> None:
        self.session.seek_backward()

    def action_seek_forward(self) -> None:
        self.session.seek_forward()

    def action_next_chapter(self) -> None:
        self.session.next_chapter()

    def action_previous_chapter(self) -> None:
        self.session.prev_chapter()

    def action_finish_chapter(self) -> None:
        self.session.finish_chapter()

    def action_restore_jump(self) -> None:
        self.session.restore_before_jump()

    def action_restore_chapter_jump(self) -> None:
        self.session.restore_chapter_before_jump()

    def action_save_position(self) -> None:
        self.session.save_position()

    def action_restore_position(self) -> None:
        self.session.restore_saved_position()

    def action_volume_up(self) -> None:
        self.session.volume_up()

    def action_volume_down(self) -> None:
        self.session.volume_down()

    def action_speed_up(self) -> None:
        self.session.speed_up()

    def action_speed_down(self) -> None:
        self.session.speed_down()

    def action_mark_position(self) -> None:
        self.session.mark_position()

    def action_delete_description(self) -> None:
        self.session.delete_description()

    def action_toggle_antispoiler(self) -> None:
        self.session.toggle_antispoiler()

    def action_quit_app(self) -> None:
        logger.info("TUI exit requested")
        if not self.session.quit():
            return
        self.quit_recorded = True
        self.session.player.stop()
        self._stop_hang_watchdog()
        self.exit()

    async def action_quit(self) -> None:
        self.action_quit_app()

    def action_dump_threads(self) -> None:
        self.session.messages.info("Dumping threads")
        logger.info("Manual thread dump requested")
        dump_threads("manual dump")

    def action_show_help(self) -> None:
        self.run_worker(self._wait_for(HelpModal(self._help_bindings())))

    async def action_jump_to(self) -> None:
        self.run_worker(self._jump_flow(), exclusive=True)

    async def action_set_volume(self) -> None:
        self.run_worker(self._set_volume_flow(), exclusive=True)

    async def action_set_speed(self) -> None:
        self.run_worker(self._set_speed_flow(), exclusive=True)

    async def action_add_bookmark(self) -> None:
        self.run_worker(self._add_bookmark_flow(), exclusive=True)

    async def action_bookmark_at_mark(self) -> None:
        self.run_worker(self._bookmark_at_mark_flow(), exclusive=True)

    async def action_set_description(self) -> None:
        self.run_worker(self._description_flow(), exclusive=True)

    async def action_reset_chapter(self) -> None:
        self.run_worker(self._reset_flow(), exclusive=True)

    async def action_chapter_bookmarks(self) -> None:
        self.run_worker(self._chapter_bookmarks_flow(), exclusive=True)

    async def action_all_bookmarks(self) -> None:
        self.run_worker(self._all_bookmarks_flow(), exclusive=True)

    # --- Event handlers ---
    async def on_mount(self) -> None:
        self._install_asyncio_exception_handler()
        self._start_hang_watchdog()
        self.session.start(play=self._autoplay)
        self._mounted = True
        self.set_interval(self._config.tick_rate_ms / 1000, self._on_tick)
        self.call_after_refresh(self._render_frame)
        logger.info("TUI mounted")

    def on_shutdown(self) -> None:
        logger.info("TUI shutdown")
        self._stop_hang_watchdog()

    def on_resize(self, event: events.Resize) -> None:
        del event
        self.session.handle_resize()
        self._shown.clear()
        self.call_after_refresh(self._render_frame)


# Public entrypoints
def build_session(
    library: Library,
    player: Player,
    config: AppConfig,
    *,
    now: Callable[[], float] = time.monotonic,
) -> Session:
    messages = MessageQueue(now, timeout=config.message_timeout_seconds)
    return Session(library, ViewCache(), player, messages, config=config, now=now)


def run_tui(library: Library, player: Player, config: AppConfig) -> int:
    """Run the TUI and return an exit code."""
    logger.info("TUI start path=%s", library.path)
    set_console_level(logging.WARNING)
    session = build_session(library, player, config)
    app = EarmarkApp(session=session, config=config)
    app.run()
    if not app.quit_recorded and session.quit():
        session.player.stop()
    logger.info("TUI exit")
    return 0
