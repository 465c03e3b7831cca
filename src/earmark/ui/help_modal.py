"""Help modal for earmark."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Static

_SECTION_ACTIONS: dict[str, list[str]] = {
    "Playback": [
        "toggle_playback",
        "seek_back",
        "seek_forward",
        "jump_to",
        "reset_chapter",
        "speed_up",
        "speed_down",
        "set_speed",
        "volume_up",
        "volume_down",
        "set_volume",
    ],
    "Chapters": [
        "next_chapter",
        "previous_chapter",
        "finish_chapter",
        "restore_jump",
        "restore_chapter_jump",
        "save_position",
        "restore_position",
    ],
    "Bookmarks": [
        "add_bookmark",
        "mark_position",
        "bookmark_at_mark",
        "chapter_bookmarks",
        "all_bookmarks",
    ],
    "Display": [
        "set_description",
        "delete_description",
        "toggle_antispoiler",
    ],
    "General": [
        "show_help",
        "quit_app",
    ],
    "Troubleshooting": [
        "dump_threads",
    ],
}

_ACTION_OVERRIDES: dict[str, str] = {
    "show_help": "Open help",
    "all_bookmarks": "Bookmarks of every chapter",
}

_PICKER_HELP: list[tuple[str, str]] = [
    ("Bookmark menu", "j/k Move | Enter Jump | e Rename | d Delete | Esc Cancel"),
    ("Prompts", "Enter Confirm | Esc Cancel"),
]


def _format_key(key: str) -> str:
    key_map = {
        "left": "←",
        "right": "→",
        "up": "↑",
        "down": "↓",
        "space": "Space",
        "enter": "Enter",
        "equals_sign": "=",
        "plus": "+",
        "minus": "-",
        "comma": ",",
        "semicolon": ";",
        "colon": ":",
        "question_mark": "?",
    }
    if key in key_map:
        return key_map[key]
    parts = key.split("+")
    formatted: list[str] = []
    for part in parts:
        if len(part) == 1:
            formatted.append(part)
        else:
            formatted.append(part.capitalize())
    return "+".join(formatted)


def build_help_text(bindings: Iterable[Binding]) -> Text:
    by_action: dict[str, list[str]] = defaultdict(list)
    by_desc: dict[str, str] = {}
    for binding in bindings:
        by_action[binding.action].append(binding.key)
        if binding.description:
            by_desc[binding.action] = binding.description

    content = Text()
    first_section = True
    for section, actions in _SECTION_ACTIONS.items():
        if not first_section:
            content.append("\n")
        first_section = False
        content.append(f"{section}\n", style="bold #5fc9d6")
        for action in actions:
            keys = by_action.get(action)
            if not keys:
                continue
            key_text = ", ".join(_format_key(key) for key in keys)
            label = _ACTION_OVERRIDES.get(action, by_desc.get(action, action))
            content.append(f"{key_text} : {label}\n")

        if section == "Troubleshooting":
            content.append("Logs : %LOCALAPPDATA%/Earmark/logs or ~/.earmark/logs\n")

    content.append("\n")
    content.append("Menus\n", style="bold #5fc9d6")
    for label, description in _PICKER_HELP:
        content.append(f"{label} : {description}\n")

    return content


class HelpModal(ModalScreen[None]):
    """Help modal listing keybinds and usage."""

    def __init__(self, bindings: Iterable[Binding]) -> None:
        super().__init__()
        self._help_bindings = list(bindings)

    def compose(self) -> ComposeResult:
        content = build_help_text(self._help_bindings)
        with Vertical(id="help_modal"):
            yield Static("Earmark Help", id="help_title")
            with VerticalScroll(id="help_scroll"):
                yield Static(content, id="help_content")
            with Horizontal(id="help_footer"):
                yield Static("Esc/q : Close", id="help_hint")
                yield Button("Close", id="help_close")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "help_close":
            self.dismiss(None)

    def on_key(self, event: events.Key) -> None:
        if event.key in {"escape", "q", "question_mark"}:
            self.dismiss(None)
