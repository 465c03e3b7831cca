"""Modal sub-flows: text input, yes/no and bookmark pickers.

Every screen dismisses with ``None`` when cancelled.
"""

from __future__ import annotations

from typing import Generic, NamedTuple, Optional, Sequence, TypeVar

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, ListItem, ListView, Static

T = TypeVar("T")


class InputPrompt(ModalScreen[Optional[str]]):
    """Ask for one line of text."""

    def __init__(self, title: str, default: str = "") -> None:
        super().__init__()
        self._title = title
        self._default = default

    def compose(self) -> ComposeResult:
        with Container(id="prompt"):
            yield Static(self._title, id="prompt_title")
            yield Input(value=self._default, id="prompt_input")
            yield Static("Enter - Confirm | Esc - Cancel", id="prompt_hint")
            with Horizontal(id="prompt_buttons"):
                yield Button("OK", id="prompt_ok")
                yield Button("Cancel", id="prompt_cancel")

    def on_mount(self) -> None:
        self.query_one("#prompt_input", Input).focus()

    def _confirm(self) -> None:
        self.dismiss(self.query_one("#prompt_input", Input).value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._confirm()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "prompt_ok":
            self._confirm()
        else:
            self.dismiss(None)

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            event.stop()
            self.dismiss(None)


class ConfirmPrompt(ModalScreen[bool]):
    """Yes/no question answered with ``y`` or ``n``."""

    def __init__(self, question: str) -> None:
        super().__init__()
        self._question = question

    def compose(self) -> ComposeResult:
        with Container(id="prompt"):
            yield Static(self._question, id="prompt_title")
            with Horizontal(id="prompt_buttons"):
                yield Button("Yes", id="prompt_yes")
                yield Button("No", id="prompt_no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "prompt_yes")

    def on_key(self, event: events.Key) -> None:
        if event.key == "y":
            event.stop()
            self.dismiss(True)
        elif event.key in {"n", "escape", "q"}:
            event.stop()
            self.dismiss(False)


class BookmarkAction(NamedTuple):
    action: str
    index: int


class _ChoiceItem(ListItem, Generic[T]):
    def __init__(self, label: str, value: T) -> None:
        super().__init__(Label(label))
        self.value = value


class _PickerScreen(ModalScreen[Optional[T]]):
    BINDINGS = [
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("escape", "cancel", "Cancel", show=False),
        Binding("q", "cancel", "Cancel", show=False),
    ]
    HINT = "Enter - Select | j/k - Move | Esc - Cancel"

    def __init__(self, title: str, choices: Sequence[tuple[object, str]]) -> None:
        super().__init__()
        self._title = title
        self._choices = list(choices)

    def compose(self) -> ComposeResult:
        with Container(id="picker"):
            yield Static(self._title, id="picker_title")
            yield ListView(
                *(_ChoiceItem(label, value) for value, label in self._choices),
                id="picker_list",
            )
            yield Static(self.HINT, id="picker_hint")

    def on_mount(self) -> None:
        self.query_one("#picker_list", ListView).focus()

    def _list(self) -> ListView:
        return self.query_one("#picker_list", ListView)

    def highlighted_value(self) -> Optional[object]:
        item = self._list().highlighted_child
        if isinstance(item, _ChoiceItem):
            return item.value
        return None

    def action_cursor_down(self) -> None:
        self._list().action_cursor_down()

    def action_cursor_up(self) -> None:
        self._list().action_cursor_up()

    def action_cancel(self) -> None:
        self.dismiss(None)


class BookmarkPicker(_PickerScreen[BookmarkAction]):
    """Bookmarks of the current chapter: select, rename or delete one."""

    BINDINGS = [
        Binding("e", "choose('rename')", "Rename", show=False),
        Binding("d", "choose('delete')", "Delete", show=False),
    ]
    HINT = "Enter - Select | e - Rename | d - Delete | j/k - Move | Esc - Cancel"

    def __init__(self, labels: Sequence[str]) -> None:
        super().__init__("Bookmarks", list(enumerate(labels)))

    def action_choose(self, action: str) -> None:
        index = self.highlighted_value()
        if isinstance(index, int):
            self.dismiss(BookmarkAction(action, index))

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        event.stop()
        item = event.item
        if isinstance(item, _ChoiceItem):
            self.dismiss(BookmarkAction("select", item.value))


class GlobalBookmarkPicker(_PickerScreen[tuple[int, int]]):
    """Bookmarks of every chapter; returns ``(chapter_index, bookmark_index)``."""

    def __init__(self, choices: Sequence[tuple[tuple[int, int], str]]) -> None:
        super().__init__("Bookmarks (all chapters)", choices)

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        event.stop()
        item = event.item
        if isinstance(item, _ChoiceItem):
            self.dismiss(item.value)
