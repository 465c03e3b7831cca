"""Message bar state and rendering."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Optional

from rich.text import Text

logger = logging.getLogger(__name__)

_LEVEL_STYLES = {
    "warn": "#ffcc66",
    "error": "#ff5f52",
}


@dataclass(frozen=True)
class StatusMessage:
    text: str
    level: str = "info"


class MessageQueue:
    """Queued user messages, shown one at a time.

    ``advance`` runs once per tick: the most recently pushed pending message
    replaces the current one, otherwise the current message expires after
    ``timeout`` seconds. Replaced and expired messages go to ``history``.
    """

    def __init__(self, now: Callable[[], float], *, timeout: float = 4.0) -> None:
        self._now = now
        self.timeout = timeout
        self.current: Optional[StatusMessage] = None
        self.pending: list[StatusMessage] = []
        self.history: list[StatusMessage] = []
        self._shown_at = now()

    def push(self, text: str, *, level: str = "info") -> None:
        self.pending.append(StatusMessage(text=text, level=level))
        if level == "error":
            logger.warning("User message: %s", text)

    def info(self, text: str) -> None:
        self.push(text)

    def warn(self, text: str) -> None:
        self.push(text, level="warn")

    def error(self, text: str) -> None:
        self.push(text, level="error")

    def advance(self) -> Optional[StatusMessage]:
        if self.pending:
            if self.current is not None:
                self.history.append(self.current)
            self.current = self.pending.pop()
            self._shown_at = self._now()
        elif self.current is not None and self._now() - self._shown_at >= self.timeout:
            self.history.append(self.current)
            self.current = None
        return self.current

    def latest_text(self) -> Optional[str]:
        """Return the newest message, pending or shown."""
        if self.pending:
            return self.pending[-1].text
        if self.current is not None:
            return self.current.text
        return None

    def render_line(self, width: int) -> Text:
        message = self.current
        if message is None:
            return Text("")
        line = message.text
        if width > 0 and len(line) > width:
            line = line[: max(0, width - 3)] + "..." if width > 3 else line[:width]
        style = _LEVEL_STYLES.get(message.level)
        return Text(line, style=style) if style else Text(line)
