"""Named positions inside a chapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from earmark.timefmt import format_with_offset


@dataclass
class Bookmark:
    """A user-named position, in absolute seconds from the start of the file."""

    position: int
    name: str
    start_position: Optional[int] = field(default=None, repr=False)
    formatted_position: str = field(init=False, default="")

    def __post_init__(self) -> None:
        self._refresh()

    def _refresh(self) -> None:
        self.formatted_position = format_with_offset(
            self.position, self.start_position
        )

    @property
    def label(self) -> str:
        return f'"{self.name}" at {self.formatted_position}'

    def rename(self, name: str) -> None:
        self.name = name
        self._refresh()

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "name": self.name,
            "formatted_position": self.formatted_position,
        }

    @classmethod
    def from_dict(
        cls, raw: dict[str, Any], start_position: Optional[int] = None
    ) -> "Bookmark":
        position = raw.get("position", 0)
        if not isinstance(position, int) or position < 0:
            position = 0
        if start_position is not None and position < start_position:
            position = start_position
        name = raw.get("name", "")
        if not isinstance(name, str):
            name = str(name)
        return cls(position=position, name=name, start_position=start_position)
