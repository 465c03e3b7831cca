"""Compact ``1h2m3s`` time strings."""

from __future__ import annotations

import re
from typing import Optional

_POSITION_RE = re.compile(r"(?:([0-9]+)h)?(?:([0-9]+)m)?(?:([0-9]+)s)?")


def format_time(seconds: int) -> str:
    """Render seconds using the coarsest unit needed.

    ``0`` -> ``"0s"``, ``61`` -> ``"1m1s"``, ``3600`` -> ``"1h0m0s"``.
    """
    if seconds < 0:
        raise ValueError(f"negative time: {seconds}")
    minutes, secs = divmod(seconds, 60)
    if minutes == 0:
        return f"{secs}s"
    hours, minutes = divmod(minutes, 60)
    if hours == 0:
        return f"{minutes}m{secs}s"
    return f"{hours}h{minutes}m{secs}s"


def format_with_offset(position: int, start_position: Optional[int] = None) -> str:
    """Render ``position`` relative to ``start_position`` followed by the absolute value.

    Without a start position only the absolute form is returned. Each side
    picks its own coarsest unit, so the offset may be terser than the
    absolute position: ``format_with_offset(3605, 3600) == "5s(1h0m5s)"``.
    """
    if start_position is None:
        return format_time(position)
    if position < start_position:
        raise ValueError(
            f"position {position} lies before the chapter start {start_position}"
        )
    return f"{format_time(position - start_position)}({format_time(position)})"


def parse_time(text: str) -> Optional[int]:
    """Parse ``"1h2m3s"`` style input into seconds.

    Units must appear in descending order, each one at most once, with no
    separators. Returns ``None`` for anything else and for a total of zero.
    """
    match = _POSITION_RE.fullmatch(text)
    if match is None:
        return None
    hours, minutes, seconds = (int(group) if group else 0 for group in match.groups())
    total = hours * 3600 + minutes * 60 + seconds
    if total == 0:
        return None
    return total
