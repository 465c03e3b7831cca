"""User configuration for earmark.

Stored as JSON in the per-user config directory. The per-library state
(chapters, bookmarks, speed, volume) lives in the library snapshot instead.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

CONFIG_NAME = "config.json"


@dataclass(frozen=True)
class AppConfig:
    """Immutable user configuration loaded from disk."""

    last_open_path: Optional[str] = None
    antispoiler: bool = False
    tick_rate_ms: int = 33
    save_interval_seconds: int = 300
    percentage_refresh_seconds: int = 30
    seek_step_seconds: int = 5
    volume_step: float = 0.05
    speed_step: float = 0.25
    message_timeout_seconds: float = 4.0


# (minimum, maximum) for integer fields; None leaves that side open.
_INT_LIMITS: dict[str, tuple[int, Optional[int]]] = {
    "tick_rate_ms": (10, 1000),
    "save_interval_seconds": (1, None),
    "percentage_refresh_seconds": (1, None),
    "seek_step_seconds": (1, None),
}


def _is_macos() -> bool:
    return hasattr(os, "uname") and os.uname().sysname == "Darwin"  # pyright: ignore[reportAttributeAccessIssue]


def _config_root() -> Path:
    home = Path.home()
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else home / "AppData" / "Roaming"
    if _is_macos():
        return home / "Library" / "Application Support"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else home / ".config"


def get_config_dir(app_name: str = "earmark") -> Path:
    """Return (and create) the per-user config directory."""
    path = _config_root() / app_name
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_NAME


def load_config() -> AppConfig:
    """Load configuration from disk, falling back to defaults on error."""
    path = get_config_path()
    if not path.exists():
        return AppConfig()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to load config from %s", path)
        return AppConfig()
    if not isinstance(raw, dict):
        logger.warning("Ignoring config %s: expected a JSON object", path)
        return AppConfig()
    return _config_from_mapping(raw)


def save_config(cfg: AppConfig) -> None:
    """Persist configuration through a temp file and an atomic replace."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    temp_path.write_text(json.dumps(asdict(cfg), indent=2), encoding="utf-8")
    os.replace(temp_path, path)


def _clean_int(name: str, value: object, default: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        return default
    low, high = _INT_LIMITS[name]
    value = max(low, value)
    return value if high is None else min(high, value)


def _clean(name: str, value: object, default: Any) -> Any:
    if name == "last_open_path":
        return value if isinstance(value, str) and value else None
    if isinstance(default, bool):
        return value if isinstance(value, bool) else default
    if name in _INT_LIMITS:
        return _clean_int(name, value, default)
    if isinstance(default, float):
        # Steps and timeouts must stay strictly positive.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value) if value > 0 else default
        return default
    return default


def _config_from_mapping(raw: dict[str, Any]) -> AppConfig:
    """Normalize raw JSON data into an AppConfig."""
    defaults = AppConfig()
    values: dict[str, Any] = {}
    for field in fields(AppConfig):
        default = getattr(defaults, field.name)
        values[field.name] = _clean(field.name, raw.get(field.name, default), default)
    return AppConfig(**values)
