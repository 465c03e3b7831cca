"""Logging setup for earmark."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path

_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def _default_log_dir() -> Path:
    local_appdata = os.getenv("LOCALAPPDATA")
    if local_appdata:
        return Path(local_appdata) / "Earmark" / "logs"
    return Path.home() / ".earmark" / "logs"


def _level_from_env() -> int:
    level_name = os.getenv("EARMARK_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        return logging.INFO
    return level


def _is_console(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and not isinstance(
        handler, logging.FileHandler
    )


def init_logging(app_name: str = "earmark") -> Path:
    """Initialize logging and return the log file path."""
    log_dir = _default_log_dir()
    log_path = log_dir / "app.log"
    level = _level_from_env()

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(_FORMAT)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=2_000_000,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
    except OSError:
        logging.basicConfig(level=level, format=_FORMAT)

    if not any(_is_console(h) for h in root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    logging.getLogger(app_name).info("Logging initialized at %s", log_path)
    return log_path


def set_console_level(level: int) -> None:
    """Adjust console (stderr) handler level."""
    for handler in logging.getLogger().handlers:
        if _is_console(handler):
            handler.setLevel(level)
