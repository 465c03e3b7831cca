"""Command-line interface for earmark."""

from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
import sys
import threading
from types import TracebackType
from typing import Iterable, Optional, Tuple

from earmark.config import AppConfig, load_config, save_config
from earmark.errors import LibraryError
from earmark.hangwatch import dump_threads, enable_faulthandler
from earmark.library import Library, open_library
from earmark.logging_setup import init_logging
from earmark.player_vlc import VlcPlayer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="earmark",
        description="Terminal audiobook player that remembers where you left off",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default="",
        help="Directory holding the chapters to play",
    )
    parser.add_argument(
        "-a",
        "--antispoiler",
        action="store_true",
        help="Hide titles of upcoming chapters",
    )
    return parser


def _install_excepthooks() -> None:
    def excepthook(exc_type, exc, tb) -> None:
        logger.exception("Uncaught exception", exc_info=(exc_type, exc, tb))
        dump_threads("uncaught exception")

    sys.excepthook = excepthook

    if hasattr(threading, "excepthook"):

        def thread_hook(args: threading.ExceptHookArgs) -> None:
            exc_value = args.exc_value or RuntimeError("unknown")
            exc_info: Tuple[
                type[BaseException], BaseException, Optional[TracebackType]
            ] = (
                args.exc_type,
                exc_value,
                args.exc_traceback,
            )
            thread_name = args.thread.name if args.thread else "thread"
            logger.exception("Thread exception in %s", thread_name, exc_info=exc_info)
            dump_threads(f"thread exception in {thread_name}")

        threading.excepthook = thread_hook


def _resolve_path(path: str, config: AppConfig) -> Optional[Path]:
    if path:
        return Path(path).expanduser()
    if config.last_open_path:
        return Path(config.last_open_path)
    return None


def _report_library_error(exc: LibraryError) -> None:
    print(str(exc), file=sys.stderr)
    if exc.suggestion:
        print(f"Suggestion: {exc.suggestion}", file=sys.stderr)


def _run_tui(library: Library, player: VlcPlayer, config: AppConfig) -> int:
    try:
        from earmark.tui import run_tui
    except ImportError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return run_tui(library, player, config)


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Entry point for the CLI."""
    log_path = init_logging()
    enable_faulthandler(log_path)
    logger.info("App start")
    _install_excepthooks()

    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    config = load_config()
    path = _resolve_path(args.path, config)
    if path is None:
        print("No directory given and no previously opened one.", file=sys.stderr)
        print(
            "Suggestion: Provide a path to the directory you want to play.",
            file=sys.stderr,
        )
        return 1

    try:
        library = open_library(path)
    except LibraryError as exc:
        logger.warning("Could not open %s: %s", path, exc)
        _report_library_error(exc)
        return 1
    library.antispoiler = library.antispoiler or args.antispoiler or config.antispoiler

    config = replace(config, last_open_path=str(path.resolve()))
    try:
        save_config(config)
    except OSError:
        logger.exception("Failed to save config")

    try:
        player = VlcPlayer()
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    exit_code = _run_tui(library, player, config)

    try:
        saved = library.save()
    except OSError as exc:
        logger.exception("Failed to save library to %s", library.snapshot_path)
        print(f"Failed to save {library.snapshot_path}: {exc}", file=sys.stderr)
        return 1
    logger.info("Saved library to %s", saved)
    logger.info("App exit code=%s", exit_code)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
