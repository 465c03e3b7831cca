"""Errors that stop a library from opening."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class LibraryError(Exception):
    """A library could not be opened. ``suggestion`` tells the user how to fix it."""

    suggestion: str = ""

    def __init__(self, message: str, *, suggestion: str = "") -> None:
        super().__init__(message)
        if suggestion:
            self.suggestion = suggestion


class MissingExtensionError(LibraryError):
    def __init__(self, path: Path) -> None:
        super().__init__(
            f"{path} has no extension",
            suggestion="Rename the file with its audio extension or move it out "
            "of the directory.",
        )
        self.path = path


class EmptyLibraryError(LibraryError):
    def __init__(self, path: Path) -> None:
        super().__init__(
            f"{path} is empty or has no files with supported extensions",
            suggestion="Provide a directory containing flac, m4a, m4b, mp3, mp4, "
            "ogg, opus or wav files.",
        )
        self.path = path


class LibraryScanError(LibraryError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"Could not read {path}: {reason}",
            suggestion="Check that the directory exists and is readable.",
        )
        self.path = path


class MissingFilesError(LibraryError):
    """The saved snapshot names files that are no longer on disk."""

    def __init__(self, snapshot: Path, missing: Iterable[Path]) -> None:
        self.snapshot = snapshot
        self.missing = sorted(set(missing))
        listed = ", ".join(str(path) for path in self.missing)
        super().__init__(
            f"{listed} exist in {snapshot.name} but are not present in the directory",
            suggestion=f"Restore those files or remove/rename them manually in "
            f"{snapshot.name}.",
        )


class SnapshotError(LibraryError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"Could not load {path}: {reason}",
            suggestion=f"Fix or delete {path.name} to rebuild the library.",
        )
        self.path = path


class ProbeError(LibraryError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"Could not probe {path}: {reason}",
            suggestion="Make sure the file is a readable audio file.",
        )
        self.path = path
