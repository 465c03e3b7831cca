"""Terminal audiobook player with persistent bookmarks."""

__version__ = "0.1.0"
