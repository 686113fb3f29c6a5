"""
Watch folder error hierarchy.

Only WatchRegistrationError is fatal, and only at startup: the watcher has
no purpose without its directories. Everything else is logged per file and
the watcher keeps running.
"""


class WatchFolderError(Exception):
    """Base exception for watch folder failures."""

    pass


class WatchRegistrationError(WatchFolderError):
    """A watch directory is missing or the watch could not be registered."""

    pass
