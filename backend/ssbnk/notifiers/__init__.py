"""
Best-effort side effects: clipboard, viewer launch, notification sound.

None of these ever fail a publish. Every failure is logged.
"""

from dataclasses import dataclass
from typing import Optional

from .base import NotificationError, NotificationProvider, NotifierChain, FifoBridgeProvider
from .browser import build_viewer_chain
from .clipboard import build_clipboard_chain
from .sound import NotificationSound


@dataclass
class Notifiers:
    """Side-effect collaborators handed to the ingestion pipeline."""

    clipboard: Optional[NotifierChain] = None
    viewer: Optional[NotifierChain] = None
    sound: Optional[NotificationSound] = None

    @classmethod
    def default(cls) -> "Notifiers":
        return cls(
            clipboard=build_clipboard_chain(),
            viewer=build_viewer_chain(),
            sound=NotificationSound(),
        )

    @classmethod
    def disabled(cls) -> "Notifiers":
        return cls()


__all__ = [
    "NotificationError",
    "NotificationProvider",
    "NotifierChain",
    "FifoBridgeProvider",
    "NotificationSound",
    "Notifiers",
    "build_clipboard_chain",
    "build_viewer_chain",
]
