"""
Audible notification cue.

A 0.2 s 800 Hz sine through ffplay, played on a background thread.
Falls back to the terminal bell. Best-effort only.
"""

import logging
import subprocess
import sys
import threading

logger = logging.getLogger(__name__)

FFPLAY_COMMAND = [
    "ffplay",
    "-nodisp",
    "-autoexit",
    "-loglevel", "quiet",
    "-f", "lavfi",
    "-i", "sine=frequency=800:duration=0.2",
]
FFPLAY_TIMEOUT = 5.0


def _play() -> None:
    try:
        subprocess.run(
            FFPLAY_COMMAND,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
            timeout=FFPLAY_TIMEOUT,
        )
        return
    except (OSError, subprocess.SubprocessError) as e:
        ffplay_error = e

    try:
        sys.stdout.write("\a")
        sys.stdout.flush()
    except (OSError, ValueError):
        logger.warning(f"Failed to play notification sound: {ffplay_error}")


class NotificationSound:
    """Plays the cue without blocking the caller."""

    def __init__(self, background: bool = True):
        self.background = background

    def play(self) -> None:
        if not self.background:
            _play()
            return
        threading.Thread(target=_play, name="ssbnk-sound", daemon=True).start()
