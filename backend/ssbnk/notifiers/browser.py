"""
Viewer launch for freshly published GIFs.

Fallback order:
1. xdg-open <url> (started, not awaited)
2. Named-pipe bridge read by the host (/tmp/ssbnk-browser)
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, Mapping, Optional

from .base import FifoBridgeProvider, NotificationError, NotificationProvider, NotifierChain
from .display import is_wayland

BROWSER_FIFO = Path("/tmp/ssbnk-browser")
DEFAULT_DISPLAY = ":0"
DEFAULT_XDG_RUNTIME_DIR = "/run/user/1000"


def viewer_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Environment for xdg-open inside a container with host display access.

    Fills in DISPLAY for X11 and XDG_RUNTIME_DIR for Wayland when unset.
    """
    env = dict(os.environ if environ is None else environ)
    if not env.get("DISPLAY"):
        env["DISPLAY"] = DEFAULT_DISPLAY
    if is_wayland(env) and not env.get("XDG_RUNTIME_DIR"):
        env["XDG_RUNTIME_DIR"] = DEFAULT_XDG_RUNTIME_DIR
    return env


class XdgOpenProvider(NotificationProvider):
    @property
    def name(self) -> str:
        return "xdg-open"

    def attempt(self, payload: str) -> None:
        try:
            subprocess.Popen(
                ["xdg-open", payload],
                env=viewer_environment(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise NotificationError(f"xdg-open failed: {e}")


def build_viewer_chain(fifo_path: Path = BROWSER_FIFO) -> NotifierChain:
    return NotifierChain(
        "Browser",
        [
            XdgOpenProvider(),
            FifoBridgeProvider(fifo_path, label="browser notification bridge"),
        ],
    )
