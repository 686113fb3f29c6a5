"""
Display server detection for clipboard and viewer launch.
"""

import logging
import os
import shutil
import subprocess
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


def is_wayland(environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Decide whether the session runs under Wayland.

    Checks, in order: WAYLAND_DISPLAY, XDG_SESSION_TYPE=wayland, and a
    working `wl-copy --version`. Anything else is treated as X11.
    """
    env = os.environ if environ is None else environ

    if env.get("WAYLAND_DISPLAY"):
        logger.debug(f"Detected Wayland via WAYLAND_DISPLAY={env.get('WAYLAND_DISPLAY')}")
        return True

    if env.get("XDG_SESSION_TYPE") == "wayland":
        logger.debug("Detected Wayland via XDG_SESSION_TYPE=wayland")
        return True

    if shutil.which("wl-copy"):
        try:
            subprocess.run(
                ["wl-copy", "--version"],
                env=dict(env),
                capture_output=True,
                check=True,
                timeout=2,
            )
            logger.debug("Detected Wayland via wl-copy availability")
            return True
        except (OSError, subprocess.SubprocessError):
            pass

    logger.debug("Using X11 clipboard (xclip)")
    return False


def describe_display(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    if is_wayland(env):
        return (
            f"Wayland (WAYLAND_DISPLAY={env.get('WAYLAND_DISPLAY', '')}, "
            f"XDG_SESSION_TYPE={env.get('XDG_SESSION_TYPE', '')})"
        )
    return f"X11 (DISPLAY={env.get('DISPLAY', '')})"
