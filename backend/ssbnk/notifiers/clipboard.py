"""
Clipboard propagation of published URLs.

Fallback order:
1. Direct OS clipboard (wl-copy on Wayland, xclip on X11)
2. Named-pipe bridge read by the host (/tmp/ssbnk-clipboard)
3. HTTP clipboard service on the host (POST text/plain)
"""

import subprocess
from pathlib import Path
from typing import Optional

import httpx

from .base import FifoBridgeProvider, NotificationError, NotificationProvider, NotifierChain
from .display import is_wayland

CLIPBOARD_FIFO = Path("/tmp/ssbnk-clipboard")
CLIPBOARD_HTTP_URL = "http://localhost:9999"
CLIPBOARD_HTTP_TIMEOUT = 2.0
CLIPBOARD_COMMAND_TIMEOUT = 5.0


class DirectClipboardProvider(NotificationProvider):
    """Pipes the payload into wl-copy or xclip."""

    def __init__(self, wayland: Optional[bool] = None):
        self._wayland = wayland

    @property
    def name(self) -> str:
        return "direct access"

    def command(self) -> list[str]:
        wayland = is_wayland() if self._wayland is None else self._wayland
        if wayland:
            return ["wl-copy"]
        return ["xclip", "-selection", "clipboard"]

    def attempt(self, payload: str) -> None:
        cmd = self.command()
        try:
            # Output must not be piped: both tools fork a child that keeps
            # serving the selection and would hold the pipes open
            subprocess.run(
                cmd,
                input=payload,
                text=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
                timeout=CLIPBOARD_COMMAND_TIMEOUT,
            )
        except FileNotFoundError:
            raise NotificationError(f"{cmd[0]} not installed")
        except subprocess.CalledProcessError as e:
            raise NotificationError(f"{cmd[0]} exited with code {e.returncode}")
        except (OSError, subprocess.SubprocessError) as e:
            raise NotificationError(f"{cmd[0]} failed: {e}")


class HttpClipboardProvider(NotificationProvider):
    """POSTs the payload to a clipboard service listening on the host."""

    def __init__(self, url: str = CLIPBOARD_HTTP_URL, timeout: float = CLIPBOARD_HTTP_TIMEOUT):
        self.url = url
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "HTTP service"

    def attempt(self, payload: str) -> None:
        try:
            response = httpx.post(
                self.url,
                content=payload.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise NotificationError(f"request to {self.url} failed: {e}")

        if response.status_code != 200:
            raise NotificationError(f"HTTP clipboard service returned {response.status_code}")


def build_clipboard_chain(
    fifo_path: Path = CLIPBOARD_FIFO,
    http_url: str = CLIPBOARD_HTTP_URL,
) -> NotifierChain:
    return NotifierChain(
        "Clipboard",
        [
            DirectClipboardProvider(),
            FifoBridgeProvider(fifo_path, label="clipboard bridge"),
            HttpClipboardProvider(http_url),
        ],
    )
