"""
Capture classification by file extension (case-insensitive).
"""

from pathlib import Path
from typing import FrozenSet, Union

from .models import CaptureKind

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})
VIDEO_EXTENSIONS: FrozenSet[str] = frozenset({".mp4", ".avi", ".mov", ".mkv", ".webm", ".flv", ".wmv"})

GIF_EXTENSION = ".gif"


def classify_capture(path: Union[str, Path]) -> CaptureKind:
    suffix = Path(path).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return CaptureKind.IMAGE
    if suffix in VIDEO_EXTENSIONS:
        return CaptureKind.VIDEO
    return CaptureKind.UNKNOWN


def is_image_file(path: Union[str, Path]) -> bool:
    return classify_capture(path) == CaptureKind.IMAGE


def is_video_file(path: Union[str, Path]) -> bool:
    return classify_capture(path) == CaptureKind.VIDEO


def is_gif_file(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() == GIF_EXTENSION
