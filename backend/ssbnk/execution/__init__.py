"""
Execution — external transcoder adapter.

Public API:
    FFmpegGifTranscoder — Recording → looping GIF with retries
    GifRecipe — The conversion recipe parameters
    TranscodeResult / TranscodeAttempt — Invocation history
"""

from .errors import ExecutionError, TranscodeError
from .ffmpeg import FFmpegGifTranscoder, GifRecipe, build_gif_command, find_ffmpeg
from .results import TranscodeAttempt, TranscodeResult

__all__ = [
    "ExecutionError",
    "TranscodeError",
    "FFmpegGifTranscoder",
    "GifRecipe",
    "build_gif_command",
    "find_ffmpeg",
    "TranscodeAttempt",
    "TranscodeResult",
]
