"""
FFmpeg GIF transcoder.

Converts a finished screen recording into a short looping GIF preview.

Design rules:
- Exactly one recipe: first 10 s, 10 fps, 640 px wide, palette-optimized,
  infinite loop
- Up to 3 attempts, 2 s back-off before each retry
- Attempt 2 first tries an explicit input-format hint, then the generic
  invocation
- Success = exit code 0 AND a non-empty output file
- On final failure the partial output is removed and the source is left
  untouched
"""

import logging
import os
import shutil
import subprocess
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from .errors import TranscodeError
from .results import TranscodeAttempt, TranscodeResult

logger = logging.getLogger(__name__)


DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0
FORMAT_HINT_ATTEMPT = 2

# Container hint passed with -f when auto-detection fails
INPUT_FORMAT_HINTS: Dict[str, str] = {
    ".mkv": "matroska",
    ".webm": "matroska",
    ".mp4": "mov",
    ".mov": "mov",
    ".avi": "avi",
    ".flv": "flv",
    ".wmv": "asf",
}
DEFAULT_INPUT_FORMAT_HINT = "matroska"

Runner = Callable[[List[str]], subprocess.CompletedProcess]


class GifRecipe(BaseModel):
    """The single conversion recipe."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_seconds: int = 10
    fps: int = 10
    width: int = 640

    def video_filter(self) -> str:
        return (
            f"fps={self.fps},scale={self.width}:-1:flags=lanczos,"
            "split[s0][s1];[s0]palettegen[p];[s1][p]paletteuse"
        )


def find_ffmpeg() -> Optional[str]:
    """Find ffmpeg binary path."""
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        return ffmpeg_path

    # Common install locations
    common_paths = [
        "/usr/local/bin/ffmpeg",
        "/usr/bin/ffmpeg",
        "/opt/homebrew/bin/ffmpeg",
    ]
    for path in common_paths:
        if os.path.isfile(path) and os.access(path, os.X_OK):
            return path

    return None


def input_format_hint(source: Path) -> str:
    return INPUT_FORMAT_HINTS.get(source.suffix.lower(), DEFAULT_INPUT_FORMAT_HINT)


def build_gif_command(
    ffmpeg_path: str,
    source_path: str,
    output_path: str,
    recipe: GifRecipe,
    input_format: Optional[str] = None,
) -> List[str]:
    """Build the ffmpeg argument list for the GIF recipe."""
    cmd = [ffmpeg_path, "-y"]  # -y to overwrite output

    if input_format:
        cmd.extend(["-f", input_format])

    cmd.extend(["-i", source_path])
    cmd.extend(["-t", str(recipe.max_seconds)])
    cmd.extend(["-vf", recipe.video_filter()])
    cmd.extend(["-loop", "0"])
    cmd.append(output_path)

    return cmd


class FFmpegGifTranscoder:
    """
    Recording → looping GIF with bounded retries.

    The subprocess runner and sleep are injectable so the retry protocol
    can be exercised without ffmpeg or real delays.
    """

    def __init__(
        self,
        output_dir: Path,
        recipe: Optional[GifRecipe] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        command_timeout: Optional[float] = None,
        runner: Optional[Runner] = None,
        sleep: Callable[[float], None] = time.sleep,
        ffmpeg_path: Optional[str] = None,
    ):
        self.output_dir = Path(output_dir)
        self.recipe = recipe or GifRecipe()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.command_timeout = command_timeout
        self._runner = runner or self._run_subprocess
        self._sleep = sleep
        self._ffmpeg_path = ffmpeg_path

    @property
    def available(self) -> bool:
        return self._find_ffmpeg() is not None

    def _find_ffmpeg(self) -> Optional[str]:
        if self._ffmpeg_path:
            return self._ffmpeg_path
        self._ffmpeg_path = find_ffmpeg()
        return self._ffmpeg_path

    def _run_subprocess(self, cmd: List[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=self.command_timeout,
        )

    def output_path_for(self, source: Path) -> Path:
        # Unique per call: concurrent recordings never share a staging file
        return self.output_dir / f"ssbnk-{source.stem}-{uuid.uuid4().hex[:8]}.gif"

    def transcode(self, source: Path, output_path: Optional[Path] = None) -> TranscodeResult:
        """
        Convert a recording to a looping GIF.

        Returns:
            TranscodeResult with the output path and every invocation made

        Raises:
            TranscodeError: If every attempt failed
        """
        source = Path(source)
        output = Path(output_path) if output_path else self.output_path_for(source)
        started_at = datetime.now()
        attempts: List[TranscodeAttempt] = []

        logger.info(f"[FFmpeg] Converting video to GIF: {source.name}")

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                logger.info(f"[FFmpeg] Retrying video conversion (attempt {attempt}/{self.max_attempts})...")
                self._sleep(self.retry_delay)

            variants: List[Optional[str]] = [None]
            if attempt == FORMAT_HINT_ATTEMPT:
                hint = input_format_hint(source)
                logger.info(f"[FFmpeg] Trying with explicit format detection ({hint})...")
                variants = [hint, None]

            for input_format in variants:
                outcome = self._invoke(source, output, attempt, input_format)
                attempts.append(outcome)

                if outcome.succeeded:
                    logger.info(f"[FFmpeg] Video conversion successful on attempt {attempt}")
                    return TranscodeResult(
                        source_path=str(source),
                        output_path=str(output),
                        attempts=attempts,
                        started_at=started_at,
                        completed_at=datetime.now(),
                    )

                logger.warning(f"[FFmpeg] Attempt {attempt} failed: {outcome.failure_reason}")

        _remove_partial(output)
        raise TranscodeError(str(source), attempts)

    def _invoke(
        self,
        source: Path,
        output: Path,
        attempt: int,
        input_format: Optional[str],
    ) -> TranscodeAttempt:
        ffmpeg_path = self._find_ffmpeg()
        if not ffmpeg_path:
            return TranscodeAttempt(
                attempt=attempt,
                input_format=input_format,
                failure_reason="FFmpeg is not installed or not in PATH",
            )

        cmd = build_gif_command(
            ffmpeg_path=ffmpeg_path,
            source_path=str(source),
            output_path=str(output),
            recipe=self.recipe,
            input_format=input_format,
        )

        # Stale output from a previous attempt must not count as success
        _remove_partial(output)

        logger.info(f"[FFmpeg] Executing: {' '.join(cmd)}")

        try:
            completed = self._runner(cmd)
        except subprocess.TimeoutExpired:
            return TranscodeAttempt(
                attempt=attempt,
                input_format=input_format,
                command=cmd,
                failure_reason=f"FFmpeg timed out after {self.command_timeout}s",
            )
        except OSError as e:
            return TranscodeAttempt(
                attempt=attempt,
                input_format=input_format,
                command=cmd,
                failure_reason=f"Failed to start FFmpeg: {e}",
            )

        exit_code = completed.returncode
        if exit_code != 0:
            stderr = (completed.stderr or "").strip()
            return TranscodeAttempt(
                attempt=attempt,
                input_format=input_format,
                command=cmd,
                exit_code=exit_code,
                failure_reason=_tail(stderr) or f"FFmpeg exited with code {exit_code}",
            )

        try:
            size = output.stat().st_size
        except OSError:
            size = None

        if not size:
            return TranscodeAttempt(
                attempt=attempt,
                input_format=input_format,
                command=cmd,
                exit_code=exit_code,
                failure_reason="Output file was not created" if size is None else "Output file is empty",
            )

        return TranscodeAttempt(
            attempt=attempt,
            input_format=input_format,
            command=cmd,
            exit_code=exit_code,
        )


def _remove_partial(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"[FFmpeg] Failed to remove partial output {path}: {e}")


def _tail(text: str, lines: int = 5) -> str:
    return "\n".join(text.splitlines()[-lines:])
