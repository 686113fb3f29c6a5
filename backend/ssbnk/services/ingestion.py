"""
CaptureIngestionService — canonical capture pipeline.

This is THE SINGLE ENTRY POINT from a finished capture to a hosted artifact:
- Screenshots (directly from the directory monitor)
- Recordings (after the completion detector confirms them)

Flows:
1. Image: publish under the minute timestamp name
2. Recent GIF (mtime within 5 s): publish as-is under its own name,
   then open it in the viewer and play the notification sound
3. Recording: transcode to GIF → publish → viewer + sound → delete the
   recording. On conversion failure the recording stays where it is.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from ..execution.ffmpeg import FFmpegGifTranscoder
from ..notifiers import Notifiers
from ..publishing.publisher import Publisher, PublishResult
from ..watchfolders.classify import is_gif_file
from ..watchfolders.models import CompletionOutcome, RecordingState

logger = logging.getLogger(__name__)

RECENT_GIF_WINDOW_SECONDS = 5.0


class CaptureIngestionService:
    """
    Publishes captures and fires the side effects each kind calls for.

    Stateless apart from its collaborators; safe to call from the monitor
    thread and any number of tracker threads at once.
    """

    def __init__(
        self,
        publisher: Publisher,
        transcoder: FFmpegGifTranscoder,
        notifiers: Optional[Notifiers] = None,
        wall_clock: Callable[[], float] = time.time,
        recent_gif_window: float = RECENT_GIF_WINDOW_SECONDS,
    ):
        self.publisher = publisher
        self.transcoder = transcoder
        self.notifiers = notifiers or Notifiers.disabled()
        self._wall_clock = wall_clock
        self.recent_gif_window = recent_gif_window

    def is_recent_gif(self, path: Path) -> bool:
        """
        True for a GIF modified within the recent window.

        Such a GIF was just produced by a converter rather than captured
        by the user.

        Raises:
            OSError: If the file cannot be stat'ed
        """
        if not is_gif_file(path):
            return False
        age = self._wall_clock() - path.stat().st_mtime
        return age < self.recent_gif_window

    def ingest_image(self, path: Path) -> PublishResult:
        """
        Publish a still capture.

        Raises:
            PublishError: If the store write failed
            OSError: If the capture cannot be stat'ed
        """
        path = Path(path)

        if self.is_recent_gif(path):
            # Published under its own basename, suffix case included
            result = self.publisher.publish(path, stem=path.stem, extension=path.suffix)
            self._announce(result)
            logger.info(f"GIF processed: {path.name} -> {result.url}")
            return result

        result = self.publisher.publish(path)
        logger.info(f"Screenshot processed: {path.name} -> {result.url}")
        return result

    def ingest_recording(self, path: Path) -> PublishResult:
        """
        Convert a finished recording to GIF and publish it.

        The recording is deleted only after the GIF is published.

        Raises:
            TranscodeError: If conversion failed on every attempt
            PublishError: If the GIF could not be published
        """
        path = Path(path)
        result = self.transcoder.transcode(path)
        output = Path(result.output_path)

        try:
            published = self.publisher.publish(output, original_name=path.name)
        except Exception:
            output.unlink(missing_ok=True)
            raise

        self._announce(published)

        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove original video {path.name}: {e}")

        logger.info(f"Video converted to GIF: {path.name} -> {published.url}")
        return published

    def handle_completed_recording(self, outcome: CompletionOutcome) -> Optional[PublishResult]:
        """Ingest a tracked recording if, and only if, it was confirmed complete."""
        if outcome.state != RecordingState.STABLE_CONFIRMED:
            logger.info(f"Not publishing {outcome.path.name}: tracking ended {outcome.state.value}")
            return None
        return self.ingest_recording(outcome.path)

    def _announce(self, result: PublishResult) -> None:
        if self.notifiers.sound is not None:
            self.notifiers.sound.play()
        if self.notifiers.viewer is not None:
            logger.info(f"Opening GIF in browser: {result.url}")
            if not self.notifiers.viewer.dispatch(result.url):
                logger.warning(f"Failed to open in browser: {result.url}")
