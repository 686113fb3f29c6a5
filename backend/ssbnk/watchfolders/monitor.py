"""
Directory monitor — event-driven capture intake.

Watches the capture directories (non-recursive) with watchdog and routes
every new file by extension:
- Images: settle delay, then synchronous ingestion on the event thread
- Videos: one completion detector per file on its own thread

Renames into a watched directory count as creation, since capture tools
often write a temporary file and rename it into place.

A failure while handling one event is logged and never stops the monitor.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..execution.errors import TranscodeError
from ..publishing.errors import PublishError
from .classify import classify_capture
from .errors import WatchRegistrationError
from .models import CaptureKind
from .stability import DetectorFactory, default_detector_factory

if TYPE_CHECKING:
    from ..services.ingestion import CaptureIngestionService

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 0.1


def _event_path(raw) -> Path:
    return Path(os.fsdecode(raw))


class CaptureEventHandler(FileSystemEventHandler):
    """Translates watchdog events into DirectoryMonitor.dispatch calls."""

    def __init__(self, monitor: "DirectoryMonitor"):
        super().__init__()
        self.monitor = monitor

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.monitor.dispatch(_event_path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        dest = _event_path(event.dest_path)
        if self.monitor.is_watched_dir(dest.parent):
            self.monitor.dispatch(dest)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            return
        path = _event_path(event.src_path)
        if self.monitor.is_watched_dir(path):
            logger.error(f"Watch directory was removed: {path}; new captures there will not be seen")


class DirectoryMonitor:
    """
    Run-loop object owning the watch registrations and recording trackers.

    Everything is injected: directories, the ingestion service, the detector
    factory and the observer class. Several monitors can coexist in one
    process (tests rely on this).
    """

    def __init__(
        self,
        watch_dirs: Iterable[Path],
        ingestion: "CaptureIngestionService",
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        detector_factory: DetectorFactory = default_detector_factory,
        observer_factory: Callable[[], object] = Observer,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.watch_dirs: List[Path] = []
        for directory in watch_dirs:
            directory = Path(directory)
            if directory not in self.watch_dirs:
                self.watch_dirs.append(directory)

        self.ingestion = ingestion
        self.settle_delay = settle_delay
        self.detector_factory = detector_factory
        self._observer_factory = observer_factory
        self._sleep = sleep

        self._observer = None
        self._handler = CaptureEventHandler(self)

        # Live trackers keyed by recording path
        self._trackers: Dict[str, threading.Thread] = {}
        self._trackers_lock = threading.Lock()

        # Dead watch paths already reported by join()
        self._reported_dead: Set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Register every watch directory and start the observer thread.

        Raises:
            WatchRegistrationError: If a directory is missing or cannot be watched
        """
        if self._observer is not None:
            raise WatchRegistrationError("Monitor already started")

        observer = self._observer_factory()
        for directory in self.watch_dirs:
            if not directory.is_dir():
                raise WatchRegistrationError(f"Watch directory does not exist: {directory}")
            try:
                observer.schedule(self._handler, str(directory), recursive=False)
            except OSError as e:
                raise WatchRegistrationError(f"Failed to add watch directory {directory}: {e}") from e
            logger.info(f"Watching for captures in {directory}")

        try:
            observer.start()
        except OSError as e:
            raise WatchRegistrationError(f"Failed to start directory watcher: {e}") from e

        self._observer = observer

    def stop(self) -> None:
        """Stop the observer. In-flight trackers run to their terminal state."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("Directory monitor stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        """
        Block while the observer thread is alive.

        Watches whose emitter thread has died (read error, directory removed)
        are logged once each.
        """
        if self._observer is None:
            return
        self._observer.join(timeout)
        for path in self.dead_watches():
            if path not in self._reported_dead:
                self._reported_dead.add(path)
                logger.error(f"Watcher for {path} stopped; captures there are no longer picked up")

    def dead_watches(self) -> List[str]:
        """Watched paths whose emitter thread is no longer running."""
        if self._observer is None:
            return []
        emitters = getattr(self._observer, "emitters", ())
        return sorted(e.watch.path for e in emitters if not e.is_alive())

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def is_watched_dir(self, directory: Path) -> bool:
        try:
            resolved = directory.resolve()
            return any(resolved == d.resolve() for d in self.watch_dirs)
        except OSError:
            return False

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, path: Path) -> None:
        """Route one newly created file. Never raises."""
        try:
            kind = classify_capture(path)
            if kind == CaptureKind.IMAGE:
                self.handle_image(path)
            elif kind == CaptureKind.VIDEO:
                self.track_recording(path)
            else:
                logger.debug(f"Ignoring non-capture file: {path.name}")
        except Exception as e:
            logger.error(f"Unexpected error handling {path}: {e}")

    def handle_image(self, path: Path) -> None:
        logger.info(f"New screenshot detected: {path}")
        self._sleep(self.settle_delay)
        try:
            self.ingestion.ingest_image(path)
        except (PublishError, OSError) as e:
            logger.error(f"Error processing screenshot {path.name}: {e}")

    def track_recording(self, path: Path) -> Optional[threading.Thread]:
        """
        Spawn a completion tracker thread for a recording.

        Returns None if the path is already being tracked.
        """
        key = str(path)
        with self._trackers_lock:
            existing = self._trackers.get(key)
            if existing is not None and existing.is_alive():
                logger.debug(f"Already tracking: {path.name}")
                return None

            logger.info(f"Video recording started: {path}")
            thread = threading.Thread(
                target=self._run_tracker,
                args=(path,),
                name=f"ssbnk-track-{path.name}",
                daemon=True,
            )
            self._trackers[key] = thread
            thread.start()
        return thread

    def _run_tracker(self, path: Path) -> None:
        try:
            detector = self.detector_factory(path)
            outcome = detector.run()
            self.ingestion.handle_completed_recording(outcome)
        except TranscodeError as e:
            logger.error(f"Error processing video: {e}")
        except (PublishError, OSError) as e:
            logger.error(f"Error publishing video {path.name}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error tracking {path.name}: {e}")
        finally:
            with self._trackers_lock:
                if self._trackers.get(str(path)) is threading.current_thread():
                    del self._trackers[str(path)]

    # ------------------------------------------------------------------
    # Tracker introspection
    # ------------------------------------------------------------------

    def active_trackers(self) -> List[str]:
        with self._trackers_lock:
            return [key for key, thread in self._trackers.items() if thread.is_alive()]

    def wait_for_trackers(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every live tracker to finish.

        Returns:
            True if no tracker is left running
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._trackers_lock:
                threads = list(self._trackers.values())
            if not threads:
                return True
            for thread in threads:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                with self._trackers_lock:
                    return not any(t.is_alive() for t in self._trackers.values())
