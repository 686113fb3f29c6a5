"""
Recording completion detection.

Screen recorders give no "recording stopped" signal, so completion is
inferred by polling. A recording is complete when its size and modification
time have not changed for N consecutive checks and an exclusive open
succeeds. If the file stays locked, completion is assumed once the stable
run reaches N * extended_stability_factor checks.

Timeline with defaults:
- 2 s grace period before the first observation
- Poll every 0.5 s; 6 stable checks ≈ 3 s without growth
- Give up after 10 minutes from the first observation

Clock, sleep, stat provider and probe are injectable so tick sequences can
be simulated without real delays.
"""

import logging
import os
import sys
import time
from pathlib import Path
from typing import Callable

from .models import CompletionOutcome, FileObservation, RecordingState, TrackedRecording

if sys.platform != "win32":
    import fcntl
else:
    fcntl = None

logger = logging.getLogger(__name__)


DEFAULT_INITIAL_DELAY = 2.0
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_REQUIRED_STABLE_CHECKS = 6
DEFAULT_EXTENDED_STABILITY_FACTOR = 2
DEFAULT_TIMEOUT = 10 * 60.0

StatProvider = Callable[[Path], FileObservation]
LockProbe = Callable[[Path], bool]


def stat_observation(path: Path) -> FileObservation:
    """Read size and mtime. Raises FileNotFoundError / OSError like os.stat."""
    st = os.stat(path)
    return FileObservation(size=st.st_size, mtime_ns=st.st_mtime_ns)


def exclusive_open_probe(path: Path) -> bool:
    """
    Exclusivity probe.

    True when the file can be opened read/write and, on POSIX, a
    non-blocking exclusive flock can be taken. The lock is released
    immediately.
    """
    try:
        fd = os.open(path, os.O_RDWR)
    except OSError:
        return False

    try:
        if fcntl is not None:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError:
                return False
            fcntl.flock(fd, fcntl.LOCK_UN)
        return True
    finally:
        os.close(fd)


def format_bytes(size: int) -> str:
    """
    Human-readable byte count.

    Example:
        >>> format_bytes(1536)
        '1.5 KB'
    """
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


class RecordingCompletionDetector:
    """
    Per-recording polling state machine.

    One instance tracks one file and is discarded once run() returns.
    Instances share nothing, so any number can run on separate threads.
    """

    def __init__(
        self,
        path: Path,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        required_stable_checks: int = DEFAULT_REQUIRED_STABLE_CHECKS,
        extended_stability_factor: int = DEFAULT_EXTENDED_STABILITY_FACTOR,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        stat_provider: StatProvider = stat_observation,
        probe: LockProbe = exclusive_open_probe,
    ):
        if required_stable_checks < 1:
            raise ValueError("required_stable_checks must be at least 1")
        if extended_stability_factor < 1:
            raise ValueError("extended_stability_factor must be at least 1")

        self.initial_delay = initial_delay
        self.poll_interval = poll_interval
        self.required_stable_checks = required_stable_checks
        self.extended_stability_factor = extended_stability_factor
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self._stat = stat_provider
        self._probe = probe

        self.recording = TrackedRecording(path=Path(path))
        self._extended = False

    @property
    def state(self) -> RecordingState:
        return self.recording.state

    @property
    def extended_threshold(self) -> int:
        return self.required_stable_checks * self.extended_stability_factor

    def run(self) -> CompletionOutcome:
        """
        Track the recording until it reaches a terminal state.

        Never raises for file-level I/O problems: a vanished file ends as
        DELETED, other stat errors are logged and the tick is skipped.
        """
        rec = self.recording
        logger.info(f"Tracking video file for completion: {rec.path.name}")

        self._sleep(self.initial_delay)
        rec.state = RecordingState.POLLING
        rec.started_at = self._clock()

        while True:
            if self._clock() - rec.started_at > self.timeout:
                rec.state = RecordingState.TIMED_OUT
                logger.warning(f"Video tracking timeout for: {rec.path.name}")
                break

            try:
                observation = self._stat(rec.path)
            except FileNotFoundError:
                rec.state = RecordingState.DELETED
                logger.info(f"Video file was deleted: {rec.path.name}")
                break
            except OSError as e:
                logger.warning(f"Error checking video file {rec.path.name}: {e}")
                self._sleep(self.poll_interval)
                continue

            if self.step(observation).is_terminal:
                break

            self._sleep(self.poll_interval)

        return self.outcome()

    def step(self, observation: FileObservation) -> RecordingState:
        """
        Apply one observation.

        Unchanged non-empty size and mtime extend the stable run; anything
        else resets it. Once the run reaches the threshold the exclusivity
        probe decides, with the extended threshold as a fallback.
        """
        rec = self.recording
        if rec.state.is_terminal:
            return rec.state
        rec.state = RecordingState.POLLING

        unchanged = (
            observation.size == rec.last_size
            and observation.mtime_ns == rec.last_mtime_ns
            and observation.size > 0
        )

        if not unchanged:
            if observation.size != rec.last_size:
                logger.info(
                    f"Video still recording: {rec.path.name} (size: {format_bytes(observation.size)})"
                )
            rec.stable_checks = 0
            rec.last_size = observation.size
            rec.last_mtime_ns = observation.mtime_ns
            return rec.state

        rec.stable_checks += 1
        if rec.stable_checks < self.required_stable_checks:
            return rec.state

        if self._probe(rec.path):
            rec.state = RecordingState.STABLE_CONFIRMED
            logger.info(
                f"Video recording complete: {rec.path.name} (size: {format_bytes(observation.size)})"
            )
        elif rec.stable_checks >= self.extended_threshold:
            # Some recorders hold the file open long after the last write
            rec.state = RecordingState.STABLE_CONFIRMED
            self._extended = True
            logger.info(
                f"Video recording complete (extended stable): {rec.path.name} "
                f"(size: {format_bytes(observation.size)})"
            )
        else:
            logger.debug(
                f"Video stable but still locked: {rec.path.name} "
                f"({rec.stable_checks}/{self.extended_threshold})"
            )

        return rec.state

    def outcome(self) -> CompletionOutcome:
        rec = self.recording
        elapsed = 0.0
        if rec.started_at is not None:
            elapsed = max(0.0, self._clock() - rec.started_at)
        return CompletionOutcome(
            path=rec.path,
            state=rec.state,
            size_bytes=rec.last_size,
            stable_checks=rec.stable_checks,
            extended=self._extended,
            elapsed_seconds=elapsed,
        )


DetectorFactory = Callable[[Path], RecordingCompletionDetector]


def default_detector_factory(path: Path) -> RecordingCompletionDetector:
    return RecordingCompletionDetector(path)


def make_detector_factory(**options) -> DetectorFactory:
    """Factory producing detectors with fixed options (used by tests and the CLI)."""

    def factory(path: Path) -> RecordingCompletionDetector:
        return RecordingCompletionDetector(path, **options)

    return factory

