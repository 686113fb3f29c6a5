"""
Watch folders — capture intake.

Event-driven discovery of new captures and polling-based completion
detection for screen recordings.

Public API:
    classify_capture — Extension-based image/video classification
    RecordingCompletionDetector — Per-recording stability state machine
    DirectoryMonitor — Orchestration: watch → classify → ingest / track
"""

from .errors import WatchFolderError, WatchRegistrationError
from .models import (
    CaptureKind,
    RecordingState,
    FileObservation,
    TrackedRecording,
    CompletionOutcome,
)
from .classify import classify_capture, IMAGE_EXTENSIONS, VIDEO_EXTENSIONS
from .stability import RecordingCompletionDetector, make_detector_factory
from .monitor import DirectoryMonitor

__all__ = [
    # Errors
    "WatchFolderError",
    "WatchRegistrationError",
    # Models
    "CaptureKind",
    "RecordingState",
    "FileObservation",
    "TrackedRecording",
    "CompletionOutcome",
    # Classification
    "classify_capture",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    # Core
    "RecordingCompletionDetector",
    "make_detector_factory",
    "DirectoryMonitor",
]
