"""
Watch folder data models.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CaptureKind(str, Enum):
    """Classification of a newly created file by extension."""

    IMAGE = "image"
    VIDEO = "video"
    UNKNOWN = "unknown"


class RecordingState(str, Enum):
    """
    Completion detector states.

    WAITING_INITIAL → POLLING → {STABLE_CONFIRMED | DELETED | TIMED_OUT}
    """

    WAITING_INITIAL = "waiting_initial"
    POLLING = "polling"
    STABLE_CONFIRMED = "stable_confirmed"
    DELETED = "deleted"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RecordingState.STABLE_CONFIRMED,
            RecordingState.DELETED,
            RecordingState.TIMED_OUT,
        )


class FileObservation(BaseModel):
    """Size and modification time read at one poll."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    size: int
    mtime_ns: int


class TrackedRecording(BaseModel):
    """
    Working state for one in-flight recording.

    Lives only inside its completion detector.
    """

    model_config = ConfigDict(extra="forbid")

    path: Path
    state: RecordingState = RecordingState.WAITING_INITIAL
    last_size: Optional[int] = None
    last_mtime_ns: Optional[int] = None
    stable_checks: int = 0
    started_at: Optional[float] = Field(
        None, description="Clock reading at the first observation"
    )


class CompletionOutcome(BaseModel):
    """Terminal result of tracking one recording."""

    model_config = ConfigDict(extra="forbid")

    path: Path
    state: RecordingState
    size_bytes: Optional[int] = None
    stable_checks: int = 0
    extended: bool = Field(
        False, description="Confirmed by the extended-stability fallback while still locked"
    )
    elapsed_seconds: float = 0.0

    @property
    def confirmed(self) -> bool:
        return self.state == RecordingState.STABLE_CONFIRMED
