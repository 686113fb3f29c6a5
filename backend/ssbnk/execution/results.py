"""
Transcode result models.

Structured record of every ffmpeg invocation made for one recording.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscodeAttempt(BaseModel):
    """One ffmpeg invocation."""

    model_config = ConfigDict(extra="forbid")

    attempt: int
    """1-based attempt number this invocation belongs to."""

    input_format: Optional[str] = None
    """Explicit -f hint, None for the generic invocation."""

    command: List[str] = Field(default_factory=list)

    exit_code: Optional[int] = None
    """Process exit code, None if the process never ran to completion."""

    failure_reason: Optional[str] = None
    """Why this invocation did not count as success (None on success)."""

    @property
    def succeeded(self) -> bool:
        return self.failure_reason is None


class TranscodeResult(BaseModel):
    """Successful conversion of one recording."""

    model_config = ConfigDict(extra="forbid")

    source_path: str
    output_path: str
    attempts: List[TranscodeAttempt] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def summary(self) -> str:
        duration = self.duration_seconds()
        duration_str = f" ({duration:.1f}s)" if duration is not None else ""
        return (
            f"SUCCESS after {len(self.attempts)} invocation(s){duration_str}: "
            f"{self.source_path} → {self.output_path}"
        )
