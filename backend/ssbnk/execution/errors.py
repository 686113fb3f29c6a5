"""
Execution-specific errors.

All errors are non-fatal to the application. They indicate that one
recording could not be converted; the watcher keeps running and the
source recording is left in place.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .results import TranscodeAttempt


class ExecutionError(Exception):
    """
    Base exception for execution failures.

    All execution errors inherit from this.
    """

    pass


class TranscodeError(ExecutionError):
    """
    Conversion failed on every attempt.

    Carries every attempt so the caller can log the full history.
    """

    def __init__(self, source_path: str, attempts: Optional[List["TranscodeAttempt"]] = None):
        self.source_path = source_path
        self.attempts = attempts or []
        last = self.attempts[-1].failure_reason if self.attempts else "no attempts made"
        super().__init__(
            f"Video conversion failed after {len(self.attempts)} invocation(s) for {source_path}: {last}"
        )
