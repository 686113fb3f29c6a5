"""
Notifier provider abstraction.

Side effects that can be delivered several ways (clipboard, viewer launch)
are modelled as an ordered chain of providers. Each provider either
delivers the payload or raises NotificationError; the chain stops at the
first success.

Design rules:
- Chains never raise; failure is a logged False
- Providers are tried in declaration order
- Providers hold no per-payload state
"""

import logging
import os
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """A single provider failed to deliver its payload."""

    pass


class NotificationProvider(ABC):
    """One delivery mechanism for a text payload."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name for logs."""
        pass

    @abstractmethod
    def attempt(self, payload: str) -> None:
        """
        Deliver the payload.

        Raises:
            NotificationError: If delivery failed
        """
        pass


class NotifierChain:
    """Ordered fallback chain of providers for one side effect."""

    def __init__(self, purpose: str, providers: Sequence[NotificationProvider]):
        self.purpose = purpose
        self.providers: List[NotificationProvider] = list(providers)

    def dispatch(self, payload: str) -> bool:
        """
        Try providers in order until one succeeds.

        Returns:
            True if any provider delivered the payload
        """
        for provider in self.providers:
            try:
                provider.attempt(payload)
            except NotificationError as e:
                logger.warning(f"{self.purpose}: {provider.name} failed: {e}")
                continue
            except Exception as e:
                logger.error(f"{self.purpose}: {provider.name} raised unexpectedly: {e}")
                continue

            logger.info(f"{self.purpose}: {provider.name} successful")
            return True

        logger.error(f"{self.purpose}: all {len(self.providers)} method(s) failed")
        return False


class FifoBridgeProvider(NotificationProvider):
    """
    Writes the payload plus newline to a named pipe watched by the host.

    The pipe is opened non-blocking: with no reader attached the open fails
    immediately instead of stalling the pipeline.
    """

    def __init__(self, fifo_path: Path, label: str = "bridge"):
        self.fifo_path = Path(fifo_path)
        self.label = label

    @property
    def name(self) -> str:
        return f"{self.label} ({self.fifo_path})"

    def attempt(self, payload: str) -> None:
        try:
            st = self.fifo_path.stat()
        except FileNotFoundError:
            raise NotificationError(f"{self.label} not available")
        except OSError as e:
            raise NotificationError(f"{self.label} not accessible: {e}")

        if not stat.S_ISFIFO(st.st_mode):
            raise NotificationError(f"{self.fifo_path} is not a named pipe")

        try:
            fd = os.open(self.fifo_path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError as e:
            raise NotificationError(f"failed to open {self.label}: {e}")

        try:
            os.write(fd, (payload + "\n").encode("utf-8"))
        except OSError as e:
            raise NotificationError(f"failed to write {self.label}: {e}")
        finally:
            os.close(fd)
