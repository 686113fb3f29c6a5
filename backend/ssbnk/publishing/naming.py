"""
Destination naming for the hosted store.

Default names are local-time minute stamps (YYYYMMDD-HHMM) plus the
artifact's extension. When the name is taken, -1, -2, ... is appended
until a free name is found.

Allocation is serialized through a single NameAllocator per store, and the
final claim uses os.link, which fails if the destination exists. Two
publishers (threads or processes) can therefore never both win the same
name, and the destination only ever appears with its full content.
"""

import errno
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from .errors import NameAllocationError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M"

DEFAULT_MAX_CANDIDATES = 10_000

# link() unsupported by the filesystem or forbidden for this file
_NO_HARDLINK_ERRNOS = {
    errno.EPERM,
    errno.EXDEV,
    errno.EMLINK,
    errno.ENOTSUP,
    errno.EOPNOTSUPP,
    errno.ENOSYS,
}


def timestamp_stem(now: datetime) -> str:
    """Minute-granularity name stem, e.g. 20240115-1030."""
    return now.strftime(TIMESTAMP_FORMAT)


def dotted_extension(ext: str) -> str:
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def normalize_extension(ext: str) -> str:
    return dotted_extension(ext.lower())


def candidate_names(stem: str, ext: str, limit: int = DEFAULT_MAX_CANDIDATES) -> Iterator[str]:
    """
    Yield stem.ext, stem-1.ext, stem-2.ext, ...

    Example:
        >>> list(candidate_names("20240115-1030", ".png", limit=3))
        ['20240115-1030.png', '20240115-1030-1.png', '20240115-1030-2.png']
    """
    ext = dotted_extension(ext)
    yield f"{stem}{ext}"
    for counter in range(1, limit):
        yield f"{stem}-{counter}{ext}"


class NameAllocator:
    """
    Single owner of name allocation for one store directory.

    claim() takes a fully written staging file inside the store and gives
    it a unique final name. The staging file is consumed either way it
    succeeds.
    """

    def __init__(self, store_dir: Path, max_candidates: int = DEFAULT_MAX_CANDIDATES):
        self.store_dir = Path(store_dir)
        self.max_candidates = max_candidates
        self._lock = threading.Lock()

    def claim(self, staged: Path, stem: str, ext: str) -> Path:
        """
        Move a staged file to the first free candidate name.

        Args:
            staged: Complete file inside the store directory
            stem: Name stem (timestamp or original basename stem)
            ext: Extension, with or without leading dot

        Returns:
            Final destination path

        Raises:
            NameAllocationError: If no candidate could be claimed
        """
        with self._lock:
            for name in candidate_names(stem, ext, self.max_candidates):
                dest = self.store_dir / name
                claimed = self._try_claim(staged, dest)
                if claimed:
                    return dest
                logger.debug(f"Name taken, trying next: {name}")

        raise NameAllocationError(
            f"No free name for {stem}{dotted_extension(ext)} after {self.max_candidates} candidates"
        )

    def _try_claim(self, staged: Path, dest: Path) -> bool:
        try:
            os.link(staged, dest)
        except FileExistsError:
            return False
        except OSError as e:
            if e.errno not in _NO_HARDLINK_ERRNOS:
                raise NameAllocationError(f"Failed to claim {dest.name}: {e}") from e
            return self._claim_without_link(staged, dest)

        try:
            staged.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove staging file {staged.name}: {e}")
        return True

    def _claim_without_link(self, staged: Path, dest: Path) -> bool:
        # Check-then-replace; only atomic with respect to this allocator's lock
        if dest.exists():
            return False
        try:
            os.replace(staged, dest)
        except OSError as e:
            raise NameAllocationError(f"Failed to claim {dest.name}: {e}") from e
        return True

    def peek(self, stem: str, ext: str) -> Optional[str]:
        """First candidate name not currently present. Informational only."""
        for name in candidate_names(stem, ext, self.max_candidates):
            if not (self.store_dir / name).exists():
                return name
        return None
