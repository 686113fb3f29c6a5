"""
Transfer of capture content into the hosted store.

Content is first placed under a hidden staging name inside the store:
an atomic rename when source and store share a filesystem, a full copy
otherwise. Only complete staging files are ever handed to the allocator,
so no truncated file can appear under a final name.
"""

import logging
import os
import shutil
import uuid
from pathlib import Path

from .errors import TransferError

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".incoming-"

PUBLISHED_FILE_MODE = 0o644


def staging_path(store_dir: Path, ext: str) -> Path:
    return Path(store_dir) / f"{STAGING_PREFIX}{uuid.uuid4().hex}{ext}"


def stage_into_store(source: Path, staged: Path) -> bool:
    """
    Place source content at the staging path.

    Returns:
        True if the source was renamed (it no longer exists), False if it
        was copied and still needs removing by the caller.

    Raises:
        TransferError: If neither rename nor copy succeeded
    """
    try:
        os.rename(source, staged)
        _set_mode(staged)
        return True
    except OSError as e:
        logger.debug(f"Rename into store failed ({e}); copying {source.name}")

    try:
        shutil.copyfile(source, staged)
    except OSError as e:
        staged.unlink(missing_ok=True)
        raise TransferError(f"Failed to copy {source} into store: {e}") from e

    _set_mode(staged)
    return False


def discard_staged(staged: Path) -> None:
    try:
        staged.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove staging file {staged.name}: {e}")


def remove_source(source: Path) -> None:
    """Best-effort removal of a copied source."""
    try:
        source.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove original file {source}: {e}")


def _set_mode(path: Path) -> None:
    try:
        os.chmod(path, PUBLISHED_FILE_MODE)
    except OSError as e:
        logger.debug(f"Could not set mode on {path.name}: {e}")
