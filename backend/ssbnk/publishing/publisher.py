"""
Publisher — the single path from a capture file to a hosted artifact.

Order of operations for every publish:
1. Stage content inside the store (rename, or copy when rename fails)
2. Claim a unique final name (NameAllocator)
3. Remove the source if it was copied
4. Write the metadata record
5. Propagate the public URL to the clipboard (best-effort)

A record is never written before its artifact exists. If the record write
fails the artifact stays published and the failure is logged.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING

from ..metadata.errors import MetadataRepositoryError
from ..metadata.models import ArtifactRecord
from ..metadata.repository import MetadataRepository
from .errors import PublishError
from .naming import NameAllocator, dotted_extension, normalize_extension, timestamp_stem
from .transfer import (
    discard_staged,
    remove_source,
    stage_into_store,
    staging_path,
)

if TYPE_CHECKING:
    from ..notifiers.base import NotifierChain

logger = logging.getLogger(__name__)

HOSTED_URL_SEGMENT = "hosted"


def local_now() -> datetime:
    """Current local time, timezone-aware."""
    return datetime.now().astimezone()


@dataclass
class PublishResult:
    """Outcome of one successful store write."""

    record: ArtifactRecord
    path: Path
    recorded: bool

    @property
    def url(self) -> str:
        return self.record.url

    @property
    def filename(self) -> str:
        return self.record.filename


class Publisher:
    """
    Moves captures into the hosted store and records them.

    One Publisher (and therefore one NameAllocator) should exist per store
    directory within a process.
    """

    def __init__(
        self,
        store_dir: Path,
        repository: MetadataRepository,
        base_url: str,
        clipboard: Optional["NotifierChain"] = None,
        clock: Callable[[], datetime] = local_now,
        allocator: Optional[NameAllocator] = None,
    ):
        self.store_dir = Path(store_dir)
        self.repository = repository
        self.base_url = base_url.rstrip("/")
        self.clipboard = clipboard
        self.clock = clock
        self.allocator = allocator or NameAllocator(self.store_dir)

    def url_for(self, filename: str) -> str:
        return f"{self.base_url}/{HOSTED_URL_SEGMENT}/{filename}"

    def publish(
        self,
        source: Path,
        stem: Optional[str] = None,
        original_name: Optional[str] = None,
        extension: Optional[str] = None,
    ) -> PublishResult:
        """
        Publish a capture file.

        Args:
            source: File to publish; it is moved (or copied then removed)
            stem: Destination name stem. Defaults to the minute timestamp.
            original_name: Name recorded as original_name. Defaults to
                the source basename.
            extension: Destination extension, used verbatim. Defaults to
                the source suffix lower-cased.

        Returns:
            PublishResult with the created record

        Raises:
            PublishError: If the content could not be placed in the store
        """
        source = Path(source)
        now = self.clock()
        if extension is None:
            ext = normalize_extension(source.suffix)
        else:
            ext = dotted_extension(extension)
        stem = stem or timestamp_stem(now)

        if not source.is_file():
            raise PublishError(f"Source file does not exist: {source}")

        staged = staging_path(self.store_dir, ext)
        moved = stage_into_store(source, staged)

        try:
            dest = self.allocator.claim(staged, stem, ext)
        except PublishError:
            self._rollback(source, staged, moved)
            raise

        if not moved:
            remove_source(source)

        try:
            size = dest.stat().st_size
        except OSError as e:
            raise PublishError(f"Published file vanished: {dest}: {e}") from e

        record = ArtifactRecord(
            original_name=original_name or source.name,
            filename=dest.name,
            url=self.url_for(dest.name),
            timestamp=now,
            size=size,
            preserve=False,
        )

        recorded = True
        try:
            self.repository.save(record)
        except MetadataRepositoryError as e:
            recorded = False
            logger.error(f"Failed to save metadata for {dest.name}: {e}")

        if self.clipboard is not None and not self.clipboard.dispatch(record.url):
            logger.warning(f"Failed to copy to clipboard: {record.url}")

        logger.info(f"Published: {source.name} -> {record.url}")
        return PublishResult(record=record, path=dest, recorded=recorded)

    def _rollback(self, source: Path, staged: Path, moved: bool) -> None:
        if not moved:
            discard_staged(staged)
            return
        try:
            staged.rename(source)
        except OSError as e:
            logger.error(f"Failed to restore {source.name} from staging file {staged.name}: {e}")
