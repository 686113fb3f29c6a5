"""
Metadata repository.

Each record is one JSON file named <id>.json inside the metadata directory.
Writes replace the whole file; there are no partial updates. Listing is a
full directory scan that skips unreadable or corrupt files with a warning,
so a single bad record never hides the rest.

No caching: every listing reflects whatever files exist at scan time.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List

from pydantic import ValidationError

from .errors import MetadataRepositoryError, RecordNotFoundError
from .models import ArtifactRecord

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


class MetadataRepository:
    """File-per-record store for ArtifactRecord."""

    def __init__(self, metadata_dir: Path):
        self.metadata_dir = Path(metadata_dir)

    def record_path(self, record_id: str) -> Path:
        return self.metadata_dir / f"{record_id}{RECORD_SUFFIX}"

    def save(self, record: ArtifactRecord) -> Path:
        """
        Write a record, replacing any file with the same id.

        The JSON is staged in a temporary file in the same directory and
        moved into place with os.replace, so readers never observe a
        half-written record.

        Raises:
            MetadataRepositoryError: If the file cannot be written
        """
        path = self.record_path(record.id)
        payload = record.to_json()

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{record.id}.", suffix=".tmp", dir=self.metadata_dir
            )
        except OSError as e:
            raise MetadataRepositoryError(str(self.metadata_dir), str(e)) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise MetadataRepositoryError(str(path), str(e)) from e

        logger.debug(f"Saved metadata record {record.id} -> {path.name}")
        return path

    def get(self, record_id: str) -> ArtifactRecord:
        """
        Load a single record by id.

        Raises:
            RecordNotFoundError: If no readable record exists for the id
        """
        path = self.record_path(record_id)
        try:
            return ArtifactRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise RecordNotFoundError(record_id)
        except (OSError, ValidationError) as e:
            logger.warning(f"Failed to read metadata file {path.name}: {e}")
            raise RecordNotFoundError(record_id) from e

    def list_records(self) -> List[ArtifactRecord]:
        """
        Parse every record file in the directory.

        Files are visited in sorted filename order. Hidden staging files are
        ignored. Files that fail to read or parse are skipped with a warning.

        Raises:
            MetadataRepositoryError: If the directory itself cannot be read
        """
        try:
            paths = sorted(
                p for p in self.metadata_dir.iterdir()
                if p.name.endswith(RECORD_SUFFIX) and not p.name.startswith(".")
            )
        except OSError as e:
            raise MetadataRepositoryError(str(self.metadata_dir), str(e)) from e

        records = []
        for path in paths:
            try:
                data = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Failed to read metadata file {path.name}: {e}")
                continue

            try:
                records.append(ArtifactRecord.model_validate_json(data))
            except ValidationError as e:
                logger.warning(f"Failed to parse metadata file {path.name}: {e}")
                continue

        return records

    def list_recent(self) -> List[ArtifactRecord]:
        """All parsable records, newest first. Ties keep scan order."""
        return sorted(self.list_records(), key=lambda r: r.timestamp, reverse=True)

    def recent(self, offset: int = 0) -> ArtifactRecord:
        """
        Return the offset-th most recent record (0 is the newest).

        Raises:
            RecordNotFoundError: If offset is negative or out of range
            MetadataRepositoryError: If the directory cannot be read
        """
        records = self.list_recent()
        if offset < 0 or offset >= len(records):
            raise RecordNotFoundError(f"offset {offset} (have {len(records)})")
        return records[offset]
