"""
Metadata repository error types.

All errors inherit from MetadataError for easy catching.
"""


class MetadataError(Exception):
    """Base exception for all metadata-related failures."""
    pass


class MetadataRepositoryError(MetadataError):
    """Raised when the metadata directory itself cannot be read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Metadata repository unavailable at {path}: {reason}")


class RecordNotFoundError(MetadataError):
    """Raised when a requested record does not exist."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Artifact record not found: {key}")
