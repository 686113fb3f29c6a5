"""
Artifact metadata — one JSON record per published artifact.

Public API:
    ArtifactRecord — Persisted record model
    MetadataRepository — File-per-record storage with full-scan listing
"""

from .errors import MetadataError, MetadataRepositoryError, RecordNotFoundError
from .models import ArtifactRecord
from .repository import MetadataRepository

__all__ = [
    "MetadataError",
    "MetadataRepositoryError",
    "RecordNotFoundError",
    "ArtifactRecord",
    "MetadataRepository",
]
