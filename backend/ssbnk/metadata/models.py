"""
Artifact record model.

One record per published artifact. Field names are the on-disk JSON keys.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_record_id() -> str:
    """Generate a record identifier (UUIDv4)."""
    return str(uuid.uuid4())


class ArtifactRecord(BaseModel):
    """
    Metadata for one published artifact.

    Created exactly once by the publisher after the artifact exists in the
    hosted store. Never updated in place by the pipeline; `preserve` is
    reserved for an external retention process.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_record_id)
    original_name: str = Field(..., description="Basename of the source capture")
    filename: str = Field(..., description="Basename under the hosted store")
    url: str = Field(..., description="Public reference to the artifact")
    timestamp: datetime = Field(..., description="Publish time")
    description: Optional[str] = None
    batch_id: Optional[str] = None
    preserve: bool = False
    repo_name: Optional[str] = None
    size: int = Field(..., ge=0, description="Published file size in bytes")

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        # Records written without an offset are read as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)
