"""
Latest-artifact endpoints.

GET /latest            → 302 to the newest artifact
GET /latest/{offset}   → 302 to the offset-th most recent artifact

Offsets that are missing, non-numeric or negative fall back to 0.
Each request scans the metadata directory itself; nothing is cached.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import RedirectResponse

from ..metadata.errors import MetadataRepositoryError, RecordNotFoundError
from ..metadata.repository import MetadataRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["latest"])


def parse_offset(raw: str) -> int:
    """
    Parse a path offset.

    Example:
        >>> parse_offset("3"), parse_offset("abc"), parse_offset("-1")
        (3, 0, 0)
    """
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 0
    return value if value >= 0 else 0


def _redirect_to_recent(request: Request, offset: int) -> RedirectResponse:
    repository: MetadataRepository = request.app.state.repository

    try:
        record = repository.recent(offset)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Not found: offset is out of range")
    except MetadataRepositoryError as e:
        logger.error(f"Failed to read metadata directory: {e}")
        raise HTTPException(status_code=500, detail="Failed to read metadata directory")

    return RedirectResponse(url=record.url, status_code=302)


@router.get("/latest")
def latest(request: Request):
    """Redirect to the most recent artifact."""
    return _redirect_to_recent(request, 0)


@router.get("/latest/{offset}")
def latest_at(offset: str, request: Request):
    """
    Redirect to the offset-th most recent artifact (0 is the newest).

    Raises:
        404: If offset is beyond the number of records
        500: If the metadata directory cannot be read
    """
    return _redirect_to_recent(request, parse_offset(offset))
