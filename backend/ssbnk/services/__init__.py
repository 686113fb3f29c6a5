"""
Service layer: the capture ingestion pipeline.
"""

from .ingestion import CaptureIngestionService, RECENT_GIF_WINDOW_SECONDS

__all__ = ["CaptureIngestionService", "RECENT_GIF_WINDOW_SECONDS"]
