"""
ssbnk HTTP service — latest-artifact redirect API.
"""

from typing import Optional

from fastapi import FastAPI

from . import __version__
from .config import WatcherConfig
from .metadata.repository import MetadataRepository
from .routes import latest


def create_app(
    config: Optional[WatcherConfig] = None,
    repository: Optional[MetadataRepository] = None,
) -> FastAPI:
    """
    Create the API application.

    Args:
        config: Watcher configuration. Read from the environment if omitted.
        repository: Metadata repository. Built from config if omitted.

    Returns:
        FastAPI application serving /latest
    """
    if repository is None:
        config = config or WatcherConfig.from_env()
        repository = MetadataRepository(config.metadata_dir)

    app = FastAPI(title="ssbnk", version=__version__)
    app.state.repository = repository

    app.include_router(latest.router)

    @app.get("/")
    def root():
        return {"service": "ssbnk-watcher", "status": "running"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
