"""
Watcher configuration.

All settings have fixed defaults and can be overridden through SSBNK_*
environment variables. CLI flags override the environment.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


ENV_SCREENSHOT_DIR = "SSBNK_SCREENSHOT_DIR"
ENV_SCREENCAST_DIR = "SSBNK_SCREENCAST_DIR"
ENV_DATA_DIR = "SSBNK_DATA_DIR"
ENV_BASE_URL = "SSBNK_URL"
ENV_API_HOST = "SSBNK_API_HOST"
ENV_API_PORT = "SSBNK_API_PORT"
ENV_TEMP_DIR = "SSBNK_TEMP_DIR"
ENV_LOG_LEVEL = "SSBNK_LOG_LEVEL"

DEFAULT_SCREENSHOT_DIR = "/media/screenshots"
DEFAULT_SCREENCAST_DIR = "/media/screencasts"
DEFAULT_DATA_DIR = "/data"
DEFAULT_BASE_URL = "https://ss.yourdomain.com"
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8081

HOSTED_FOLDER = "hosted"
METADATA_FOLDER = "metadata"


class ConfigError(Exception):
    """Base exception for configuration failures."""

    pass


class StartupError(ConfigError):
    """Required directories could not be created. Fatal."""

    pass


class WatcherConfig(BaseModel):
    """
    Effective configuration for one watcher process.

    screencast_dir is optional: when unset (or equal to screenshot_dir)
    only the screenshot directory is watched and recordings dropped there
    are still recognised by extension.
    """

    model_config = {"extra": "forbid"}

    screenshot_dir: Path = Field(
        default=Path(DEFAULT_SCREENSHOT_DIR),
        description="Directory receiving still captures",
    )
    screencast_dir: Optional[Path] = Field(
        default=Path(DEFAULT_SCREENCAST_DIR),
        description="Directory receiving screen recordings",
    )
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root holding hosted/ and metadata/",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Public base URL the hosted/ directory is served under",
    )
    api_host: str = Field(default=DEFAULT_API_HOST)
    api_port: int = Field(default=DEFAULT_API_PORT, ge=1, le=65535)
    temp_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Staging directory for transcoder output",
    )
    log_level: str = Field(default="INFO")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("base_url must not be empty")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "WatcherConfig":
        """
        Build configuration from SSBNK_* environment variables.

        Empty variables count as unset. Keyword overrides whose value is
        None are ignored so CLI flags can be passed through unconditionally.
        """
        env = os.environ if environ is None else environ

        def _get(key: str) -> Optional[str]:
            value = env.get(key)
            return value if value else None

        values = {
            "screenshot_dir": _get(ENV_SCREENSHOT_DIR),
            "screencast_dir": _get(ENV_SCREENCAST_DIR),
            "data_dir": _get(ENV_DATA_DIR),
            "base_url": _get(ENV_BASE_URL),
            "api_host": _get(ENV_API_HOST),
            "api_port": _get(ENV_API_PORT),
            "temp_dir": _get(ENV_TEMP_DIR),
            "log_level": _get(ENV_LOG_LEVEL),
        }
        values.update(overrides)

        return cls(**{k: v for k, v in values.items() if v is not None})

    @property
    def hosted_dir(self) -> Path:
        return self.data_dir / HOSTED_FOLDER

    @property
    def metadata_dir(self) -> Path:
        return self.data_dir / METADATA_FOLDER

    @property
    def watch_dirs(self) -> list[Path]:
        """Distinct directories to watch, screenshots first."""
        dirs = [self.screenshot_dir]
        if self.screencast_dir is not None and self.screencast_dir != self.screenshot_dir:
            dirs.append(self.screencast_dir)
        return dirs

    def ensure_directories(self) -> None:
        """
        Create hosted/ and metadata/ under data_dir.

        Raises:
            StartupError: If either directory cannot be created
        """
        for directory in (self.hosted_dir, self.metadata_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StartupError(f"Failed to create directory {directory}: {e}") from e

    def log_summary(self) -> None:
        logger.info(f"Screenshot directory: {self.screenshot_dir}")
        logger.info(f"Video watch directory: {self.screencast_dir}")
        logger.info(f"Data directory: {self.data_dir}")
        logger.info(f"Base URL: {self.base_url}")
