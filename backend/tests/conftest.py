"""
Shared fixtures for the ssbnk test suite.
"""

import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence, Union
from unittest.mock import MagicMock

import pytest

from ssbnk.metadata.repository import MetadataRepository
from ssbnk.notifiers import Notifiers
from ssbnk.publishing.publisher import Publisher
from ssbnk.watchfolders.models import FileObservation


FIXED_NOW = datetime(2024, 1, 15, 10, 30, 12, tzinfo=timezone.utc)
BASE_URL = "http://x"


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedStat:
    """
    Stat provider replaying a script of observations.

    Entries may be FileObservation or an exception instance to raise.
    The last entry repeats once the script is exhausted.
    """

    def __init__(self, script: Sequence[Union[FileObservation, BaseException]]):
        self.script = list(script)
        self.calls = 0

    def __call__(self, path: Path) -> FileObservation:
        index = min(self.calls, len(self.script) - 1)
        self.calls += 1
        entry = self.script[index]
        if isinstance(entry, BaseException):
            raise entry
        return entry


def obs(size: int, mtime_ns: int = 1) -> FileObservation:
    return FileObservation(size=size, mtime_ns=mtime_ns)


def set_age(path: Path, seconds: float) -> None:
    """Backdate a file's mtime by the given number of seconds."""
    ts = time.time() - seconds
    os.utime(path, (ts, ts))


@pytest.fixture
def data_dirs(tmp_path: Path):
    """hosted/ and metadata/ under a temporary data root."""
    hosted = tmp_path / "data" / "hosted"
    metadata = tmp_path / "data" / "metadata"
    hosted.mkdir(parents=True)
    metadata.mkdir(parents=True)
    return hosted, metadata


@pytest.fixture
def repository(data_dirs) -> MetadataRepository:
    _, metadata = data_dirs
    return MetadataRepository(metadata)


@pytest.fixture
def clipboard() -> MagicMock:
    chain = MagicMock()
    chain.dispatch.return_value = True
    return chain


@pytest.fixture
def notifiers(clipboard) -> Notifiers:
    viewer = MagicMock()
    viewer.dispatch.return_value = True
    return Notifiers(clipboard=clipboard, viewer=viewer, sound=MagicMock())


@pytest.fixture
def publisher(data_dirs, repository, clipboard) -> Publisher:
    hosted, _ = data_dirs
    return Publisher(
        store_dir=hosted,
        repository=repository,
        base_url=BASE_URL,
        clipboard=clipboard,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def capture_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "screenshots"
    directory.mkdir()
    return directory
