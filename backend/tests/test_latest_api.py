"""
Tests for the latest-artifact HTTP API.

These tests verify:
1. /latest redirects (302) to the newest artifact
2. /latest/{n} walks back through history
3. Out-of-range offsets return 404
4. Non-numeric or negative offsets fall back to the newest
5. An unreadable metadata directory returns 500
6. Each request reflects records written since the previous one
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from ssbnk.config import WatcherConfig
from ssbnk.main import create_app
from ssbnk.metadata import ArtifactRecord, MetadataRepository, MetadataRepositoryError
from ssbnk.routes.latest import parse_offset


BASE = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def add_record(repository: MetadataRepository, filename: str, minutes: int) -> ArtifactRecord:
    record = ArtifactRecord(
        original_name="shot.png",
        filename=filename,
        url=f"http://x/hosted/{filename}",
        timestamp=BASE + timedelta(minutes=minutes),
        size=1,
    )
    repository.save(record)
    return record


@pytest.fixture
def client(repository: MetadataRepository) -> TestClient:
    return TestClient(create_app(repository=repository))


@pytest.fixture
def history(repository: MetadataRepository):
    add_record(repository, "a.png", 0)
    add_record(repository, "b.png", 1)
    add_record(repository, "c.png", 2)


# -----------------------------------------------------------------------------
# Redirects
# -----------------------------------------------------------------------------

class TestLatestRedirect:
    """Tests for successful lookups."""

    def test_latest(self, client, history):
        response = client.get("/latest", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "http://x/hosted/c.png"

    @pytest.mark.parametrize("offset,expected", [
        ("0", "c.png"),
        ("1", "b.png"),
        ("2", "a.png"),
    ])
    def test_offsets(self, client, history, offset, expected):
        response = client.get(f"/latest/{offset}", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == f"http://x/hosted/{expected}"

    @pytest.mark.parametrize("offset", ["abc", "-1", "1.5"])
    def test_unparseable_offset_means_newest(self, client, history, offset):
        response = client.get(f"/latest/{offset}", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "http://x/hosted/c.png"

    def test_sees_new_records_without_restart(self, client, repository, history):
        add_record(repository, "d.png", 3)

        response = client.get("/latest", follow_redirects=False)

        assert response.headers["location"] == "http://x/hosted/d.png"

    def test_corrupt_record_ignored(self, client, repository, history):
        (repository.metadata_dir / "zzz.json").write_text("{")

        response = client.get("/latest", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "http://x/hosted/c.png"


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class TestLatestErrors:
    """Tests for 404 and 500 responses."""

    def test_offset_out_of_range(self, client, history):
        response = client.get("/latest/5", follow_redirects=False)

        assert response.status_code == 404
        assert "Not found" in response.json()["detail"]

    def test_empty_store(self, client):
        response = client.get("/latest", follow_redirects=False)

        assert response.status_code == 404

    def test_unreadable_metadata_directory(self, tmp_path: Path):
        app = create_app(repository=MetadataRepository(tmp_path / "missing"))

        response = TestClient(app).get("/latest", follow_redirects=False)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to read metadata directory"

    def test_repository_error_from_any_source(self):
        repository = MagicMock(spec=MetadataRepository)
        repository.recent.side_effect = MetadataRepositoryError("/data/metadata", "EIO")

        response = TestClient(create_app(repository=repository)).get("/latest/1", follow_redirects=False)

        assert response.status_code == 500
        repository.recent.assert_called_once_with(1)


# -----------------------------------------------------------------------------
# Service endpoints and wiring
# -----------------------------------------------------------------------------

class TestServiceEndpoints:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_root(self, client):
        assert client.get("/").json()["service"] == "ssbnk-watcher"

    def test_app_from_config(self, tmp_path: Path):
        config = WatcherConfig(data_dir=tmp_path, base_url="http://x")
        config.ensure_directories()
        add_record(MetadataRepository(config.metadata_dir), "only.png", 0)

        response = TestClient(create_app(config)).get("/latest", follow_redirects=False)

        assert response.headers["location"] == "http://x/hosted/only.png"


class TestParseOffset:
    @pytest.mark.parametrize("raw,expected", [
        ("0", 0),
        ("7", 7),
        ("-3", 0),
        ("abc", 0),
        ("", 0),
        (None, 0),
    ])
    def test_parse(self, raw, expected):
        assert parse_offset(raw) == expected
