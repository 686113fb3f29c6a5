"""
Tests for destination naming and the publisher.

These tests verify:
1. Timestamp stems and collision suffixes (-1, -2, ...)
2. A publish moves the capture, records it, and copies the URL
3. Cross-filesystem publishes fall back to copy + delete
4. Failed transfers leave the source untouched and the store clean
5. Metadata failures never unpublish the artifact
6. Concurrent publishes in the same minute never share a name
"""

import errno
import threading
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ssbnk.metadata import MetadataRepository, MetadataRepositoryError
from ssbnk.publishing import (
    NameAllocationError,
    NameAllocator,
    Publisher,
    PublishError,
    TransferError,
    candidate_names,
    timestamp_stem,
)
from ssbnk.publishing.transfer import STAGING_PREFIX

from conftest import BASE_URL, FIXED_NOW


def make_capture(directory: Path, name: str, content: bytes = b"\x89PNG fake") -> Path:
    path = directory / name
    path.write_bytes(content)
    return path


def store_names(store: Path):
    return sorted(p.name for p in store.iterdir())


# -----------------------------------------------------------------------------
# Naming
# -----------------------------------------------------------------------------

class TestNaming:
    """Tests for timestamp stems and candidate sequences."""

    def test_timestamp_stem_is_minute_granular(self):
        assert timestamp_stem(datetime(2024, 1, 15, 10, 30, 59)) == "20240115-1030"

    def test_candidates(self):
        names = list(candidate_names("20240115-1030", ".png", limit=3))

        assert names == ["20240115-1030.png", "20240115-1030-1.png", "20240115-1030-2.png"]

    def test_candidate_extension_gets_dot_and_keeps_case(self):
        assert next(candidate_names("x", "GIF")) == "x.GIF"
        assert next(candidate_names("x", ".gif")) == "x.gif"

    def test_claim_skips_taken_names(self, tmp_path: Path):
        (tmp_path / "s.png").write_bytes(b"taken")
        (tmp_path / "s-1.png").write_bytes(b"taken")
        staged = tmp_path / ".incoming-abc.png"
        staged.write_bytes(b"new")

        dest = NameAllocator(tmp_path).claim(staged, "s", ".png")

        assert dest.name == "s-2.png"
        assert dest.read_bytes() == b"new"
        assert not staged.exists()
        assert (tmp_path / "s.png").read_bytes() == b"taken"

    def test_claim_exhausted(self, tmp_path: Path):
        (tmp_path / "s.png").write_bytes(b"taken")
        (tmp_path / "s-1.png").write_bytes(b"taken")
        staged = tmp_path / ".incoming-abc.png"
        staged.write_bytes(b"new")

        with pytest.raises(NameAllocationError):
            NameAllocator(tmp_path, max_candidates=2).claim(staged, "s", ".png")

    def test_claim_without_hardlinks(self, tmp_path: Path):
        """Filesystems without link() still get unique names."""
        (tmp_path / "s.png").write_bytes(b"taken")
        staged = tmp_path / ".incoming-abc.png"
        staged.write_bytes(b"new")

        with patch("ssbnk.publishing.naming.os.link", side_effect=OSError(errno.EPERM, "no links")):
            dest = NameAllocator(tmp_path).claim(staged, "s", ".png")

        assert dest.name == "s-1.png"
        assert dest.read_bytes() == b"new"
        assert not staged.exists()

    def test_peek(self, tmp_path: Path):
        (tmp_path / "s.png").write_bytes(b"taken")

        assert NameAllocator(tmp_path).peek("s", ".png") == "s-1.png"


# -----------------------------------------------------------------------------
# Publish
# -----------------------------------------------------------------------------

class TestPublish:
    """Tests for the normal publish path."""

    def test_screenshot_published_under_timestamp(self, publisher, capture_dir, data_dirs, repository):
        hosted, _ = data_dirs
        source = make_capture(capture_dir, "shot.png")

        result = publisher.publish(source)

        assert result.filename == "20240115-1030.png"
        assert result.url == f"{BASE_URL}/hosted/20240115-1030.png"
        assert result.recorded is True
        assert not source.exists()
        assert (hosted / "20240115-1030.png").read_bytes() == b"\x89PNG fake"

        record = repository.get(result.record.id)
        assert record.original_name == "shot.png"
        assert record.preserve is False
        assert record.size == len(b"\x89PNG fake")
        assert record.timestamp == FIXED_NOW

    def test_same_minute_gets_suffixes(self, publisher, capture_dir, data_dirs):
        hosted, _ = data_dirs

        first = publisher.publish(make_capture(capture_dir, "a.png", b"a"))
        second = publisher.publish(make_capture(capture_dir, "b.png", b"b"))
        third = publisher.publish(make_capture(capture_dir, "c.png", b"c"))

        assert first.filename == "20240115-1030.png"
        assert second.filename == "20240115-1030-1.png"
        assert third.filename == "20240115-1030-2.png"
        assert (hosted / "20240115-1030.png").read_bytes() == b"a"

    def test_extension_lowercased(self, publisher, capture_dir):
        result = publisher.publish(make_capture(capture_dir, "SHOT.PNG"))

        assert result.filename == "20240115-1030.png"

    def test_explicit_stem_and_original_name(self, publisher, capture_dir):
        source = make_capture(capture_dir, "ssbnk-clip-1234.gif", b"GIF89a")

        result = publisher.publish(source, stem="capture", original_name="clip.mkv")

        assert result.filename == "capture.gif"
        assert result.record.original_name == "clip.mkv"

    def test_explicit_extension_used_verbatim(self, publisher, capture_dir, data_dirs):
        hosted, _ = data_dirs
        source = make_capture(capture_dir, "Clip.GIF", b"GIF89a")

        result = publisher.publish(source, stem="Clip", extension=".GIF")

        assert result.filename == "Clip.GIF"
        assert (hosted / "Clip.GIF").read_bytes() == b"GIF89a"

    def test_clipboard_receives_url(self, publisher, capture_dir, clipboard):
        result = publisher.publish(make_capture(capture_dir, "shot.png"))

        clipboard.dispatch.assert_called_once_with(result.url)

    def test_clipboard_failure_not_fatal(self, publisher, capture_dir, clipboard):
        clipboard.dispatch.return_value = False

        result = publisher.publish(make_capture(capture_dir, "shot.png"))

        assert result.recorded is True

    def test_trailing_slash_in_base_url(self, data_dirs, repository, capture_dir):
        hosted, _ = data_dirs
        publisher = Publisher(hosted, repository, "http://x/", clock=lambda: FIXED_NOW)

        result = publisher.publish(make_capture(capture_dir, "shot.png"))

        assert result.url == "http://x/hosted/20240115-1030.png"

    def test_missing_source(self, publisher, capture_dir, data_dirs):
        hosted, _ = data_dirs

        with pytest.raises(PublishError):
            publisher.publish(capture_dir / "gone.png")

        assert store_names(hosted) == []

    def test_no_staging_files_left(self, publisher, capture_dir, data_dirs):
        hosted, _ = data_dirs

        publisher.publish(make_capture(capture_dir, "shot.png"))

        assert not any(name.startswith(STAGING_PREFIX) for name in store_names(hosted))


# -----------------------------------------------------------------------------
# Transfer fallbacks and failures
# -----------------------------------------------------------------------------

class TestTransferFallback:
    """Tests for copy fallback and rollback."""

    def test_cross_device_copy_then_delete(self, publisher, capture_dir, data_dirs):
        hosted, _ = data_dirs
        source = make_capture(capture_dir, "shot.png", b"pixels")

        with patch(
            "ssbnk.publishing.transfer.os.rename",
            side_effect=OSError(errno.EXDEV, "Invalid cross-device link"),
        ):
            result = publisher.publish(source)

        assert (hosted / result.filename).read_bytes() == b"pixels"
        assert not source.exists()

    def test_copy_failure_leaves_source(self, publisher, capture_dir, data_dirs, repository):
        hosted, _ = data_dirs
        source = make_capture(capture_dir, "shot.png", b"pixels")

        with patch(
            "ssbnk.publishing.transfer.os.rename",
            side_effect=OSError(errno.EXDEV, "Invalid cross-device link"),
        ), patch(
            "ssbnk.publishing.transfer.shutil.copyfile",
            side_effect=OSError(errno.ENOSPC, "No space left on device"),
        ):
            with pytest.raises(TransferError):
                publisher.publish(source)

        assert source.read_bytes() == b"pixels"
        assert store_names(hosted) == []
        assert repository.list_records() == []

    def test_claim_failure_restores_moved_source(self, publisher, capture_dir, data_dirs, repository):
        hosted, _ = data_dirs
        source = make_capture(capture_dir, "shot.png", b"pixels")

        with patch.object(
            NameAllocator, "claim", side_effect=NameAllocationError("store full")
        ):
            with pytest.raises(NameAllocationError):
                publisher.publish(source)

        assert source.read_bytes() == b"pixels"
        assert store_names(hosted) == []
        assert repository.list_records() == []


# -----------------------------------------------------------------------------
# Metadata failures
# -----------------------------------------------------------------------------

class TestMetadataFailure:
    """The artifact stays published when its record cannot be written."""

    def test_record_failure_keeps_artifact(self, data_dirs, capture_dir, clipboard):
        hosted, _ = data_dirs
        repository = MagicMock(spec=MetadataRepository)
        repository.save.side_effect = MetadataRepositoryError("/data/metadata", "read-only")
        publisher = Publisher(
            hosted, repository, BASE_URL, clipboard=clipboard, clock=lambda: FIXED_NOW
        )

        result = publisher.publish(make_capture(capture_dir, "shot.png"))

        assert result.recorded is False
        assert (hosted / "20240115-1030.png").exists()
        clipboard.dispatch.assert_called_once_with(result.url)


# -----------------------------------------------------------------------------
# Concurrency
# -----------------------------------------------------------------------------

class TestConcurrentPublish:
    """Tests for same-minute publishes from many threads."""

    def test_unique_names_under_contention(self, publisher, capture_dir, data_dirs):
        hosted, _ = data_dirs
        sources = [make_capture(capture_dir, f"shot{i}.png", bytes([i])) for i in range(12)]
        results = []
        errors = []
        barrier = threading.Barrier(len(sources))

        def worker(src):
            barrier.wait()
            try:
                results.append(publisher.publish(src))
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(s,)) for s in sources]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        names = [r.filename for r in results]
        assert len(set(names)) == len(sources)
        assert len(store_names(hosted)) == len(sources)
        # Each published file holds the content of the capture it was recorded for
        for r in results:
            index = int(Path(r.record.original_name).stem[len("shot"):])
            assert (hosted / r.filename).read_bytes() == bytes([index])

    def test_distinct_minutes_use_plain_names(self, data_dirs, repository, capture_dir):
        hosted, _ = data_dirs
        times = iter([
            datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
            datetime(2024, 1, 15, 10, 31, tzinfo=timezone.utc),
        ])
        publisher = Publisher(hosted, repository, BASE_URL, clock=lambda: next(times))

        first = publisher.publish(make_capture(capture_dir, "a.png"))
        second = publisher.publish(make_capture(capture_dir, "b.png"))

        assert first.filename == "20240115-1030.png"
        assert second.filename == "20240115-1031.png"
