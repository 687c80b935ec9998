"""Unit tests for the Cloud Storage manager."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Forbidden

from smartwatch_health_monitor.infrastructure.storage_client.client import CloudStorageManager
from smartwatch_health_monitor.utils.exceptions import StorageClientError
from smartwatch_health_monitor.utils.hashing import compute_file_md5_base64
from smartwatch_health_monitor.utils.parameters import StorageConfig

SIGNED_URL = "https://storage.googleapis.com/bucket/uploads/readings.csv?X-Goog-Signature=abc"


def _manager() -> tuple[CloudStorageManager, MagicMock]:
    bucket = MagicMock()
    blob = bucket.blob.return_value
    blob.generate_signed_url.return_value = SIGNED_URL
    return CloudStorageManager(bucket, StorageConfig(signed_url_minutes=15)), blob


def _local_file(tmp_path: Path) -> Path:
    path = tmp_path / "readings.csv"
    path.write_text("timestamp,heartRate\n1,70\n", encoding="utf-8")
    return path


def test_upload_file(tmp_path: Path) -> None:
    """Test uploading a file that does not exist remotely."""
    manager, blob = _manager()
    blob.exists.return_value = False
    path = _local_file(tmp_path)

    url = manager.upload_file(path, "uploads/readings.csv")

    if url != SIGNED_URL:
        raise AssertionError(f"Unexpected URL {url}")
    blob.upload_from_filename.assert_called_once_with(str(path))


def test_upload_file_skips_matching_checksum(tmp_path: Path) -> None:
    """Test that an identical remote object is not uploaded again."""
    manager, blob = _manager()
    path = _local_file(tmp_path)
    blob.exists.return_value = True
    blob.md5_hash = compute_file_md5_base64(str(path))

    manager.upload_file(path, "uploads/readings.csv")
    blob.upload_from_filename.assert_not_called()

    manager.upload_file(path, "uploads/readings.csv", force=True)
    blob.upload_from_filename.assert_called_once_with(str(path))


def test_upload_file_replaces_changed_object(tmp_path: Path) -> None:
    """Test that a remote object with another checksum is replaced."""
    manager, blob = _manager()
    blob.exists.return_value = True
    blob.md5_hash = "c29tZXRoaW5nIGVsc2U="

    manager.upload_file(_local_file(tmp_path), "uploads/readings.csv")

    blob.upload_from_filename.assert_called_once()


def test_upload_missing_file(tmp_path: Path) -> None:
    """Test that a missing local file raises StorageClientError."""
    manager, _ = _manager()

    with pytest.raises(StorageClientError):
        manager.upload_file(tmp_path / "missing.csv", "uploads/missing.csv")


def test_upload_bytes() -> None:
    """Test uploading in-memory data."""
    manager, blob = _manager()

    manager.upload_bytes(b"payload", "uploads/data.bin")

    blob.upload_from_string.assert_called_once_with(
        b"payload", content_type="application/octet-stream"
    )


def test_upload_failure(tmp_path: Path) -> None:
    """Test that API errors raise StorageClientError."""
    manager, blob = _manager()
    blob.exists.return_value = False
    blob.upload_from_filename.side_effect = Forbidden("denied")

    with pytest.raises(StorageClientError):
        manager.upload_file(_local_file(tmp_path), "uploads/readings.csv")


def test_get_download_url() -> None:
    """Test signed URL generation and signing failures."""
    manager, blob = _manager()

    if manager.get_download_url("uploads/readings.csv") != SIGNED_URL:
        raise AssertionError("Expected the signed URL")
    if blob.generate_signed_url.call_args.kwargs["version"] != "v4":
        raise AssertionError("Expected a v4 signed URL")

    blob.generate_signed_url.side_effect = AttributeError("credentials cannot sign")
    with pytest.raises(StorageClientError):
        manager.get_download_url("uploads/readings.csv")
