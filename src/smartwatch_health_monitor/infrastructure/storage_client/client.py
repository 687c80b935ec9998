"""
Cloud Storage client implementation.

Uploads local files and in-memory data to the active environment's Firebase
Storage bucket and hands back signed download URLs.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import IO, Any

from google.api_core.exceptions import GoogleAPIError

from smartwatch_health_monitor.utils.exceptions import StorageClientError
from smartwatch_health_monitor.utils.hashing import compute_file_md5_base64
from smartwatch_health_monitor.utils.parameters import StorageConfig

logger = logging.getLogger(__name__)


class CloudStorageManager:
    """
    Upload and download-URL operations on one Storage bucket.

    Skips uploading a file whose MD5 matches the existing remote object.
    """

    def __init__(self, bucket: Any, config: StorageConfig) -> None:
        """
        Initialize storage manager.

        Args:
            bucket: ``google.cloud.storage.Bucket`` (usually from the project
                registry).
            config: Storage configuration.
        """
        self.bucket = bucket
        self.config = config

    def _remote_matches(self, blob: Any, file_path: Path) -> bool:
        if not blob.exists():
            return False

        blob.reload()
        return bool(blob.md5_hash) and blob.md5_hash == compute_file_md5_base64(str(file_path))

    def upload_file(self, file_path: Path, remote_path: str, force: bool = False) -> str:
        """
        Upload a local file.

        Args:
            file_path: File to upload.
            remote_path: Object name inside the bucket.
            force: Upload even if the remote object has the same checksum.

        Returns:
            Download URL of the uploaded object.

        Raises:
            StorageClientError: If the file is missing or the upload fails.
        """
        if not file_path.exists():
            raise StorageClientError(f"File not found: {file_path}")

        blob = self.bucket.blob(remote_path)

        try:
            if not force and self._remote_matches(blob, file_path):
                logger.info(f"Skipping upload (checksum match): {remote_path}")
            else:
                blob.upload_from_filename(str(file_path))
                logger.info(f"Uploaded: {file_path.name} -> {remote_path}")
        except GoogleAPIError as e:
            raise StorageClientError(f"Upload failed for {file_path}: {e}") from e

        return self.get_download_url(remote_path)

    def upload_bytes(
        self,
        data: bytes | IO[bytes],
        remote_path: str,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload in-memory data or a binary stream.

        Args:
            data: Bytes or a readable binary file object.
            remote_path: Object name inside the bucket.
            content_type: MIME type stored with the object.

        Returns:
            Download URL of the uploaded object.

        Raises:
            StorageClientError: If the upload fails.
        """
        blob = self.bucket.blob(remote_path)

        try:
            if isinstance(data, bytes):
                blob.upload_from_string(data, content_type=content_type)
            else:
                blob.upload_from_file(data, content_type=content_type)
        except GoogleAPIError as e:
            raise StorageClientError(f"Stream upload failed for {remote_path}: {e}") from e

        logger.info(f"Stream uploaded -> {remote_path}")
        return self.get_download_url(remote_path)

    def get_download_url(self, remote_path: str) -> str:
        """
        Get a signed download URL for an object.

        Args:
            remote_path: Object name inside the bucket.

        Returns:
            V4 signed URL valid for the configured number of minutes.

        Raises:
            StorageClientError: If the URL cannot be signed.
        """
        blob = self.bucket.blob(remote_path)

        try:
            url = blob.generate_signed_url(
                version="v4",
                expiration=timedelta(minutes=self.config.signed_url_minutes),
                method="GET",
            )
        except (GoogleAPIError, AttributeError, ValueError) as e:
            raise StorageClientError(f"Failed to fetch download URL: {e}") from e

        logger.debug(f"Download URL fetched for {remote_path}")
        return str(url)
