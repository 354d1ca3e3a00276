"""
Durable storage for composited videos.

Google Cloud Storage in deployed environments; a local output directory
(served by the Flask app) when no bucket is configured.
"""
import logging
import shutil
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import storage

from vidreach.config import Settings
from vidreach.exceptions import PublishError

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = 'video/mp4'
# Composited videos never change once written
IMMUTABLE_CACHE_CONTROL = 'public, max-age=31536000, immutable'


def build_storage_key(owner_scope_id: str, now: Optional[datetime] = None) -> str:
    """
    Deterministic, collision-free key for a composited video.

    compositions/<owner>/personalized-<epoch_ms>-<hex6>.mp4
    """
    owner = "".join(c for c in str(owner_scope_id) if c.isalnum() or c in ('-', '_')) or 'default'
    epoch_ms = int((now.timestamp() if now else time.time()) * 1000)
    return f"compositions/{owner}/personalized-{epoch_ms}-{uuid.uuid4().hex[:6]}.mp4"


class GCSStorage:
    """Publishes files to a Google Cloud Storage bucket."""

    def __init__(self, bucket_name: Optional[str] = None, client: Optional[storage.Client] = None):
        """
        Initialize GCS client.

        Args:
            bucket_name: GCS bucket name
            client: Pre-built storage client (tests, custom credentials)
        """
        self.bucket_name = bucket_name
        self._client = client
        self._bucket = None

        if self.bucket_name:
            try:
                self._client = self._client or storage.Client()
                self._bucket = self._client.bucket(self.bucket_name)
            except DefaultCredentialsError:
                logger.warning("[PUBLISH] GCS credentials not found. Storage disabled.")
                self._client = None
                self._bucket = None

    def is_enabled(self) -> bool:
        """Check if GCS is configured and available."""
        return self._client is not None and self._bucket is not None

    def publish(self, local_path, storage_key: str) -> str:
        """
        Upload a composited video and return its public URL.

        The local file is deleted after a successful upload and left in
        place when the upload fails.

        Raises:
            PublishError: storage unavailable or upload failed
        """
        local_path = Path(local_path)
        if not self.is_enabled():
            raise PublishError("GCS not available", details={'bucket': self.bucket_name})
        if not local_path.exists():
            raise PublishError(f"File not found: {local_path}")

        logger.info(f"[PUBLISH] Uploading {local_path} to gs://{self.bucket_name}/{storage_key}")
        try:
            blob = self._bucket.blob(storage_key)
            blob.content_type = VIDEO_CONTENT_TYPE
            blob.cache_control = IMMUTABLE_CACHE_CONTROL
            blob.upload_from_filename(str(local_path), content_type=VIDEO_CONTENT_TYPE)
            blob.make_public()
            public_url = blob.public_url
        except (GoogleAPIError, OSError) as e:
            raise PublishError(f"Upload failed: {e}", details={'storage_key': storage_key}) from e

        _remove_local(local_path)
        logger.info(f"[PUBLISH] Published {public_url}")
        return public_url

    def delete_file(self, storage_key: str) -> bool:
        """
        Delete a published object.

        Returns:
            True if deleted, False otherwise
        """
        if not self.is_enabled():
            return False

        blob = self._bucket.blob(storage_key)
        if blob.exists():
            blob.delete()
            return True
        return False


class LocalDirectoryPublisher:
    """Moves outputs into a local directory served at a public base URL."""

    def __init__(self, output_dir, base_url: str):
        self.output_dir = Path(output_dir)
        self.base_url = base_url.rstrip('/')

    def is_enabled(self) -> bool:
        return True

    def publish(self, local_path, storage_key: str) -> str:
        local_path = Path(local_path)
        if not local_path.exists():
            raise PublishError(f"File not found: {local_path}")

        destination = self.output_dir / storage_key
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            # Copy then remove so a failed copy leaves the source in place
            shutil.copyfile(local_path, destination)
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise PublishError(f"Local publish failed: {e}", details={'storage_key': storage_key}) from e

        _remove_local(local_path)
        url = f"{self.base_url}/{storage_key}"
        logger.info(f"[PUBLISH] Published locally {url}")
        return url


def _remove_local(path: Path):
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"[PUBLISH] Failed to remove local file {path}: {e}")


def get_publisher(settings: Settings):
    """GCS when a bucket is configured, otherwise the local output directory."""
    if settings.gcs_bucket_name:
        gcs = GCSStorage(settings.gcs_bucket_name)
        if gcs.is_enabled():
            return gcs
        logger.warning("[PUBLISH] GCS bucket configured but unavailable; publishing locally")
    return LocalDirectoryPublisher(settings.public_output_dir, settings.public_output_base_url)
