"""
Asset download for the composition pipeline.

Streams remote videos and images to local disk. Incomplete transfers and
corrupt images are treated as failures, never as short files.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Tuple

import requests
from PIL import Image
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from vidreach.exceptions import DownloadError
from vidreach.models import AssetKind, LocalAsset

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB


def _is_transient(exc: BaseException) -> bool:
    """Transport errors and 5xx responses are worth retrying; 4xx are not."""
    if not isinstance(exc, DownloadError):
        return False
    return exc.status_code is None or exc.status_code >= 500


class AssetFetcher:
    """Downloads remote assets with retry and integrity checks."""

    def __init__(self, timeout: float = 60.0, max_attempts: int = 3, backoff: float = 1.0,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.session = session or requests.Session()

    def fetch(self, url: str, destination_path) -> Path:
        """
        Download url to destination_path.

        Args:
            url: HTTP(S) URL of the asset
            destination_path: Local file to create (parent dirs are created)

        Returns:
            Path of the written file

        Raises:
            DownloadError: unreachable, non-success status, or incomplete transfer
        """
        path, _ = self._fetch_with_retry(url, Path(destination_path))
        return path

    def fetch_asset(self, url: str, destination_path, kind: AssetKind) -> LocalAsset:
        """Download and wrap as a LocalAsset; a video/* response upgrades the kind."""
        path, content_type = self._fetch_with_retry(url, Path(destination_path))
        if kind == AssetKind.IMAGE and content_type.startswith('video/'):
            logger.info(f"[FETCH] {url} served as {content_type}, treating background as video")
            kind = AssetKind.VIDEO
        if kind == AssetKind.IMAGE:
            self._verify_image(path, url)
        return LocalAsset(source_url=url, local_path=path, kind=kind)

    def fetch_pair(self, base_video_url: str, base_video_path,
                   background_url: str, background_path,
                   background_kind: AssetKind) -> Tuple[LocalAsset, LocalAsset]:
        """Download the base video and the background concurrently."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            base_future = executor.submit(
                self.fetch_asset, base_video_url, base_video_path, AssetKind.VIDEO
            )
            background_future = executor.submit(
                self.fetch_asset, background_url, background_path, background_kind
            )
            # Wait for both before raising so no download is still writing
            # into the workspace when cleanup runs
            base_exc = base_future.exception()
            background_exc = background_future.exception()
        if base_exc:
            raise base_exc
        if background_exc:
            raise background_exc
        return base_future.result(), background_future.result()

    def _fetch_with_retry(self, url: str, destination: Path) -> Tuple[Path, str]:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, min=0, max=10),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(f"[FETCH] Retrying {url} (attempt {attempt.retry_state.attempt_number})")
                content_type = self._download_once(url, destination)
        return destination, content_type

    def _download_once(self, url: str, destination: Path) -> str:
        logger.info(f"[FETCH] Downloading {url} -> {destination}")
        destination.parent.mkdir(parents=True, exist_ok=True)

        try:
            resp = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DownloadError(f"Download failed: {e}", url=url) from e

        with resp:
            if not resp.ok:
                raise DownloadError(
                    f"Failed to download file: {resp.status_code} {resp.reason}",
                    url=url,
                    status_code=resp.status_code,
                )

            headers = resp.headers or {}
            content_type = (headers.get('Content-Type') or '').split(';')[0].strip().lower()
            expected = headers.get('Content-Length')
            encoded = bool(headers.get('Content-Encoding'))

            written = 0
            try:
                with open(destination, 'wb') as f:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
            except (requests.exceptions.RequestException, OSError) as e:
                destination.unlink(missing_ok=True)
                raise DownloadError(f"Download interrupted after {written} bytes: {e}", url=url) from e

        # Content-Length describes the encoded body; only comparable when not compressed
        if expected and not encoded and written != int(expected):
            destination.unlink(missing_ok=True)
            raise DownloadError(
                f"Incomplete transfer: received {written} of {expected} bytes",
                url=url,
                details={'received': written, 'expected': int(expected)},
            )
        if written == 0:
            destination.unlink(missing_ok=True)
            raise DownloadError("Empty response body", url=url)

        logger.info(f"[FETCH] Downloaded {written} bytes to {destination}")
        return content_type

    @staticmethod
    def _verify_image(path: Path, url: str):
        try:
            with Image.open(path) as img:
                img.verify()
        except Exception as e:
            path.unlink(missing_ok=True)
            raise DownloadError(f"Downloaded image is corrupt or truncated: {e}", url=url) from e
