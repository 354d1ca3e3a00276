"""
Tests for publishing composited videos
"""
import re
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import ServiceUnavailable

from vidreach.exceptions import PublishError
from vidreach.storage import (
    GCSStorage, IMMUTABLE_CACHE_CONTROL, LocalDirectoryPublisher, build_storage_key, get_publisher,
)

KEY_PATTERN = re.compile(r"^compositions/proj_123/personalized-\d+-[0-9a-f]{6}\.mp4$")


def _gcs(public_url="https://storage.googleapis.com/bucket/key.mp4"):
    client = MagicMock()
    bucket = client.bucket.return_value
    blob = bucket.blob.return_value
    blob.public_url = public_url
    return GCSStorage("vidreach-test", client=client), bucket, blob


@pytest.mark.unit
def test_storage_key_format():
    key = build_storage_key("proj_123")
    assert KEY_PATTERN.match(key)


@pytest.mark.unit
def test_storage_keys_are_distinct_within_same_millisecond():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    keys = {build_storage_key("proj_123", now=now) for _ in range(50)}
    assert len(keys) == 50
    assert all(f"personalized-{int(now.timestamp() * 1000)}-" in k for k in keys)


@pytest.mark.unit
def test_storage_key_sanitizes_owner():
    key = build_storage_key("../etc/passwd")
    assert key.startswith("compositions/etcpasswd/")


@pytest.mark.unit
def test_gcs_publish_sets_metadata_and_removes_local(tmp_path):
    storage, bucket, blob = _gcs()
    video = tmp_path / "final.mp4"
    video.write_bytes(b"mp4")

    url = storage.publish(video, "compositions/proj_123/personalized-1-abcdef.mp4")

    assert url == "https://storage.googleapis.com/bucket/key.mp4"
    bucket.blob.assert_called_once_with("compositions/proj_123/personalized-1-abcdef.mp4")
    assert blob.content_type == "video/mp4"
    assert blob.cache_control == IMMUTABLE_CACHE_CONTROL
    blob.upload_from_filename.assert_called_once_with(str(video), content_type="video/mp4")
    blob.make_public.assert_called_once()
    assert not video.exists()


@pytest.mark.unit
def test_gcs_publish_failure_keeps_local_file(tmp_path):
    storage, _, blob = _gcs()
    blob.upload_from_filename.side_effect = ServiceUnavailable("bucket down")
    video = tmp_path / "final.mp4"
    video.write_bytes(b"mp4")

    with pytest.raises(PublishError):
        storage.publish(video, "compositions/p/personalized-1-abcdef.mp4")
    assert video.exists()


@pytest.mark.unit
def test_gcs_disabled_without_bucket(tmp_path):
    storage = GCSStorage(None)
    assert not storage.is_enabled()
    with pytest.raises(PublishError):
        storage.publish(tmp_path / "x.mp4", "k")


@pytest.mark.unit
def test_gcs_delete_file():
    storage, _, blob = _gcs()
    blob.exists.return_value = True
    assert storage.delete_file("compositions/p/a.mp4") is True
    blob.delete.assert_called_once()


@pytest.mark.unit
def test_local_publisher_moves_file(tmp_path):
    publisher = LocalDirectoryPublisher(tmp_path / "out", "http://localhost:5000/outputs/")
    video = tmp_path / "final.mp4"
    video.write_bytes(b"mp4")
    key = "compositions/proj_123/personalized-1-abcdef.mp4"

    url = publisher.publish(video, key)

    assert url == f"http://localhost:5000/outputs/{key}"
    assert (tmp_path / "out" / key).read_bytes() == b"mp4"
    assert not video.exists()


@pytest.mark.unit
def test_get_publisher_defaults_to_local(settings):
    assert isinstance(get_publisher(settings), LocalDirectoryPublisher)
