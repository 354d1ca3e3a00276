"""
Tests for asset download
"""
from unittest.mock import MagicMock

import pytest
import requests

from conftest import fake_response, png_bytes
from vidreach.exceptions import DownloadError
from vidreach.fetcher import AssetFetcher, _is_transient
from vidreach.models import AssetKind


def _fetcher(*responses, max_attempts=1):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return AssetFetcher(timeout=5, max_attempts=max_attempts, backoff=0, session=session), session


@pytest.mark.unit
def test_fetch_writes_file(tmp_path):
    body = b"video-bytes" * 100
    fetcher, session = _fetcher(fake_response(body, headers={'Content-Length': str(len(body)),
                                                             'Content-Type': 'video/mp4'}))
    dest = tmp_path / "nested" / "base.mp4"

    path = fetcher.fetch("https://cdn.example.com/talking.mp4", dest)

    assert path == dest
    assert dest.read_bytes() == body
    session.get.assert_called_once_with("https://cdn.example.com/talking.mp4", stream=True, timeout=5)


@pytest.mark.unit
def test_fetch_404_raises_without_retry(tmp_path):
    fetcher, session = _fetcher(fake_response(b"", status=404, reason="Not Found"), max_attempts=3)

    with pytest.raises(DownloadError) as exc_info:
        fetcher.fetch("https://cdn.example.com/missing.mp4", tmp_path / "base.mp4")

    assert exc_info.value.status_code == 404
    assert session.get.call_count == 1


@pytest.mark.unit
def test_fetch_retries_server_errors(tmp_path):
    body = b"ok-body"
    fetcher, session = _fetcher(
        fake_response(b"", status=503, reason="Unavailable"),
        fake_response(body),
        max_attempts=3,
    )

    path = fetcher.fetch("https://cdn.example.com/talking.mp4", tmp_path / "base.mp4")

    assert path.read_bytes() == body
    assert session.get.call_count == 2


@pytest.mark.unit
def test_incomplete_transfer_is_failure(tmp_path):
    dest = tmp_path / "base.mp4"
    fetcher, _ = _fetcher(fake_response(b"short", headers={'Content-Length': '1000'}))

    with pytest.raises(DownloadError, match="Incomplete transfer"):
        fetcher.fetch("https://cdn.example.com/talking.mp4", dest)
    assert not dest.exists()


@pytest.mark.unit
def test_interrupted_stream_is_failure(tmp_path):
    dest = tmp_path / "base.mp4"
    broken = fake_response(b"partial", headers={},
                           chunk_error=requests.exceptions.ChunkedEncodingError("connection reset"))
    fetcher, _ = _fetcher(broken)

    with pytest.raises(DownloadError, match="interrupted"):
        fetcher.fetch("https://cdn.example.com/talking.mp4", dest)
    assert not dest.exists()


@pytest.mark.unit
def test_connection_error_becomes_download_error(tmp_path):
    session = MagicMock()
    session.get.side_effect = requests.exceptions.ConnectionError("no route")
    fetcher = AssetFetcher(max_attempts=1, backoff=0, session=session)

    with pytest.raises(DownloadError) as exc_info:
        fetcher.fetch("https://unreachable.example.com/a.mp4", tmp_path / "a.mp4")
    assert exc_info.value.status_code is None


@pytest.mark.unit
def test_corrupt_image_rejected(tmp_path):
    garbage = b"this is not a png"
    fetcher, _ = _fetcher(fake_response(garbage, headers={'Content-Type': 'image/png'}))
    dest = tmp_path / "background.png"

    with pytest.raises(DownloadError, match="corrupt"):
        fetcher.fetch_asset("https://shots.example.com/acme.png", dest, AssetKind.IMAGE)
    assert not dest.exists()


@pytest.mark.unit
def test_valid_image_asset(tmp_path):
    fetcher, _ = _fetcher(fake_response(png_bytes(), headers={'Content-Type': 'image/png'}))

    asset = fetcher.fetch_asset("https://shots.example.com/acme.png", tmp_path / "bg.png", AssetKind.IMAGE)

    assert asset.kind == AssetKind.IMAGE
    assert not asset.is_video
    assert asset.local_path.exists()


@pytest.mark.unit
def test_video_content_type_upgrades_background_kind(tmp_path):
    fetcher, _ = _fetcher(fake_response(b"webm-data", headers={'Content-Type': 'video/webm'}))

    asset = fetcher.fetch_asset("https://shots.example.com/render?id=7", tmp_path / "bg.png", AssetKind.IMAGE)

    assert asset.kind == AssetKind.VIDEO


@pytest.mark.unit
def test_fetch_pair_raises_after_both_finish(tmp_path):
    session = MagicMock()

    def get(url, **kwargs):
        if 'missing' in url:
            return fake_response(b"", status=404, reason="Not Found")
        return fake_response(b"video-data")

    session.get.side_effect = get
    fetcher = AssetFetcher(max_attempts=1, backoff=0, session=session)

    with pytest.raises(DownloadError):
        fetcher.fetch_pair("https://cdn.example.com/talking.mp4", tmp_path / "base.mp4",
                           "https://shots.example.com/missing.png", tmp_path / "bg.png",
                           AssetKind.IMAGE)
    assert session.get.call_count == 2


@pytest.mark.unit
def test_transient_classification():
    assert _is_transient(DownloadError("x", status_code=502))
    assert _is_transient(DownloadError("x"))
    assert not _is_transient(DownloadError("x", status_code=403))
    assert not _is_transient(ValueError("x"))
