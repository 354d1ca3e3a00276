"""
Pytest configuration and fixtures for vidreach tests
"""
import io
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from vidreach.config import Settings, reset_settings  # noqa: E402
from vidreach.models import CompositionRequest  # noqa: E402


def png_bytes(width=64, height=36, color=(20, 120, 200)):
    """A small valid PNG"""
    buf = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buf, format='PNG')
    return buf.getvalue()


def fake_response(body=b"", status=200, headers=None, reason="OK", chunk_error=None):
    """requests.Response stand-in for streamed downloads"""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.reason = reason
    resp.headers = headers if headers is not None else {'Content-Length': str(len(body))}

    def iter_content(chunk_size=1):
        yield body
        if chunk_error is not None:
            raise chunk_error

    resp.iter_content.side_effect = iter_content
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Never leak cached env settings between tests"""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temp directory"""
    return Settings(
        temp_dir=str(tmp_path / "tmp"),
        remote_temp_dir=str(tmp_path / "remote-tmp"),
        public_output_dir=str(tmp_path / "out"),
        public_output_base_url="http://localhost:5000/outputs",
        ffmpeg_timeout=30,
    )


@pytest.fixture
def composition_request():
    return CompositionRequest(
        base_video_url="https://cdn.example.com/talking.mp4",
        background_url="https://shots.example.com/acme.png",
        position="bottom-right",
        size=300,
        duration_seconds=30,
        owner_scope_id="proj_123",
        request_id="req123",
    )


@pytest.fixture
def payload():
    """camelCase request body as sent by the campaign runner"""
    return {
        'baseVideoUrl': 'https://cdn.example.com/talking.mp4',
        'backgroundUrl': 'https://shots.example.com/acme.png',
        'position': 'bottom-right',
        'size': 300,
        'duration': 30,
        'projectId': 'proj_123',
    }
