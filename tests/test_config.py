"""
Tests for settings and request models
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from vidreach.config import Settings, get_settings
from vidreach.models import CompositionPayload, CompositionResult


@pytest.mark.unit
def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('OVERLAY_MARGIN_PX', '24')
    monkeypatch.setenv('WORKING_MULTIPLIER', '2')
    monkeypatch.setenv('COMPOSITION_MODE', 'REMOTE')
    monkeypatch.setenv('REMOTE_COMPOSE_URL', 'https://compose.example.com/api/compose')
    monkeypatch.setenv('FFMPEG_TIMEOUT_SECONDS', 'not-a-number')

    settings = get_settings()

    assert settings.overlay_margin == 24
    assert settings.working_multiplier == 2
    assert settings.is_remote
    assert settings.ffmpeg_timeout == 600.0
    assert get_settings() is settings


@pytest.mark.unit
def test_settings_reject_bad_layout():
    with pytest.raises(ValueError):
        Settings(overlay_margin=-1)
    with pytest.raises(ValueError):
        Settings(working_multiplier=0)


@pytest.mark.unit
def test_payload_accepts_wire_aliases():
    payload = CompositionPayload.model_validate({
        'baseVideoURL': 'https://cdn.example.com/talking.mp4',
        'backgroundImageUrl': 'https://shots.example.com/acme.png',
        'durationSeconds': 12,
        'ownerScopeId': 'tenant-9',
        'backgroundIsVideo': True,
    })
    request = payload.to_request()

    assert request.duration_seconds == 12
    assert request.owner_scope_id == 'tenant-9'
    assert request.background_is_video is True
    assert request.position == 'bottom-right'
    assert request.size == 300


@pytest.mark.unit
def test_payload_rejects_bad_values(payload):
    for field, value in (('size', 0), ('duration', -1), ('baseVideoUrl', 'ftp://x/a.mp4')):
        bad = dict(payload, **{field: value})
        with pytest.raises(PydanticValidationError):
            CompositionPayload.model_validate(bad)


@pytest.mark.unit
def test_request_is_immutable(composition_request):
    with pytest.raises(PydanticValidationError):
        composition_request.size = 10


@pytest.mark.unit
def test_result_response_shape():
    fallback = CompositionResult(success=True, output_url="https://cdn/base.mp4", duration_seconds=30,
                                 error="composing: exit 1", fallback=True)
    assert fallback.to_response() == {
        'success': True,
        'outputURL': "https://cdn/base.mp4",
        'durationSeconds': 30,
        'error': "composing: exit 1",
        'fallback': True,
    }
