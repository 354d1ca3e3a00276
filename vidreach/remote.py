"""
Remote (serverless) execution of the composition pipeline.

The handler runs fetch -> compose -> publish inside a stateless function with
an ephemeral writable directory and reports failures as structured
responses. Fallback policy belongs to the caller, so nothing here
substitutes the base video.
"""
import json
import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from vidreach.compositor import CircularMaskCompositor, engine_available
from vidreach.config import Settings, get_settings
from vidreach.exceptions import PublishError, RemoteExecutionError, ValidationError, VidreachException
from vidreach.fetcher import AssetFetcher
from vidreach.models import CompositionPayload, CompositionRequest, CompositionResult
from vidreach.orchestrator import CompositionOrchestrator
from vidreach.storage import GCSStorage

logger = logging.getLogger(__name__)


def build_remote_orchestrator(settings: Settings, publisher=None) -> CompositionOrchestrator:
    """Orchestrator for the function environment: local engine, durable storage only."""
    if publisher is None:
        publisher = GCSStorage(settings.gcs_bucket_name)
        if not publisher.is_enabled():
            # A local path is useless once the function instance goes away
            raise PublishError("Remote execution requires GCS_BUCKET_NAME and credentials")
    return CompositionOrchestrator(
        engine_available=engine_available,
        fetcher=AssetFetcher(timeout=settings.download_timeout),
        compositor=CircularMaskCompositor(settings),
        publisher=publisher,
        settings=settings,
        temp_root=settings.remote_temp_dir,
    )


def handle_composition_event(payload: Dict[str, Any], settings: Optional[Settings] = None,
                             orchestrator: Optional[CompositionOrchestrator] = None) -> Dict[str, Any]:
    """
    Execute one composition request body.

    Returns:
        {"success": True, "outputURL", "storageKey", "durationSeconds"} or
        {"success": False, "error"}; never raises
    """
    try:
        request = CompositionPayload.model_validate(payload or {}).to_request()
    except PydanticValidationError as e:
        error = ValidationError(f"Invalid input: {e.errors()[0].get('msg', 'validation failed')}")
        logger.warning(f"[REMOTE] {error.message}")
        return {'success': False, 'error': error.message, 'error_code': error.error_code}

    logger.info(f"[REMOTE] Composition {request.request_id} for {request.owner_scope_id} "
                f"({request.position}, {request.size}px, {request.duration_seconds}s)")
    try:
        orchestrator = orchestrator or build_remote_orchestrator(settings or get_settings())
        result = orchestrator.execute(request)
    except VidreachException as e:
        logger.error(f"[REMOTE] {e.error_code}: {e.message}")
        return {'success': False, 'error': e.message, 'error_code': e.error_code}
    except Exception as e:
        logger.error(f"[REMOTE] Unexpected composition failure: {e}", exc_info=True)
        return {'success': False, 'error': str(e) or 'Video composition failed',
                'error_code': 'InternalError'}

    return result.to_response()


def lambda_handler(event, context=None) -> Dict[str, Any]:
    """API-Gateway style wrapper: JSON body in, {statusCode, body} out."""
    event = event or {}
    body = event.get('body', event)
    if isinstance(body, str):
        try:
            body = json.loads(body or '{}')
        except json.JSONDecodeError:
            return _http_response(400, {'success': False, 'error': 'Body must be valid JSON'})

    response = handle_composition_event(body)
    if response.get('success'):
        status = 200
    elif response.get('error_code') == 'ValidationError':
        status = 400
    else:
        status = 500
    return _http_response(status, response)


def _http_response(status: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body),
    }


class RemoteCompositionClient:
    """Calls a deployed composition endpoint over HTTP."""

    def __init__(self, endpoint_url: Optional[str], timeout: float = 900.0,
                 session: Optional[requests.Session] = None):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.endpoint_url)

    def compose(self, request: CompositionRequest) -> CompositionResult:
        """
        Run the composition remotely.

        Raises:
            RemoteExecutionError: transport failure, timeout, or {success: false}
        """
        if not self.is_configured():
            raise RemoteExecutionError("REMOTE_COMPOSE_URL is not configured")

        payload = {
            'baseVideoUrl': request.base_video_url,
            'backgroundUrl': request.background_url,
            'position': request.position,
            'size': request.size,
            'duration': request.duration_seconds,
            'projectId': request.owner_scope_id,
        }
        if request.background_is_video is not None:
            payload['backgroundIsVideo'] = request.background_is_video

        logger.info(f"[REMOTE] Calling {self.endpoint_url} for {request.request_id}")
        try:
            resp = self.session.post(self.endpoint_url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteExecutionError(f"Remote composition call failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            raise RemoteExecutionError(
                f"Remote composition returned non-JSON response (HTTP {resp.status_code})",
                details={'status_code': resp.status_code},
            )

        # Lambda proxy responses wrap the real body
        if isinstance(data, dict) and 'statusCode' in data and 'body' in data:
            body = data['body']
            data = json.loads(body) if isinstance(body, str) else body

        if not resp.ok or not data.get('success') or not data.get('outputURL'):
            raise RemoteExecutionError(
                data.get('error') or f"Remote composition failed (HTTP {resp.status_code})",
                details={'status_code': resp.status_code},
            )

        return CompositionResult(
            success=True,
            output_url=data['outputURL'],
            duration_seconds=data.get('durationSeconds', request.duration_seconds),
            storage_key=data.get('storageKey'),
        )
