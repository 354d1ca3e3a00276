import os
import logging

from flask import Flask, request, jsonify, send_from_directory
from pydantic import ValidationError as PydanticValidationError

from vidreach.compositor import find_ffmpeg, engine_available
from vidreach.config import get_settings
from vidreach.exceptions import EngineUnavailableError
from vidreach.models import CompositionPayload
from vidreach.orchestrator import compose_personalized_video
from vidreach.remote import handle_composition_event

logging.basicConfig(
    level=logging.INFO if os.getenv('FLASK_ENV') != 'development' else logging.DEBUG,
    format='%(asctime)s [%(levelname)s] %(message)s'
)
logger = logging.getLogger(__name__)

app = Flask(__name__)


def _validation_message(e: PydanticValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(part) for part in first.get('loc', ()))
    return f"Invalid input: {field} {first.get('msg', '')}".strip()


@app.route('/health')
@app.route('/healthz')
def _health():
    """Liveness probe"""
    return jsonify({'status': 'ok', 'service': 'vidreach'})


@app.route('/api/health', methods=['GET'])
def api_health():
    """Health check for the composition stack (engine + storage)."""
    settings = get_settings()
    try:
        ffmpeg_path = find_ffmpeg()
    except EngineUnavailableError:
        ffmpeg_path = None

    return jsonify({
        'success': True,
        'mode': settings.composition_mode,
        'ffmpeg': {'available': engine_available(), 'path': ffmpeg_path},
        'storage': {'gcs_bucket': settings.gcs_bucket_name, 'local_dir': settings.public_output_dir},
        'remote': {'configured': bool(settings.remote_compose_url)},
    })


@app.route('/api/compose', methods=['POST'])
def api_compose():
    """
    Remote execution endpoint: runs the full pipeline in this process and
    reports failures as {success: false} (no fallback substitution).
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({'success': False, 'error': 'Request body must be JSON'}), 400

    result = handle_composition_event(payload)
    if result.get('success'):
        return jsonify(result)
    status = 400 if result.get('error_code') == 'ValidationError' else 500
    return jsonify(result), status


@app.route('/api/personalize', methods=['POST'])
def api_personalize():
    """Compose for one prospect under the fallback policy (always a video URL)."""
    try:
        payload = CompositionPayload.model_validate(request.get_json(silent=True) or {})
    except PydanticValidationError as e:
        return jsonify({'success': False, 'error': _validation_message(e)}), 400

    result = compose_personalized_video(payload.to_request())
    if result.fallback:
        logger.warning(f"[API] Personalization fell back to base video: {result.error}")
    return jsonify(result.to_response())


@app.route('/api/personalize/async', methods=['POST'])
def api_personalize_async():
    """Queue a composition on the Celery worker pool."""
    try:
        payload = CompositionPayload.model_validate(request.get_json(silent=True) or {})
    except PydanticValidationError as e:
        return jsonify({'success': False, 'error': _validation_message(e)}), 400

    from vidreach.tasks import compose_video_async

    task = compose_video_async.delay(payload.model_dump())
    return jsonify({'success': True, 'task_id': task.id}), 202


@app.route('/api/tasks/<task_id>', methods=['GET'])
def api_task_status(task_id):
    """Status of a queued composition."""
    from celery_app import celery_app

    result = celery_app.AsyncResult(task_id)
    data = {'task_id': task_id, 'state': result.state}
    if result.state == 'SUCCESS':
        data['result'] = result.result
    elif result.state in ('PROGRESS', 'STARTED') and isinstance(result.info, dict):
        data['meta'] = result.info
    elif result.state == 'FAILURE':
        data['error'] = str(result.info)
    return jsonify(data)


@app.route('/outputs/<path:filename>')
def serve_output(filename):
    """Serve locally published videos (development publisher)."""
    output_dir = os.path.abspath(get_settings().public_output_dir)
    response = send_from_directory(output_dir, filename, mimetype='video/mp4')
    response.headers['Cache-Control'] = 'public, max-age=31536000, immutable'
    return response


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    app.run(host='0.0.0.0', port=port)
