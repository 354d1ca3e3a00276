"""
Celery task definitions for async composition
"""
import logging

from celery_app import celery_app
from vidreach.config import get_settings
from vidreach.models import CompositionPayload
from vidreach.utils.temp_files import sweep_stale_workspaces

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name='tasks.compose_video')
def compose_video_async(self, payload: dict):
    """
    Async task to compose one personalized video

    Args:
        payload: CompositionPayload fields (snake_case or camelCase)

    Returns:
        dict: CompositionResult response body (fallback applied)
    """
    # Import here to avoid circular dependencies
    from vidreach.orchestrator import compose_personalized_video

    request = CompositionPayload.model_validate(payload).to_request()

    self.update_state(
        state='PROGRESS',
        meta={'step': 'composing', 'request_id': request.request_id}
    )

    try:
        result = compose_personalized_video(request)
    except Exception as e:
        logger.error(f"[TASK] Composition failed: {e}", exc_info=True)
        raise

    return result.to_response()


@celery_app.task(name='tasks.sweep_temp_files')
def sweep_temp_files():
    """Periodic task: remove orphaned compose-* workspaces"""
    settings = get_settings()
    removed = sweep_stale_workspaces(settings.temp_dir, settings.temp_max_age)
    logger.info(f"[TASK] Temp sweep removed {len(removed)} workspace(s)")
    return {'success': True, 'removed': [str(p) for p in removed]}
