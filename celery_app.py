"""
Celery configuration for the vidreach async composition queue
"""
from celery import Celery
import os

# Get Redis URL from environment
redis_url = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
result_backend = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')

# Create Celery app
celery_app = Celery(
    'vidreach',
    broker=redis_url,
    backend=result_backend,
    include=['vidreach.tasks'],
)

# Celery configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=20 * 60,  # Above FFMPEG_TIMEOUT_SECONDS plus downloads
    task_soft_time_limit=15 * 60,
    worker_prefetch_multiplier=1,  # One ffmpeg process per worker slot
    worker_max_tasks_per_child=200,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

# Scheduled tasks (Celery Beat)
celery_app.conf.beat_schedule = {
    'sweep-temp-files': {
        'task': 'tasks.sweep_temp_files',
        'schedule': 3600.0,  # Hourly
    },
}

print(f"[CELERY] Celery app configured. Broker: {redis_url}")
