"""
Celery worker for redline.

Start worker:    celery -A redline.worker worker --loglevel=info
Start beat:      celery -A redline.worker beat --loglevel=info
Start both:      celery -A redline.worker worker --beat --loglevel=info
"""
from celery import Celery
from celery.schedules import crontab

from redline.core.celery_config import (
    CELERY_QUEUES,
    CELERY_TASK_ANNOTATIONS,
    CELERY_TASK_ROUTES,
)
from redline.core.config import settings
from redline.core.sentry import init_sentry

# Before the Celery app exists so the integration can hook task signals
init_sentry(
    settings.SENTRY_DSN,
    environment=settings.SENTRY_ENVIRONMENT,
    release=settings.APP_VERSION,
)

celery_app = Celery(
    "redline_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.REDIS_URL,
    include=[
        "redline.tasks.version_comparisons",
        "redline.tasks.version_retention",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24h
    task_queues=CELERY_QUEUES,
    task_default_queue="default",
    task_routes=CELERY_TASK_ROUTES,
    task_annotations=CELERY_TASK_ANNOTATIONS,
)

celery_app.conf.beat_schedule = {
    # ── Version retention ────────────────────────────────────────────────────
    "cleanup-old-document-versions": {
        "task": "cleanup_old_document_versions",
        "schedule": crontab(hour=settings.RETENTION_SWEEP_HOUR_UTC, minute=0),  # 04:00 UTC daily
    },
}
