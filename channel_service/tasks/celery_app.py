"""
Celery application configuration.

Defines the Celery app with Redis broker, the task modules,
and the periodic beat schedule for queue draining and stats rollup.
"""

from celery import Celery
from celery.signals import after_setup_logger

from channel_service.config import settings
from channel_service.core.logging_config import configure_logging

celery_app = Celery(
    "channel_service",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "channel_service.tasks.matching_tasks",
        "channel_service.tasks.attribution_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "drain-matching-queue": {
        "task": "channel_service.tasks.matching_tasks.drain_matching_queue",
        "schedule": settings.MATCHING_INTERVAL,
    },
    "rollup-attribution-stats": {
        "task": "channel_service.tasks.attribution_tasks.rollup_attribution_stats",
        "schedule": settings.STATS_ROLLUP_INTERVAL,
    },
}


@after_setup_logger.connect
def _setup_logging(logger, *args, **kwargs):
    configure_logging(settings.LOG_LEVEL)
