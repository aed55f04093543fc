"""Celery configuration."""
from celery import Celery

from hound_analysis.config import configure_logging, settings

configure_logging()

celery_app = Celery(
    "hound_analysis",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["hound_analysis.tasks.analysis"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,  # one track per worker process at a time
    result_expires=86400,
    task_routes={
        "hound_analysis.tasks.analysis.*": {"queue": settings.ANALYSIS_QUEUE},
    },
)
