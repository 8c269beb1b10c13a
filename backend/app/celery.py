"""
Celery application for out-of-process pipeline runs.

Two queues keep long searches from starving re-scoring:
    processing  search + ingest + match for one or all profiles
    scoring     re-score existing listings for a profile

    celery -A app.celery worker -Q processing,scoring --loglevel=info
"""

from celery import Celery

from app.config import get_settings
from app.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

celery_app = Celery(
    "jobcompass",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.pipeline"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
    timezone="UTC",
    # profile runs are long; reserve one task at a time per worker process
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    result_expires=6 * 3600,
    task_default_queue="processing",
    task_routes={
        "app.tasks.pipeline.refresh_matches_task": {"queue": "scoring"},
    },
)
