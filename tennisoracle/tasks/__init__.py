"""Celery tasks for TennisOracle.

This module configures Celery and registers the periodic sync jobs.
"""

from celery import Celery
from celery.schedules import crontab

from tennisoracle.config import get_settings

settings = get_settings()

celery_app = Celery(
    "tennisoracle",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["tennisoracle.tasks.sync"],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task behavior
    task_track_started=True,
    task_time_limit=600,  # 10 minute hard limit
    task_soft_time_limit=540,  # 9 minute soft limit
    # Result expiration
    result_expires=3600,  # 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
)

celery_app.conf.beat_schedule = {
    # Rankings move weekly; refresh daily at 03:00
    "sync-players": {
        "task": "tennisoracle.tasks.sync.sync_players",
        "schedule": crontab(hour=3, minute=0),
        "options": {"expires": 3600},
    },
    "sync-tournaments": {
        "task": "tennisoracle.tasks.sync.sync_tournaments",
        "schedule": crontab(hour=3, minute=30),
        "options": {"expires": 3600},
    },
    # Order of play - every hour at :10
    "sync-matches": {
        "task": "tennisoracle.tasks.sync.sync_matches",
        "schedule": crontab(minute=10),
        "options": {"expires": 3300},
    },
    # News - every 30 minutes
    "sync-news": {
        "task": "tennisoracle.tasks.sync.sync_news",
        "schedule": 1800.0,
        "options": {"expires": 1700},
    },
}
