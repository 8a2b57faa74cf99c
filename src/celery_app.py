"""Celery application configuration."""

from celery import Celery

from src.config import get_settings

settings = get_settings()

app = Celery(
    "provisioning",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.subscriptions"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=900,  # 15 minutes for a full reconciliation
    task_soft_time_limit=840,
    beat_schedule={
        "sync-subscriptions": {
            "task": "src.tasks.subscriptions.sync_subscriptions",
            "schedule": settings.sync_schedule_minutes * 60.0,
        },
    },
)
