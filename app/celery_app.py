from celery import Celery
from celery.schedules import crontab

from app.config import settings

celery_app = Celery(
    "doclib",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.events", "app.tasks.retention"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "purge-expired-trash": {
            "task": "app.tasks.retention.purge_expired_trash",
            "schedule": crontab(hour=settings.trash_sweep_hour, minute=0),
        },
    },
)
