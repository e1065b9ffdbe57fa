"""
Celery application configuration.

Defines the Celery app with Redis broker and the periodic beat schedule
for the cleanup sweeper.
"""

from celery import Celery

from learnpath.config import settings

celery_app = Celery(
    "learnpath",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
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

# Auto-discover tasks in the tasks package
celery_app.autodiscover_tasks(["learnpath.tasks"], related_name="cleanup_tasks")

# Periodic tasks
celery_app.conf.beat_schedule = {
    "cleanup-expired-records": {
        "task": "learnpath.tasks.cleanup_tasks.cleanup_expired_records",
        "schedule": settings.CLEANUP_INTERVAL_SECONDS,
    },
}
