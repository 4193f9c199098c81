from celery import Celery
from celery.schedules import crontab

from billflow.core.config import settings

celery_app = Celery(
    "billflow_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["billflow.workers.approval_tasks"],
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
    broker_connection_retry_on_startup=True,
)

celery_app.conf.beat_schedule = {
    # Future-dated rules become effective at midnight UTC
    "reprocess-pending-bills-daily": {
        "task": "billflow.workers.approval_tasks.reprocess_pending_bills",
        "schedule": crontab(hour=0, minute=5),
    },
    "check-approval-escalations-daily": {
        "task": "billflow.workers.approval_tasks.check_approval_escalations",
        "schedule": crontab(hour=8, minute=0),
    },
}
