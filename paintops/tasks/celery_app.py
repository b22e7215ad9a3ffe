from celery import Celery
from celery.schedules import crontab

from paintops.config import settings

app = Celery(
    "paintops",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # beat schedules below are in company local time
    timezone=settings.COMPANY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "paintops.tasks.agenda_tasks.*": {"queue": "email"},
    },
    beat_schedule={
        "send-daily-agenda": {
            "task": "paintops.tasks.agenda_tasks.send_daily_agenda",
            "schedule": crontab(hour=7, minute=0),
        },
    },
)

app.autodiscover_tasks(["paintops.tasks.agenda_tasks"])
