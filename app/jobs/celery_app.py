## Celery Configuration
from celery import Celery
from celery.schedules import crontab

from app.settings import settings

celery_app = Celery(
    "stockfolio",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.jobs.tasks"],
)

celery_app.conf.update(
    task_track_started=True,
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    timezone='UTC',
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "daily-posts": {
        "task": "app.jobs.tasks.generate_daily_posts_task",
        "schedule": crontab(hour=settings.daily_posts_hour_utc, minute=0),
    },
}
