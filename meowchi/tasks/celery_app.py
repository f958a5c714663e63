"""Celery application configuration.

Redis is the broker and result backend. Beat runs in UTC; local (UTC+5)
schedules are expressed as UTC crontabs in ``schedules.py``.
"""

from celery import Celery
from celery.signals import setup_logging

from meowchi.config import get_settings
from meowchi.tasks.schedules import CELERY_BEAT_SCHEDULE, CELERY_TASK_ROUTES

REDIS_URL = get_settings().redis_url

celery_app = Celery(
    "meowchi_tasks",
    broker=f"{REDIS_URL.rsplit('/', 1)[0]}/1",  # DB 1 for broker
    backend=f"{REDIS_URL.rsplit('/', 1)[0]}/2",  # DB 2 for results
    include=[
        "meowchi.tasks.daily_reset",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    task_routes=CELERY_TASK_ROUTES,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    result_expires=86400,  # 24 hours

    beat_schedule=CELERY_BEAT_SCHEDULE,
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    """Route worker logs through the same structlog pipeline as the API."""
    from meowchi.logging_config import configure_logging

    settings = get_settings()
    configure_logging(log_level=settings.log_level, app_env=settings.app_env)
