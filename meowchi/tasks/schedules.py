"""Celery Beat schedule configuration.

Beat runs in UTC. Tashkent is a fixed UTC+5, so local midnight is 19:00 UTC
of the previous calendar day.
"""

from celery.schedules import crontab

TASHKENT_MIDNIGHT_UTC_HOUR = 19

CELERY_BEAT_SCHEDULE = {
    # Reset meow counters, claim flags and today's quota (00:00 UTC+5)
    "meow-daily-reset": {
        "task": "meowchi.tasks.daily_reset.reset_daily_state_task",
        "schedule": crontab(hour=TASHKENT_MIDNIGHT_UTC_HOUR, minute=0),
        "options": {"queue": "maintenance"},
    },
}

CELERY_TASK_ROUTES = {
    "meowchi.tasks.daily_reset.*": {"queue": "maintenance"},
}
