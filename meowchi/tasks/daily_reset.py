"""Daily reset task.

Scheduled by Celery beat at 19:00 UTC, which is midnight in Tashkent.
"""

import asyncio
from datetime import datetime, timezone

from meowchi.logging_config import get_logger
from meowchi.middleware.prometheus import record_daily_reset
from meowchi.tasks.celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(
    name="meowchi.tasks.daily_reset.reset_daily_state_task",
    max_retries=0,
)
def reset_daily_state_task(day: str | None = None):
    """Reset meow counters, claim flags, streak flags and today's quota.

    Failures are not retried within the tick; readers already treat stale
    rows as reset, and the next tick runs the job again.

    Args:
        day: Optional ``YYYY-MM-DD`` Tashkent day, defaults to today

    Returns:
        Summary dict
    """
    logger.info("daily_reset_task_started", day=day)
    result = asyncio.run(_run_daily_reset(day))
    record_daily_reset(result["status"])
    logger.info("daily_reset_task_finished", **result)
    return result


async def _run_daily_reset(day: str | None = None) -> dict:
    from sqlalchemy.ext.asyncio import async_sessionmaker

    from meowchi.config import get_settings
    from meowchi.services.daily_reset import DailyResetService
    from meowchi.utils.db import build_engine

    # A fresh engine per run; pooled connections cannot cross event loops
    engine = build_engine(get_settings(), pool_size=1, max_overflow=0)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with session_factory() as session:
            summary = await DailyResetService(session).run(day)
        return {
            "status": "success",
            "day": summary.day,
            "users_reset": summary.users_reset,
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }
    except Exception as e:
        logger.error("daily_reset_task_failed", error=str(e))
        return {
            "status": "error",
            "day": day,
            "error": str(e),
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }
    finally:
        await engine.dispose()
