"""Midnight (UTC+5) reset of per-day user state."""

from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.logging_config import get_logger
from meowchi.models.user import User
from meowchi.services.meow_quota import DailyQuotaService
from meowchi.utils.tashkent import parse_day, tashkent_hour, today

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResetSummary:
    day: str
    users_reset: int
    quota_day: str


class DailyResetService:
    """Bulk reset run by the scheduler at local midnight.

    Readers do not depend on this job: every per-day column is stamped with
    its day and treated as zero once stale. The job only makes the stored
    state match what readers already see.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quotas = DailyQuotaService(db)

    async def run(self, today_token: str | None = None) -> ResetSummary:
        day = today_token or today()
        try:
            result = await self.db.execute(
                update(User)
                .values(
                    meow_taps=0,
                    meow_claim_used_today=False,
                    meow_taps_date=parse_day(day),
                    streak_claimed_today=False,
                )
                .execution_options(synchronize_session=False)
            )
            await self.quotas.reset_day(day)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.error("daily_reset_failed", day=day, exc_info=True)
            raise

        summary = ResetSummary(day=day, users_reset=result.rowcount or 0, quota_day=day)
        logger.info(
            "daily_reset_completed",
            day=day,
            users_reset=summary.users_reset,
            local_hour=tashkent_hour(),
        )
        return summary
