"""Daily login streak service."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.config import get_settings
from meowchi.logging_config import get_logger
from meowchi.models.user import User
from meowchi.utils.errors import ErrorCode, StreakError, UserNotFoundError
from meowchi.utils.tashkent import day_distance, day_token, parse_day, today

logger = get_logger(__name__)


@dataclass(frozen=True)
class StreakResult:
    daily: int
    longest: int
    points_earned: int
    total_points: int
    day: str


@dataclass(frozen=True)
class StreakStatus:
    can_claim: bool
    daily: int
    longest: int
    next_reward: int
    last_claim_day: str | None


class StreakService:
    """Once-per-day streak claim with a growing point bonus.

    The streak continues when the previous claim was yesterday and restarts
    at 1 after a gap. ``streak_claimed_today`` only blocks a second claim on
    the same Tashkent day; a flag left over from yesterday (for instance when
    the reset job did not run) is ignored.
    """

    def __init__(self, db: AsyncSession, bonus_per_day: int | None = None):
        self.db = db
        self.bonus_per_day = (
            bonus_per_day
            if bonus_per_day is not None
            else get_settings().streak_bonus_per_day
        )

    @staticmethod
    def _gap(last_claim_day: str | None, day: str) -> int | None:
        if last_claim_day is None:
            return None
        return day_distance(last_claim_day, day)

    def _next_streak(self, current: int, gap: int | None) -> int:
        if gap is None or gap > 1:
            return 1
        return current + 1

    async def claim_streak(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> StreakResult:
        """Claim today's streak bonus.

        Raises:
            StreakError: STREAK_ALREADY_CLAIMED
            UserNotFoundError: if the user has no account
        """
        day = today_token or today()
        try:
            result = await self.db.execute(
                select(User)
                .where(User.telegram_id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise UserNotFoundError(user_id)

            gap = self._gap(day_token(user.last_login_date), day)
            if user.streak_claimed_today and gap == 0:
                raise StreakError(
                    ErrorCode.STREAK_ALREADY_CLAIMED,
                    "Streak already claimed today",
                )

            new_streak = self._next_streak(user.daily_streak or 0, gap)
            bonus = self.bonus_per_day * new_streak

            user.daily_streak = new_streak
            user.longest_streak = max(user.longest_streak or 0, new_streak)
            user.last_login_date = parse_day(day)
            user.streak_claimed_today = True
            user.points = (user.points or 0) + bonus
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "streak_claimed",
            user_id=user_id,
            day=day,
            streak=new_streak,
            points_earned=bonus,
        )
        return StreakResult(
            daily=new_streak,
            longest=user.longest_streak,
            points_earned=bonus,
            total_points=user.points,
            day=day,
        )

    async def get_status(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> StreakStatus:
        """Whether the streak can be claimed today and what it would pay."""
        day = today_token or today()
        result = await self.db.execute(
            select(
                User.daily_streak,
                User.longest_streak,
                User.last_login_date,
                User.streak_claimed_today,
            ).where(User.telegram_id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise UserNotFoundError(user_id)

        last_day = day_token(row.last_login_date)
        gap = self._gap(last_day, day)
        can_claim = not (row.streak_claimed_today and gap == 0)
        # A streak broken by a gap reads as zero until the next claim.
        current = row.daily_streak or 0
        if gap is None or gap > 1:
            current = 0
        if can_claim:
            next_reward = self.bonus_per_day * self._next_streak(current, gap)
        else:
            next_reward = self.bonus_per_day * (current + 1)

        return StreakStatus(
            can_claim=can_claim,
            daily=current,
            longest=row.longest_streak or 0,
            next_reward=next_reward,
            last_claim_day=last_day,
        )
