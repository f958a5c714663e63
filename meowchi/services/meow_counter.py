"""Per-user daily meow counter.

The counter lives on the ``users`` row (``meow_taps``, ``meow_taps_date``,
``meow_claim_used_today``) and is a rolling single-day window: a row stamped
with an earlier Tashkent day is logically zero and unclaimed.

Writes happen under ``SELECT ... FOR UPDATE`` on the user's row, so
concurrent taps for the same user are serialized and can neither lose an
increment nor overshoot the cap. The caller owns the transaction; this
service only reads, mutates and flushes.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.config import get_settings
from meowchi.models.user import User
from meowchi.utils.errors import UserNotFoundError
from meowchi.utils.tashkent import day_token, is_stale, later_day, parse_day, today


@dataclass(frozen=True)
class TapResult:
    """Counter state after one tap."""

    count: int
    capped: bool
    day: str
    previous_count: int
    claim_used_today: bool
    rolled_over: bool = False


@dataclass(frozen=True)
class CounterSnapshot:
    """Read-only view of the counter with staleness already resolved."""

    count: int
    day: str
    claim_used_today: bool
    stored_day: str | None


class MeowCounterService:
    """Capped per-user daily tap counter."""

    def __init__(self, db: AsyncSession, cap: int | None = None):
        self.db = db
        self.cap = cap if cap is not None else get_settings().meow_tap_cap

    async def lock_user(self, user_id: int) -> User:
        """Load the user row under a row lock.

        Raises:
            UserNotFoundError: if the user has no account
        """
        result = await self.db.execute(
            select(User)
            .where(User.telegram_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    @staticmethod
    def roll_over(user: User, today_token: str) -> bool:
        """Reset a locked row stamped with an earlier day. Returns True if reset."""
        if not is_stale(user.meow_taps_date, today_token):
            return False
        if later_day(user.meow_taps_date, today_token) != today_token:
            return False
        user.meow_taps = 0
        user.meow_taps_date = parse_day(today_token)
        user.meow_claim_used_today = False
        return True

    async def record_tap(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> TapResult:
        """Count one tap for today.

        Day rollover is resolved before the cap check, so the first tap of a
        new day always counts. At the cap the counter saturates silently.
        A row already stamped with a later day than ``today_token`` is counted
        on that day and never rolled back.
        """
        day = today_token or today()
        user = await self.lock_user(user_id)
        day = later_day(user.meow_taps_date, day)

        rolled_over = self.roll_over(user, day)
        previous = user.meow_taps or 0

        if previous >= self.cap:
            return TapResult(
                count=self.cap,
                capped=True,
                day=day,
                previous_count=self.cap,
                claim_used_today=bool(user.meow_claim_used_today),
                rolled_over=rolled_over,
            )

        count = min(previous + 1, self.cap)
        user.meow_taps = count
        user.meow_taps_date = parse_day(day)
        await self.db.flush()

        return TapResult(
            count=count,
            capped=count >= self.cap,
            day=day,
            previous_count=previous,
            claim_used_today=bool(user.meow_claim_used_today),
            rolled_over=rolled_over,
        )

    async def peek(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> CounterSnapshot:
        """Read the counter without locking or persisting a reset."""
        day = today_token or today()
        result = await self.db.execute(
            select(
                User.meow_taps,
                User.meow_taps_date,
                User.meow_claim_used_today,
            ).where(User.telegram_id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise UserNotFoundError(user_id)

        stored_day = day_token(row.meow_taps_date)
        if is_stale(row.meow_taps_date, day):
            return CounterSnapshot(
                count=0,
                day=day,
                claim_used_today=False,
                stored_day=stored_day,
            )

        return CounterSnapshot(
            count=min(row.meow_taps or 0, self.cap),
            day=day,
            claim_used_today=bool(row.meow_claim_used_today),
            stored_day=stored_day,
        )
