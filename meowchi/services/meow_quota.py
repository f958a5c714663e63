"""Global daily claim quota.

One ``meow_daily_claims`` row per Tashkent day counts the claims accepted
that day, across all users. The row is created on demand and its
``claims_taken`` only grows within the day.
"""

from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.config import get_settings
from meowchi.models.meow import MeowDailyQuota
from meowchi.utils.tashkent import parse_day


@dataclass(frozen=True)
class SlotResult:
    """Outcome of trying to take one quota slot."""

    accepted: bool
    remaining: int
    claims_taken: int


class DailyQuotaService:
    """Per-day global claim counter."""

    def __init__(self, db: AsyncSession, quota: int | None = None):
        self.db = db
        self.quota = quota if quota is not None else get_settings().meow_daily_quota

    def remaining_for(self, claims_taken: int) -> int:
        return max(self.quota - claims_taken, 0)

    async def lock_for_day(self, day: str) -> int:
        """Ensure the day's row exists and lock it. Returns claims taken.

        The row is inserted first so two transactions racing on a brand new
        day both end up waiting on the same row lock.
        """
        day_value = parse_day(day)
        await self.db.execute(
            insert(MeowDailyQuota)
            .values(day=day_value, claims_taken=0)
            .on_conflict_do_nothing(index_elements=["day"])
        )
        result = await self.db.execute(
            select(MeowDailyQuota.claims_taken)
            .where(MeowDailyQuota.day == day_value)
            .with_for_update()
        )
        return int(result.scalar_one())

    async def increment(self, day: str) -> None:
        """Add one claim to a row already locked by :meth:`lock_for_day`."""
        await self.db.execute(
            update(MeowDailyQuota)
            .where(MeowDailyQuota.day == parse_day(day))
            .values(claims_taken=MeowDailyQuota.claims_taken + 1)
            .execution_options(synchronize_session=False)
        )

    async def try_consume_slot(self, day: str) -> SlotResult:
        """Take one slot for ``day`` if any is left."""
        taken = await self.lock_for_day(day)
        if taken >= self.quota:
            return SlotResult(accepted=False, remaining=0, claims_taken=taken)

        await self.increment(day)
        taken += 1
        return SlotResult(
            accepted=True,
            remaining=self.remaining_for(taken),
            claims_taken=taken,
        )

    async def remaining(self, day: str, *, for_update: bool = False) -> int:
        """Slots left for ``day``; a missing row means nothing taken yet.

        With ``for_update`` the existing row is locked, which orders the read
        after any in-flight claim for the same day.
        """
        stmt = select(MeowDailyQuota.claims_taken).where(
            MeowDailyQuota.day == parse_day(day)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        taken = result.scalar_one_or_none() or 0
        return self.remaining_for(int(taken))

    async def reset_day(self, day: str) -> None:
        """Create or zero the row for ``day``."""
        stmt = insert(MeowDailyQuota).values(day=parse_day(day), claims_taken=0)
        stmt = stmt.on_conflict_do_update(
            index_elements=["day"],
            set_={"claims_taken": 0, "updated_at": func.now()},
        )
        await self.db.execute(stmt)
