"""Meow claim orchestrator.

Per (user, day) the claim moves through three states::

    NOT_ELIGIBLE  (count < cap)
        -> ELIGIBLE_UNCLAIMED  (count >= cap, not used today)
        -> CLAIMED  (meow_claim_used_today = TRUE, one meow_claims row)

Only the last transition mutates state, and it is guarded by the global
daily quota. A claim is one transaction that locks the user row first and
the quota row second; every caller takes the locks in that order.

Double claims are prevented twice: by the ``meow_claim_used_today`` flag
(checked under the user lock) and by the unique ``(user_id, day)`` key of
``meow_claims``. Both must agree before a claim is granted.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.config import Settings, get_settings
from meowchi.logging_config import get_logger
from meowchi.middleware.sentry import capture_claim_error
from meowchi.models.meow import MeowClaim
from meowchi.services.meow_counter import MeowCounterService, TapResult
from meowchi.services.meow_quota import DailyQuotaService
from meowchi.utils.errors import (
    ClaimRejectedError,
    ErrorCode,
    RedeemError,
)
from meowchi.utils.tashkent import (
    end_of_day_instant,
    is_stale,
    later_day,
    parse_day,
    today,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Eligibility:
    """Whether a user may claim today, and why."""

    eligible: bool
    used_today: bool
    remaining_global: int
    count: int
    day: str


@dataclass(frozen=True)
class TapOutcome:
    """A recorded tap plus eligibility once the counter is full."""

    tap: TapResult
    eligibility: Eligibility | None
    ends_at: datetime
    throttled: bool = False


@dataclass(frozen=True)
class ClaimResult:
    claim_id: str
    day: str
    promo_code: str
    discount_percent: int
    remaining_global: int


@dataclass(frozen=True)
class RedeemResult:
    claim_id: str
    day: str
    promo_code: str
    discount_percent: int


ClaimCallback = Callable[[int, ClaimResult], Awaitable[None]]


class MeowClaimService:
    """Taps, eligibility, claims and redemption for the daily discount."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        *,
        on_claimed: ClaimCallback | None = None,
    ):
        settings = settings or get_settings()
        self.db = db
        self.cap = settings.meow_tap_cap
        self.quota = settings.meow_daily_quota
        self.promo_code = settings.meow_promo_code
        self.discount_percent = settings.meow_discount_percent
        self.log_claims = settings.log_claims
        self.counter = MeowCounterService(db, cap=self.cap)
        self.quotas = DailyQuotaService(db, quota=self.quota)
        self.on_claimed = on_claimed

    def _eligibility(
        self,
        count: int,
        used_today: bool,
        remaining_global: int,
        day: str,
    ) -> Eligibility:
        eligible = count >= self.cap and not used_today and remaining_global > 0
        if self.log_claims:
            logger.debug(
                "meow_eligibility",
                day=day,
                count=count,
                used_today=used_today,
                remaining_global=remaining_global,
                eligible=eligible,
            )
        return Eligibility(
            eligible=eligible,
            used_today=used_today,
            remaining_global=remaining_global,
            count=count,
            day=day,
        )

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    async def evaluate_eligibility(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> Eligibility:
        """Idempotent status check; never mutates state."""
        day = today_token or today()
        snapshot = await self.counter.peek(user_id, day)
        remaining = await self.quotas.remaining(day)
        return self._eligibility(
            snapshot.count, snapshot.claim_used_today, remaining, day
        )

    async def peek_tap(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> TapOutcome:
        """Current counter as a tap response, used for throttled taps."""
        day = today_token or today()
        snapshot = await self.counter.peek(user_id, day)
        tap = TapResult(
            count=snapshot.count,
            capped=snapshot.count >= self.cap,
            day=day,
            previous_count=snapshot.count,
            claim_used_today=snapshot.claim_used_today,
        )
        eligibility = None
        if tap.capped:
            remaining = await self.quotas.remaining(day)
            eligibility = self._eligibility(
                tap.count, tap.claim_used_today, remaining, day
            )
        return TapOutcome(
            tap=tap,
            eligibility=eligibility,
            ends_at=end_of_day_instant(day),
            throttled=True,
        )

    # ------------------------------------------------------------------
    # Mutating paths
    # ------------------------------------------------------------------

    async def tap(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> TapOutcome:
        """Record one tap and commit.

        When the counter is full, eligibility is computed in the same
        transaction as the increment that filled it.
        """
        day = today_token or today()
        try:
            tap = await self.counter.record_tap(user_id, day)
            day = tap.day
            eligibility = None
            if tap.capped:
                remaining = await self.quotas.remaining(day, for_update=True)
                eligibility = self._eligibility(
                    tap.count, tap.claim_used_today, remaining, day
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if tap.rolled_over:
            logger.info("meow_counter_rolled_over", user_id=user_id, day=day)

        return TapOutcome(
            tap=tap,
            eligibility=eligibility,
            ends_at=end_of_day_instant(day),
        )

    async def claim(
        self,
        user_id: int,
        today_token: str | None = None,
    ) -> ClaimResult:
        """Claim today's discount.

        Raises:
            ClaimRejectedError: NOT_ELIGIBLE, INSUFFICIENT_TAPS,
                ALREADY_CLAIMED or QUOTA_EXHAUSTED; nothing is persisted
            UserNotFoundError: if the user has no account
        """
        day = today_token or today()
        try:
            user = await self.counter.lock_user(user_id)
            day = later_day(user.meow_taps_date, day)

            if is_stale(user.meow_taps_date, day):
                raise ClaimRejectedError(
                    ErrorCode.NOT_ELIGIBLE,
                    message=f"Counter not at {self.cap} today",
                    details={"count": 0, "required": self.cap},
                )

            count = user.meow_taps or 0
            if count < self.cap:
                raise ClaimRejectedError(
                    ErrorCode.INSUFFICIENT_TAPS,
                    message=f"Need {self.cap} meows (current: {count})",
                    details={"count": count, "required": self.cap},
                )

            if user.meow_claim_used_today:
                raise ClaimRejectedError(ErrorCode.ALREADY_CLAIMED)

            taken = await self.quotas.lock_for_day(day)
            if taken >= self.quota:
                raise ClaimRejectedError(
                    ErrorCode.QUOTA_EXHAUSTED,
                    message=f"All {self.quota} slots taken today. Try tomorrow!",
                    details={"quota": self.quota},
                )

            claim_id = await self._insert_claim_record(user_id, day)
            await self.quotas.increment(day)
            taken += 1

            user.meow_claim_used_today = True
            await self.db.commit()
        except ClaimRejectedError as e:
            await self.db.rollback()
            logger.info(
                "meow_claim_rejected",
                user_id=user_id,
                day=day,
                code=e.code,
            )
            raise
        except Exception:
            await self.db.rollback()
            raise

        result = ClaimResult(
            claim_id=claim_id,
            day=day,
            promo_code=self.promo_code,
            discount_percent=self.discount_percent,
            remaining_global=max(self.quota - taken, 0),
        )
        logger.info(
            "meow_claimed",
            user_id=user_id,
            claim_id=claim_id,
            day=day,
            remaining_global=result.remaining_global,
        )

        await self._notify_claimed(user_id, result)
        return result

    async def _insert_claim_record(self, user_id: int, day: str) -> str:
        """Insert the (user, day) claim row and return its id.

        A conflicting row means the unique key saw a claim the flag did not;
        the guards disagree and the claim is refused.
        """
        result = await self.db.execute(
            insert(MeowClaim)
            .values(id=str(uuid4()), user_id=user_id, day=parse_day(day), consumed=False)
            .on_conflict_do_nothing(index_elements=["user_id", "day"])
            .returning(MeowClaim.id)
        )
        inserted = result.scalar_one_or_none()
        if inserted is None:
            logger.warning("meow_claim_record_conflict", user_id=user_id, day=day)
            raise ClaimRejectedError(ErrorCode.ALREADY_CLAIMED)
        return str(inserted)

    async def _notify_claimed(self, user_id: int, result: ClaimResult) -> None:
        """Best-effort post-commit hook; a failure never undoes the claim."""
        if self.on_claimed is None:
            return
        try:
            await self.on_claimed(user_id, result)
        except Exception as e:
            logger.warning(
                "meow_claim_notification_failed",
                user_id=user_id,
                claim_id=result.claim_id,
                exc_info=True,
            )
            capture_claim_error(e, user_id, result.day, {"claim_id": result.claim_id})

    async def redeem(
        self,
        user_id: int,
        claim_id: str,
        today_token: str | None = None,
    ) -> RedeemResult:
        """Consume today's claim, e.g. when an order applies the discount.

        Raises:
            RedeemError: CLAIM_NOT_FOUND (unknown, foreign or expired claim)
                or CLAIM_ALREADY_CONSUMED
        """
        day = today_token or today()
        try:
            UUID(str(claim_id))
        except ValueError:
            raise RedeemError(
                ErrorCode.CLAIM_NOT_FOUND, "Claim not found or expired"
            ) from None

        try:
            result = await self.db.execute(
                select(MeowClaim)
                .where(
                    MeowClaim.id == str(claim_id),
                    MeowClaim.user_id == user_id,
                    MeowClaim.day == parse_day(day),
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            claim = result.scalar_one_or_none()
            if claim is None:
                raise RedeemError(
                    ErrorCode.CLAIM_NOT_FOUND, "Claim not found or expired"
                )
            if claim.consumed:
                raise RedeemError(
                    ErrorCode.CLAIM_ALREADY_CONSUMED, "Claim already consumed"
                )

            claim.consumed = True
            claim.consumed_at = datetime.now(timezone.utc)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("meow_claim_redeemed", user_id=user_id, claim_id=str(claim_id), day=day)
        return RedeemResult(
            claim_id=str(claim_id),
            day=day,
            promo_code=self.promo_code,
            discount_percent=self.discount_percent,
        )
