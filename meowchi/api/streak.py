"""Daily streak API."""

from fastapi import APIRouter

from meowchi.api.deps import CurrentTelegramUser, DbSession
from meowchi.middleware.prometheus import record_streak_claim
from meowchi.schemas.common import ErrorResponse
from meowchi.schemas.responses import StreakClaimResponse, StreakStatusResponse
from meowchi.services.streak import StreakService
from meowchi.utils.errors import StreakError

router = APIRouter(prefix="/streak", tags=["Streak"])


@router.post(
    "/claim",
    response_model=StreakClaimResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Streak already claimed today"},
    },
)
async def claim_streak(tg_user: CurrentTelegramUser, db: DbSession):
    """Claim today's streak bonus (once per Tashkent day).

    The bonus grows with the streak; a missed day restarts it at 1.
    """
    try:
        result = await StreakService(db).claim_streak(tg_user.id)
    except StreakError as e:
        record_streak_claim(e.code)
        raise

    record_streak_claim("granted")
    return StreakClaimResponse(
        daily=result.daily,
        longest=result.longest,
        points_earned=result.points_earned,
        total_points=result.total_points,
        day=result.day,
    )


@router.get("/status", response_model=StreakStatusResponse)
async def get_streak_status(tg_user: CurrentTelegramUser, db: DbSession):
    result = await StreakService(db).get_status(tg_user.id)
    return StreakStatusResponse(
        can_claim=result.can_claim,
        daily=result.daily,
        longest=result.longest,
        next_reward=result.next_reward,
        last_claim_day=result.last_claim_day,
    )
