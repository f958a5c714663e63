"""Meow counter and daily claim API.

Endpoints:
- POST /meow/tap - count one tap
- POST /meow/claim-status - eligibility check, no side effects
- POST /meow/claim - claim today's discount
- POST /meow/redeem - consume today's claim
"""

from fastapi import APIRouter, status

from meowchi.api.deps import ClaimService, CurrentTelegramUser, Throttle
from meowchi.middleware.prometheus import record_claim, record_redemption, record_tap
from meowchi.schemas.common import ErrorResponse
from meowchi.schemas.requests import RedeemRequest
from meowchi.schemas.responses import (
    ClaimRejectedResponse,
    ClaimResponse,
    ClaimStatusResponse,
    RedeemResponse,
    TapResponse,
)
from meowchi.services.meow_claim import TapOutcome
from meowchi.utils.errors import ClaimRejectedError, ErrorCode, RedeemError
from meowchi.utils.json_utils import ORJSONResponse

router = APIRouter(prefix="/meow", tags=["Meow"])

CLAIM_REJECTION_STATUS = {
    ErrorCode.ALREADY_CLAIMED.value: status.HTTP_409_CONFLICT,
    ErrorCode.QUOTA_EXHAUSTED.value: status.HTTP_429_TOO_MANY_REQUESTS,
}


def _tap_response(outcome: TapOutcome, cap: int) -> TapResponse:
    tap = outcome.tap
    response = TapResponse(
        count=tap.count,
        capped=tap.capped,
        remaining=max(cap - tap.count, 0),
        day=tap.day,
        ends_at=outcome.ends_at,
        throttled=outcome.throttled,
    )
    if outcome.eligibility is not None:
        response.eligible = outcome.eligibility.eligible
        response.used_today = outcome.eligibility.used_today
        response.remaining_global = outcome.eligibility.remaining_global
    return response


@router.post(
    "/tap",
    response_model=TapResponse,
    response_model_exclude_none=True,
)
async def tap(tg_user: CurrentTelegramUser, service: ClaimService, throttle: Throttle):
    """Count one tap. The counter saturates at the cap without error.

    Taps arriving within the cooldown are answered with the current counter
    and ``throttled: true`` instead of being counted.
    """
    if throttle.should_throttle(tg_user.id):
        outcome = await service.peek_tap(tg_user.id)
    else:
        outcome = await service.tap(tg_user.id)
        throttle.mark(tg_user.id)

    record_tap(outcome.tap.previous_count, service.cap, throttled=outcome.throttled)
    return _tap_response(outcome, service.cap)


@router.post("/claim-status", response_model=ClaimStatusResponse)
async def claim_status(tg_user: CurrentTelegramUser, service: ClaimService):
    """Whether the user can claim now; idempotent."""
    eligibility = await service.evaluate_eligibility(tg_user.id)
    return ClaimStatusResponse(
        eligible=eligibility.eligible,
        used_today=eligibility.used_today,
        remaining_global=eligibility.remaining_global,
        count=eligibility.count,
        day=eligibility.day,
    )


@router.post(
    "/claim",
    response_model=ClaimResponse,
    responses={
        400: {"model": ClaimRejectedResponse},
        409: {"model": ClaimRejectedResponse},
        429: {"model": ClaimRejectedResponse},
    },
)
async def claim(tg_user: CurrentTelegramUser, service: ClaimService):
    """Claim today's discount.

    - Requires a full counter for the current Tashkent day
    - One claim per user per day
    - At most the daily quota of claims across all users
    """
    try:
        result = await service.claim(tg_user.id)
    except ClaimRejectedError as e:
        record_claim(e.code)
        return ORJSONResponse(
            status_code=CLAIM_REJECTION_STATUS.get(e.code, status.HTTP_400_BAD_REQUEST),
            content=ClaimRejectedResponse(error=e.code, message=e.message).model_dump(
                by_alias=True
            ),
        )

    record_claim("granted")
    return ClaimResponse(
        claim_id=result.claim_id,
        day=result.day,
        promo_code=result.promo_code,
        discount_percent=result.discount_percent,
        remaining_global=result.remaining_global,
    )


@router.post(
    "/redeem",
    response_model=RedeemResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown, foreign or expired claim"},
        409: {"model": ErrorResponse, "description": "Claim already consumed"},
    },
)
async def redeem(
    request: RedeemRequest,
    tg_user: CurrentTelegramUser,
    service: ClaimService,
):
    """Consume today's claim so its discount can be applied exactly once."""
    try:
        result = await service.redeem(tg_user.id, request.claim_id)
    except RedeemError as e:
        record_redemption(e.code)
        raise

    record_redemption("redeemed")
    return RedeemResponse(
        claim_id=result.claim_id,
        promo_code=result.promo_code,
        discount_percent=result.discount_percent,
    )
