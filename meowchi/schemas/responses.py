"""API response schemas."""

from datetime import datetime

from pydantic import Field

from meowchi.schemas.common import BaseSchema

# =============================================================================
# Auth Responses
# =============================================================================


class UserProfileResponse(BaseSchema):
    """Profile returned after initData validation."""

    telegram_id: int = Field(..., alias="telegramId")
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    username: str | None = None
    points: int = 0
    daily_streak: int = Field(0, alias="dailyStreak")
    longest_streak: int = Field(0, alias="longestStreak")


class AuthValidateResponse(BaseSchema):
    success: bool = True
    created: bool = False
    user: UserProfileResponse


# =============================================================================
# Meow Responses
# =============================================================================


class TapResponse(BaseSchema):
    """Counter after a tap; eligibility fields only once the counter is full."""

    count: int
    capped: bool
    remaining: int = Field(..., description="Taps left until the cap")
    day: str
    ends_at: datetime = Field(..., alias="endsAt")
    throttled: bool = False
    eligible: bool | None = None
    used_today: bool | None = Field(None, alias="usedToday")
    remaining_global: int | None = Field(None, alias="remainingGlobal")


class ClaimStatusResponse(BaseSchema):
    eligible: bool
    used_today: bool = Field(..., alias="usedToday")
    remaining_global: int = Field(..., alias="remainingGlobal")
    count: int
    day: str


class ClaimResponse(BaseSchema):
    success: bool = True
    claim_id: str = Field(..., alias="claimId")
    day: str
    promo_code: str = Field(..., alias="promoCode")
    discount_percent: int = Field(..., alias="discountPercent")
    remaining_global: int = Field(..., alias="remainingGlobal")


class ClaimRejectedResponse(BaseSchema):
    success: bool = False
    error: str
    message: str
    retryable: bool = False


class RedeemResponse(BaseSchema):
    success: bool = True
    claim_id: str = Field(..., alias="claimId")
    promo_code: str = Field(..., alias="promoCode")
    discount_percent: int = Field(..., alias="discountPercent")


# =============================================================================
# Streak Responses
# =============================================================================


class StreakClaimResponse(BaseSchema):
    success: bool = True
    daily: int
    longest: int
    points_earned: int = Field(..., alias="pointsEarned")
    total_points: int = Field(..., alias="totalPoints")
    day: str


class StreakStatusResponse(BaseSchema):
    can_claim: bool = Field(..., alias="canClaim")
    daily: int
    longest: int
    next_reward: int = Field(..., alias="nextReward")
    last_claim_day: str | None = Field(None, alias="lastClaimDay")


# =============================================================================
# Health Responses
# =============================================================================


class HealthCheckResponse(BaseSchema):
    status: str
    timestamp: datetime
    version: str
    services: dict[str, str] = Field(default_factory=dict)
