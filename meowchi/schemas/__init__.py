"""Pydantic schemas for API requests and responses."""

from meowchi.schemas.common import BaseSchema, ErrorDetail, ErrorResponse
from meowchi.schemas.requests import RedeemRequest
from meowchi.schemas.responses import (
    AuthValidateResponse,
    ClaimRejectedResponse,
    ClaimResponse,
    ClaimStatusResponse,
    HealthCheckResponse,
    RedeemResponse,
    StreakClaimResponse,
    StreakStatusResponse,
    TapResponse,
    UserProfileResponse,
)

__all__ = [
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "RedeemRequest",
    "AuthValidateResponse",
    "ClaimRejectedResponse",
    "ClaimResponse",
    "ClaimStatusResponse",
    "HealthCheckResponse",
    "RedeemResponse",
    "StreakClaimResponse",
    "StreakStatusResponse",
    "TapResponse",
    "UserProfileResponse",
]
