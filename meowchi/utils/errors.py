"""Custom exception classes for service errors.

Provides structured error handling with error codes and user-friendly messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"

    # Auth errors
    AUTH_INIT_DATA_REQUIRED = "AUTH_INIT_DATA_REQUIRED"
    AUTH_INVALID_INIT_DATA = "AUTH_INVALID_INIT_DATA"

    # User errors
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Claim rejections
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    INSUFFICIENT_TAPS = "INSUFFICIENT_TAPS"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"

    # Redemption errors
    CLAIM_NOT_FOUND = "CLAIM_NOT_FOUND"
    CLAIM_ALREADY_CONSUMED = "CLAIM_ALREADY_CONSUMED"

    # Streak errors
    STREAK_ALREADY_CLAIMED = "STREAK_ALREADY_CLAIMED"


class MeowchiError(Exception):
    """Base exception for service errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
        retryable: Whether retrying the same request may succeed
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        self.retryable = retryable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class UserNotFoundError(MeowchiError):
    """Raised when the authenticated Telegram user has no account row."""

    def __init__(self, user_id: int):
        super().__init__(
            code=ErrorCode.USER_NOT_FOUND,
            message="User not found",
            details={"userId": user_id},
        )


_CLAIM_MESSAGES = {
    ErrorCode.NOT_ELIGIBLE: "The counter was not completed today",
    ErrorCode.INSUFFICIENT_TAPS: "Not enough meows yet",
    ErrorCode.ALREADY_CLAIMED: "Discount already claimed today",
    ErrorCode.QUOTA_EXHAUSTED: "All slots are taken today. Try tomorrow!",
}


class ClaimRejectedError(MeowchiError):
    """Raised when a claim is refused by a business rule.

    Rejections are expected outcomes: they are never retried automatically
    and are not logged as failures.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=code,
            message=message or _CLAIM_MESSAGES.get(code, "Claim rejected"),
            details=details,
            retryable=False,
        )


class RedeemError(MeowchiError):
    """Raised when a claim cannot be redeemed."""


class StreakError(MeowchiError):
    """Raised when the daily streak cannot be claimed."""


class StorageUnavailableError(MeowchiError):
    """Transient storage failure (lock timeout, lost connection).

    The transaction has been rolled back; the caller may retry.
    """

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(
            code=ErrorCode.STORAGE_UNAVAILABLE,
            message=message,
            retryable=True,
        )
