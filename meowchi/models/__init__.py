"""Database models."""

from meowchi.models.base import Base, TimestampMixin
from meowchi.models.meow import MeowClaim, MeowDailyQuota
from meowchi.models.user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # User
    "User",
    # Meow counter & claims
    "MeowDailyQuota",
    "MeowClaim",
]
