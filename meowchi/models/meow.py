"""Meow claim models."""

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meowchi.models.base import Base

if TYPE_CHECKING:
    from meowchi.models.user import User


class MeowDailyQuota(Base):
    """Global claim counter for one Tashkent day."""

    __tablename__ = "meow_daily_claims"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    claims_taken: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "claims_taken >= 0", name="ck_meow_daily_claims_taken_non_negative"
        ),
    )

    def __repr__(self) -> str:
        return f"<MeowDailyQuota day={self.day} taken={self.claims_taken}>"


class MeowClaim(Base):
    """A user's claim of the daily discount.

    At most one row exists per (user, day); the unique constraint is the
    backstop behind ``users.meow_claim_used_today``.
    """

    __tablename__ = "meow_claims"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.telegram_id", ondelete="CASCADE"),
        nullable=False,
    )
    day: Mapped[date] = mapped_column(Date, nullable=False)
    consumed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default="false",
        nullable=False,
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="claims")

    __table_args__ = (
        UniqueConstraint("user_id", "day", name="ux_meow_claims_user_day"),
        Index("idx_meow_claims_day", "day"),
    )

    def __repr__(self) -> str:
        return f"<MeowClaim {self.id} user={self.user_id} day={self.day}>"
