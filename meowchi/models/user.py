"""User model."""

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meowchi.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from meowchi.models.meow import MeowClaim


class User(Base, TimestampMixin):
    """Telegram user account.

    The row also carries the user's single-day rolling state: the meow tap
    counter and the daily streak. Per-day columns are stamped with the
    Tashkent day they belong to and are reset lazily when that day is over.
    """

    __tablename__ = "users"

    telegram_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    # Profile (mirrors Telegram)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_login_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    points: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    # Daily streak
    daily_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_login_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Tashkent day of the last streak claim",
    )
    streak_claimed_today: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Meow counter (capped daily taps)
    meow_taps: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    meow_taps_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Tashkent day meow_taps belongs to",
    )
    meow_claim_used_today: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    claims: Mapped[list["MeowClaim"]] = relationship(
        "MeowClaim",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint("meow_taps >= 0", name="ck_users_meow_taps_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User {self.telegram_id}>"
