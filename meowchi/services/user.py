"""User service."""

from datetime import datetime, timezone

from sqlalchemy import literal_column, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.logging_config import get_logger
from meowchi.models.user import User
from meowchi.utils.errors import UserNotFoundError
from meowchi.utils.telegram_auth import TelegramUser

logger = get_logger(__name__)


class UserService:
    """Account lookup and first-login provisioning."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> User | None:
        result = await self.db.execute(
            select(User).where(User.telegram_id == user_id)
        )
        return result.scalar_one_or_none()

    async def login(self, tg_user: TelegramUser) -> tuple[User, bool]:
        """Create the account on first sight, otherwise refresh its profile.

        Concurrent first logins of one user collapse into a single row.

        Returns:
            ``(user, created)``
        """
        profile = {
            "first_name": tg_user.first_name,
            "last_name": tg_user.last_name,
            "username": tg_user.username,
            "last_login_at": datetime.now(timezone.utc),
        }
        stmt = (
            insert(User)
            .values(telegram_id=tg_user.id, **profile)
            .on_conflict_do_update(index_elements=["telegram_id"], set_=profile)
            # xmax is 0 only for a freshly inserted tuple
            .returning(literal_column("(xmax = 0)").label("inserted"))
        )
        try:
            created = bool((await self.db.execute(stmt)).scalar_one())
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        user = await self.get_user(tg_user.id)
        if user is None:
            raise UserNotFoundError(tg_user.id)
        if created:
            logger.info("user_created", user_id=tg_user.id, username=tg_user.username)
        return user, created
