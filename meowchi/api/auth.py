"""Telegram Mini App authentication API."""

from fastapi import APIRouter

from meowchi.api.deps import CurrentTelegramUser, DbSession
from meowchi.logging_config import get_logger
from meowchi.middleware.sentry import set_user_context
from meowchi.schemas.common import ErrorResponse
from meowchi.schemas.responses import AuthValidateResponse, UserProfileResponse
from meowchi.services.user import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/validate",
    response_model=AuthValidateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "initData missing"},
        401: {"model": ErrorResponse, "description": "initData invalid or expired"},
    },
)
async def validate(tg_user: CurrentTelegramUser, db: DbSession):
    """Verify initData, register the user on first sight and return the profile."""
    user, created = await UserService(db).login(tg_user)
    set_user_context(user.telegram_id, username=user.username)
    return AuthValidateResponse(
        created=created,
        user=UserProfileResponse.model_validate(user),
    )
