"""API dependencies for authentication and common utilities."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from meowchi.config import get_settings
from meowchi.logging_config import bind_context
from meowchi.middleware.prometheus import publish_claim
from meowchi.services.meow_claim import MeowClaimService
from meowchi.services.tap_throttle import TapThrottle
from meowchi.utils.db import get_db
from meowchi.utils.errors import ErrorCode
from meowchi.utils.telegram_auth import (
    TelegramAuthError,
    TelegramUser,
    validate_init_data,
)

TELEGRAM_AUTH_SCHEME = "telegram"


def extract_init_data(
    x_telegram_init_data: str | None = None,
    authorization: str | None = None,
) -> str | None:
    """initData from ``X-Telegram-Init-Data`` or ``Authorization: Telegram <initData>``."""
    if x_telegram_init_data:
        return x_telegram_init_data
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == TELEGRAM_AUTH_SCHEME and value.strip():
            return value.strip()
    return None


def _auth_exception(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": {},
            }
        },
    )


async def get_telegram_user(
    x_telegram_init_data: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> TelegramUser:
    """Verify initData and return the Telegram user it was signed for.

    Raises:
        HTTPException: 400 if initData is missing, 401 if it is invalid
    """
    init_data = extract_init_data(x_telegram_init_data, authorization)
    if not init_data:
        raise _auth_exception(
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.AUTH_INIT_DATA_REQUIRED.value,
            "Telegram initData is required",
        )

    settings = get_settings()
    try:
        data = validate_init_data(
            init_data,
            settings.telegram_bot_token,
            max_age_seconds=settings.init_data_max_age_seconds,
        )
    except TelegramAuthError as e:
        raise _auth_exception(status.HTTP_401_UNAUTHORIZED, e.code, e.message)

    bind_context(user_id=data.user.id)
    return data.user


def get_tap_throttle(request: Request) -> TapThrottle:
    """Process-wide throttle created at startup."""
    throttle = getattr(request.app.state, "tap_throttle", None)
    if throttle is None:
        settings = get_settings()
        throttle = TapThrottle(
            cooldown_ms=settings.tap_cooldown_ms,
            max_entries=settings.tap_throttle_max_entries,
        )
        request.app.state.tap_throttle = throttle
    return throttle


def get_claim_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeowClaimService:
    return MeowClaimService(db, on_claimed=publish_claim)


# Type aliases for dependency injection
CurrentTelegramUser = Annotated[TelegramUser, Depends(get_telegram_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
ClaimService = Annotated[MeowClaimService, Depends(get_claim_service)]
Throttle = Annotated[TapThrottle, Depends(get_tap_throttle)]
