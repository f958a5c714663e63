"""Telegram Mini App initData validation.

https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl

from pydantic import BaseModel, ValidationError

from meowchi.utils.errors import ErrorCode, MeowchiError


class TelegramUser(BaseModel):
    """User object embedded in initData."""

    id: int
    first_name: str
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None
    is_premium: bool | None = None
    photo_url: str | None = None


class TelegramInitData(BaseModel):
    """Parsed and verified initData."""

    user: TelegramUser
    auth_date: datetime
    query_id: str | None = None
    chat_type: str | None = None
    chat_instance: str | None = None
    start_param: str | None = None
    hash: str


class TelegramAuthError(MeowchiError):
    """initData is missing, forged or expired."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.AUTH_INVALID_INIT_DATA):
        super().__init__(code=code, message=message)


def _secret_key(bot_token: str) -> bytes:
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def compute_hash(fields: dict[str, str], bot_token: str) -> str:
    """HMAC-SHA256 of the data-check-string (all fields except ``hash``)."""
    data_check_string = "\n".join(
        f"{key}={fields[key]}" for key in sorted(fields) if key != "hash"
    )
    return hmac.new(
        _secret_key(bot_token),
        data_check_string.encode(),
        hashlib.sha256,
    ).hexdigest()


def validate_init_data(
    init_data: str,
    bot_token: str,
    max_age_seconds: int = 86400,
    now: datetime | None = None,
) -> TelegramInitData:
    """Validate initData sent by the Mini App.

    Args:
        init_data: URL-encoded string from ``Telegram.WebApp.initData``
        bot_token: Bot token the Mini App belongs to
        max_age_seconds: Maximum accepted age of ``auth_date``
        now: Reference time, defaults to the current UTC time

    Returns:
        TelegramInitData with the verified user

    Raises:
        TelegramAuthError: If the data is missing, forged or too old
    """
    if not init_data:
        raise TelegramAuthError(
            "initData is required", code=ErrorCode.AUTH_INIT_DATA_REQUIRED
        )

    fields = dict(parse_qsl(init_data, keep_blank_values=True))

    received_hash = fields.get("hash")
    if not received_hash:
        raise TelegramAuthError("hash is missing from initData")

    if not hmac.compare_digest(compute_hash(fields, bot_token), received_hash):
        raise TelegramAuthError("initData hash is invalid")

    if "auth_date" not in fields:
        raise TelegramAuthError("auth_date is missing from initData")
    try:
        auth_date = datetime.fromtimestamp(int(fields["auth_date"]), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise TelegramAuthError("auth_date is malformed") from None

    now = now or datetime.now(timezone.utc)
    if now - auth_date > timedelta(seconds=max_age_seconds):
        raise TelegramAuthError("initData has expired")

    if "user" not in fields:
        raise TelegramAuthError("user is missing from initData")
    try:
        user = TelegramUser.model_validate(json.loads(fields["user"]))
    except (ValueError, ValidationError) as e:
        raise TelegramAuthError(f"user payload is malformed: {e}") from None

    return TelegramInitData(
        user=user,
        auth_date=auth_date,
        query_id=fields.get("query_id"),
        chat_type=fields.get("chat_type"),
        chat_instance=fields.get("chat_instance"),
        start_param=fields.get("start_param"),
        hash=received_hash,
    )
