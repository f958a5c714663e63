"""Tests for Telegram initData validation."""

import time
from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlencode

import pytest

from meowchi.utils.errors import ErrorCode
from meowchi.utils.telegram_auth import (
    TelegramAuthError,
    validate_init_data,
)
from tests.helpers import TEST_BOT_TOKEN, make_init_data


class TestValidateInitData:
    def test_valid(self):
        init_data = make_init_data(
            user={"id": 42, "first_name": "Mochi", "last_name": "Cat", "username": "mochi"},
            start_param="promo",
        )

        data = validate_init_data(init_data, TEST_BOT_TOKEN)

        assert data.user.id == 42
        assert data.user.first_name == "Mochi"
        assert data.user.last_name == "Cat"
        assert data.start_param == "promo"
        assert data.auth_date.tzinfo is not None

    def test_missing(self):
        with pytest.raises(TelegramAuthError) as exc_info:
            validate_init_data("", TEST_BOT_TOKEN)
        assert exc_info.value.code == ErrorCode.AUTH_INIT_DATA_REQUIRED.value

    def test_missing_hash(self):
        fields = dict(parse_qsl(make_init_data()))
        del fields["hash"]

        with pytest.raises(TelegramAuthError, match="hash"):
            validate_init_data(urlencode(fields), TEST_BOT_TOKEN)

    def test_tampered_user(self):
        fields = dict(parse_qsl(make_init_data(user={"id": 1, "first_name": "A"})))
        fields["user"] = '{"id":2,"first_name":"A"}'

        with pytest.raises(TelegramAuthError) as exc_info:
            validate_init_data(urlencode(fields), TEST_BOT_TOKEN)
        assert exc_info.value.code == ErrorCode.AUTH_INVALID_INIT_DATA.value

    def test_wrong_bot_token(self):
        with pytest.raises(TelegramAuthError, match="invalid"):
            validate_init_data(make_init_data(), "999:other-token")

    def test_expired(self):
        init_data = make_init_data(auth_date=int(time.time()) - 90_000)

        with pytest.raises(TelegramAuthError, match="expired"):
            validate_init_data(init_data, TEST_BOT_TOKEN, max_age_seconds=86400)

    def test_reference_time(self):
        auth_date = 1_700_000_000
        init_data = make_init_data(auth_date=auth_date)
        now = datetime.fromtimestamp(auth_date + 60, tz=timezone.utc)

        data = validate_init_data(init_data, TEST_BOT_TOKEN, max_age_seconds=120, now=now)

        assert int(data.auth_date.timestamp()) == auth_date

    def test_malformed_user(self):
        init_data = make_init_data(user={"first_name": "no id"})

        with pytest.raises(TelegramAuthError, match="malformed"):
            validate_init_data(init_data, TEST_BOT_TOKEN)
