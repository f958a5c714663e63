"""Test helpers shared across test modules."""

import hashlib
import hmac
import json
import time
from unittest.mock import MagicMock
from urllib.parse import urlencode

TEST_BOT_TOKEN = "123456789:TEST-meowchi-bot-token"
TEST_USER_ID = 1001


def make_init_data(
    user: dict | None = None,
    bot_token: str = TEST_BOT_TOKEN,
    auth_date: int | None = None,
    **extra: str,
) -> str:
    """Build initData signed the way Telegram signs it."""
    user = user or {"id": 1001, "first_name": "Mochi", "username": "mochi"}
    fields = {
        "auth_date": str(auth_date if auth_date is not None else int(time.time())),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user, separators=(",", ":")),
        **extra,
    }
    data_check_string = "\n".join(f"{k}={fields[k]}" for k in sorted(fields))
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    fields["hash"] = hmac.new(secret, data_check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode(fields)


def make_result(
    scalar_one_or_none=None,
    one_or_none=None,
    scalar_one=None,
    rowcount=None,
) -> MagicMock:
    """Fake SQLAlchemy Result for ``AsyncSession.execute``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar_one_or_none
    result.one_or_none.return_value = one_or_none
    result.scalar_one.return_value = scalar_one
    result.rowcount = rowcount
    return result
