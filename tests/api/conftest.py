"""Fixtures for API tests.

The app runs against mocked services; no database is needed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from meowchi.api.deps import get_claim_service, get_tap_throttle
from meowchi.services.tap_throttle import TapThrottle
from meowchi.utils.db import get_db
from tests.helpers import TEST_USER_ID, make_init_data


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {
        "X-Telegram-Init-Data": make_init_data(
            user={"id": TEST_USER_ID, "first_name": "Mochi", "username": "mochi"}
        )
    }


@pytest.fixture
def claim_service() -> MagicMock:
    service = MagicMock()
    service.cap = 42
    service.tap = AsyncMock()
    service.peek_tap = AsyncMock()
    service.evaluate_eligibility = AsyncMock()
    service.claim = AsyncMock()
    service.redeem = AsyncMock()
    return service


@pytest.fixture
def throttle() -> TapThrottle:
    return TapThrottle(cooldown_ms=0)


@pytest.fixture
def api_db():
    return AsyncMock()


@pytest_asyncio.fixture
async def client(claim_service, throttle, api_db):
    from meowchi.main import app

    async def override_get_db():
        yield api_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_claim_service] = lambda: claim_service
    app.dependency_overrides[get_tap_throttle] = lambda: throttle

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
