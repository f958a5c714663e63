"""Tests for the /meow endpoints."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from meowchi.services.meow_claim import ClaimResult, Eligibility, RedeemResult, TapOutcome
from meowchi.services.meow_counter import TapResult
from meowchi.utils.errors import ClaimRejectedError, ErrorCode, RedeemError
from tests.helpers import TEST_USER_ID

DAY = "2025-03-02"
ENDS_AT = datetime(2025, 3, 2, 19, 0, tzinfo=timezone.utc)


def make_outcome(count, eligibility=None, throttled=False):
    return TapOutcome(
        tap=TapResult(
            count=count,
            capped=count >= 42,
            day=DAY,
            previous_count=max(count - 1, 0),
            claim_used_today=False,
        ),
        eligibility=eligibility,
        ends_at=ENDS_AT,
        throttled=throttled,
    )


class TestTap:
    """Tests for POST /api/v1/meow/tap"""

    @pytest.mark.asyncio
    async def test_tap(self, client, claim_service, auth_headers):
        claim_service.tap.return_value = make_outcome(7)

        response = await client.post("/api/v1/meow/tap", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 7
        assert body["capped"] is False
        assert body["remaining"] == 35
        assert body["day"] == DAY
        assert body["endsAt"].startswith("2025-03-02T19:00:00")
        assert body["throttled"] is False
        assert "eligible" not in body
        claim_service.tap.assert_awaited_once_with(TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_filling_tap_includes_eligibility(self, client, claim_service, auth_headers):
        claim_service.tap.return_value = make_outcome(
            42,
            eligibility=Eligibility(
                eligible=True, used_today=False, remaining_global=12, count=42, day=DAY
            ),
        )

        response = await client.post("/api/v1/meow/tap", headers=auth_headers)

        body = response.json()
        assert body["capped"] is True
        assert body["remaining"] == 0
        assert body["eligible"] is True
        assert body["usedToday"] is False
        assert body["remainingGlobal"] == 12

    @pytest.mark.asyncio
    async def test_throttled_tap_is_not_counted(
        self, client, claim_service, throttle, auth_headers
    ):
        throttle.cooldown_ms = 60_000
        throttle.mark(TEST_USER_ID)
        claim_service.peek_tap.return_value = make_outcome(9, throttled=True)

        response = await client.post("/api/v1/meow/tap", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["throttled"] is True
        claim_service.tap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_init_data(self, client):
        response = await client.post("/api/v1/meow/tap")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "AUTH_INIT_DATA_REQUIRED"

    @pytest.mark.asyncio
    async def test_rejects_forged_init_data(self, client):
        response = await client.post(
            "/api/v1/meow/tap",
            headers={"X-Telegram-Init-Data": "user=%7B%22id%22%3A1%7D&auth_date=1&hash=00"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_INVALID_INIT_DATA"

    @pytest.mark.asyncio
    async def test_authorization_header(self, client, claim_service, auth_headers):
        claim_service.tap.return_value = make_outcome(1)

        response = await client.post(
            "/api/v1/meow/tap",
            headers={"Authorization": f"Telegram {auth_headers['X-Telegram-Init-Data']}"},
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_storage_failure_is_retryable(self, client, claim_service, auth_headers):
        claim_service.tap.side_effect = OperationalError(
            "SELECT ... FOR UPDATE", {}, Exception("lock timeout")
        )

        response = await client.post("/api/v1/meow/tap", headers=auth_headers)

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "STORAGE_UNAVAILABLE"
        assert error["retryable"] is True


class TestClaimStatus:
    @pytest.mark.asyncio
    async def test_status(self, client, claim_service, auth_headers):
        claim_service.evaluate_eligibility.return_value = Eligibility(
            eligible=False, used_today=True, remaining_global=3, count=42, day=DAY
        )

        response = await client.post("/api/v1/meow/claim-status", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "eligible": False,
            "usedToday": True,
            "remainingGlobal": 3,
            "count": 42,
            "day": DAY,
        }


class TestClaim:
    """Tests for POST /api/v1/meow/claim"""

    @pytest.mark.asyncio
    async def test_success(self, client, claim_service, auth_headers):
        claim_id = str(uuid4())
        claim_service.claim.return_value = ClaimResult(
            claim_id=claim_id,
            day=DAY,
            promo_code="MEOW42",
            discount_percent=42,
            remaining_global=10,
        )

        response = await client.post("/api/v1/meow/claim", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["claimId"] == claim_id
        assert body["promoCode"] == "MEOW42"
        assert body["discountPercent"] == 42

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code,status_code",
        [
            (ErrorCode.ALREADY_CLAIMED, 409),
            (ErrorCode.QUOTA_EXHAUSTED, 429),
            (ErrorCode.INSUFFICIENT_TAPS, 400),
            (ErrorCode.NOT_ELIGIBLE, 400),
        ],
    )
    async def test_rejections(self, client, claim_service, auth_headers, code, status_code):
        claim_service.claim.side_effect = ClaimRejectedError(code)

        response = await client.post("/api/v1/meow/claim", headers=auth_headers)

        assert response.status_code == status_code
        body = response.json()
        assert body["success"] is False
        assert body["error"] == code.value
        assert body["message"]


class TestRedeem:
    @pytest.mark.asyncio
    async def test_success(self, client, claim_service, auth_headers):
        claim_id = str(uuid4())
        claim_service.redeem.return_value = RedeemResult(
            claim_id=claim_id, day=DAY, promo_code="MEOW42", discount_percent=42
        )

        response = await client.post(
            "/api/v1/meow/redeem", json={"claimId": claim_id}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["claimId"] == claim_id
        claim_service.redeem.assert_awaited_once_with(TEST_USER_ID, claim_id)

    @pytest.mark.asyncio
    async def test_consumed(self, client, claim_service, auth_headers):
        claim_service.redeem.side_effect = RedeemError(
            ErrorCode.CLAIM_ALREADY_CONSUMED, "Claim already consumed"
        )

        response = await client.post(
            "/api/v1/meow/redeem", json={"claimId": str(uuid4())}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CLAIM_ALREADY_CONSUMED"

    @pytest.mark.asyncio
    async def test_missing_claim_id(self, client, auth_headers):
        response = await client.post("/api/v1/meow/redeem", json={}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
